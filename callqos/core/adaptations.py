"""
Media adaptation effects.

Translates Adaptation identifiers into effector calls on the live call:

Adaptation                | Apply                                   | Revert
video-resolution-reduced  | video maxBitrate=250000, maxFramerate=15 | delete both keys
video-disabled            | disable_video()                          | enable_video()
audio-bitrate-reduced     | audio maxBitrate=24000                   | delete maxBitrate

Every call is best-effort. A missing session or sender skips that action;
a raised exception or failed awaitable is logged and counted, never
propagated. Awaitables are scheduled on the running loop and not awaited.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Set

from .models import Adaptation
from ..interfaces.collaborators import CallSessionEffector, Sender
from ..performance.metrics import MetricsCollector

logger = logging.getLogger(__name__)

VIDEO_MILD_MAX_BITRATE = 250_000  # bps
VIDEO_MILD_MAX_FRAMERATE = 15

AUDIO_BITRATE_REDUCED = 24_000  # bps

# W3C RTCRtpEncodingParameters keys
MAX_BITRATE = "maxBitrate"
MAX_FRAMERATE = "maxFramerate"

EncodingMutator = Callable[[Dict[str, Any]], None]


class MediaAdaptationEffects:
    """Applies and reverts adaptations through a CallSessionEffector."""

    def __init__(
        self,
        call_session: Optional[CallSessionEffector] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._call_session = call_session
        self._metrics = metrics
        self._pending: Set[asyncio.Future] = set()

    @property
    def pending_count(self) -> int:
        """Effector awaitables dispatched but not yet settled."""
        return len(self._pending)

    def apply(self, adaptation: Adaptation):
        if adaptation == Adaptation.VIDEO_RESOLUTION_REDUCED:
            self._update_sender("video", "cap-video", _cap_video, create_encoding=True)
        elif adaptation == Adaptation.VIDEO_DISABLED:
            self._toggle_video(enable=False)
        elif adaptation == Adaptation.AUDIO_BITRATE_REDUCED:
            self._update_sender("audio", "cap-audio", _cap_audio, create_encoding=True)

    def revert(self, adaptation: Adaptation):
        if adaptation == Adaptation.VIDEO_RESOLUTION_REDUCED:
            self._update_sender("video", "uncap-video", _uncap_video, create_encoding=False)
        elif adaptation == Adaptation.VIDEO_DISABLED:
            self._toggle_video(enable=True)
        elif adaptation == Adaptation.AUDIO_BITRATE_REDUCED:
            self._update_sender("audio", "uncap-audio", _uncap_audio, create_encoding=False)

    # ── Effector calls ──

    def _get_sender(self, kind: str) -> Optional[Sender]:
        if kind == "video":
            return self._call_session.current_video_sender()
        return self._call_session.current_audio_sender()

    def _update_sender(
        self,
        kind: str,
        action: str,
        mutate: EncodingMutator,
        create_encoding: bool,
    ):
        if self._call_session is None:
            logger.debug("No call session; skipping %s", action)
            return

        try:
            sender = self._get_sender(kind)
            if sender is None:
                logger.debug("No %s sender; skipping %s", kind, action)
                return

            params = sender.get_parameters()
            encodings = params.get("encodings")
            if not encodings:
                if not create_encoding:
                    logger.debug("No %s encodings to restore; skipping %s", kind, action)
                    return
                encodings = [{}]
                params["encodings"] = encodings

            mutate(encodings[0])
            result = sender.set_parameters(params)
        except Exception as e:
            self._record_failure(action, e)
            return

        self._dispatch(result, action)

    def _toggle_video(self, enable: bool):
        action = "enable-video" if enable else "disable-video"
        if self._call_session is None:
            logger.debug("No call session; skipping %s", action)
            return
        try:
            if enable:
                result = self._call_session.enable_video()
            else:
                result = self._call_session.disable_video()
        except Exception as e:
            self._record_failure(action, e)
            return
        self._dispatch(result, action)

    def _dispatch(self, result: Any, action: str):
        """Fire-and-forget an effector awaitable; failures are logged on completion."""
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; dropping async effector call %s", action)
            if inspect.iscoroutine(result):
                result.close()
            return

        future = asyncio.ensure_future(result, loop=loop)
        self._pending.add(future)
        future.add_done_callback(lambda f: self._on_dispatch_done(f, action))

    def _on_dispatch_done(self, future: asyncio.Future, action: str):
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._record_failure(action, error)

    def _record_failure(self, action: str, error: BaseException):
        logger.warning(f"Effector call {action} failed: {error}")
        if self._metrics is not None:
            self._metrics.record_effector_failure(action)


def _cap_video(encoding: Dict[str, Any]):
    encoding[MAX_BITRATE] = VIDEO_MILD_MAX_BITRATE
    encoding[MAX_FRAMERATE] = VIDEO_MILD_MAX_FRAMERATE


def _uncap_video(encoding: Dict[str, Any]):
    encoding.pop(MAX_BITRATE, None)
    encoding.pop(MAX_FRAMERATE, None)


def _cap_audio(encoding: Dict[str, Any]):
    encoding[MAX_BITRATE] = AUDIO_BITRATE_REDUCED


def _uncap_audio(encoding: Dict[str, Any]):
    encoding.pop(MAX_BITRATE, None)
