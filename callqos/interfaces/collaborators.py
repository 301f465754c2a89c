"""
Collaborator Abstractions for callqos

Defines the signal sources the health aggregator watches and the Protocol
classes for everything the degradation controller drives. The SIP stack,
the peer connection and the UI live behind these seams.

Signal sources:
- TransportRecoverySignals: SIP transport connection state
- RegistrationSignals: SIP registration state
- ConnectionRecoverySignals: ICE / media path health
- NetworkQualitySignals: network-quality indicator

Driven collaborators:
- CallSessionEffector: mutates live media parameters
- NotificationSink: fire-and-forget user-facing messages
"""

from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Dict,
    List,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from ..core.models import ConnectionState, HealthLevel, RegistrationState
from ..core.signals import Observable


# ── Signal sources ──

@dataclass
class TransportRecoverySignals:
    connection_state: Observable[ConnectionState] = field(
        default_factory=lambda: Observable(ConnectionState.CONNECTED)
    )
    is_recovering: Observable[bool] = field(default_factory=lambda: Observable(False))

    def observables(self) -> Tuple[Observable, ...]:
        return (self.connection_state, self.is_recovering)


@dataclass
class RegistrationSignals:
    state: Observable[RegistrationState] = field(
        default_factory=lambda: Observable(RegistrationState.REGISTERED)
    )
    is_registered: Observable[bool] = field(default_factory=lambda: Observable(True))
    has_registration_failed: Observable[bool] = field(default_factory=lambda: Observable(False))

    def observables(self) -> Tuple[Observable, ...]:
        return (self.state, self.is_registered, self.has_registration_failed)


@dataclass
class ConnectionRecoverySignals:
    is_healthy: Observable[bool] = field(default_factory=lambda: Observable(True))
    ice_state: Observable[str] = field(default_factory=lambda: Observable("connected"))
    is_recovering: Observable[bool] = field(default_factory=lambda: Observable(False))

    def observables(self) -> Tuple[Observable, ...]:
        return (self.is_healthy, self.ice_state, self.is_recovering)


@dataclass
class NetworkQualitySignals:
    level: Observable[str] = field(default_factory=lambda: Observable("unknown"))
    is_available: Observable[bool] = field(default_factory=lambda: Observable(False))

    def observables(self) -> Tuple[Observable, ...]:
        return (self.level, self.is_available)


# ── Protocol classes ──

@runtime_checkable
class HealthSource(Protocol):
    """Anything publishing an aggregated health level (the health bar does)."""

    @property
    def health_level(self) -> Observable[HealthLevel]: ...


@runtime_checkable
class Sender(Protocol):
    """
    RTP sender parameter contract.

    get_parameters() returns a dict with an "encodings" list; the first
    encoding's "maxBitrate" / "maxFramerate" keys are set or deleted and the
    dict handed back through set_parameters(), which may return an awaitable.
    """

    def get_parameters(self) -> Dict[str, Any]: ...
    def set_parameters(self, params: Dict[str, Any]) -> Union[None, Awaitable[None]]: ...


@runtime_checkable
class CallSessionEffector(Protocol):
    """
    Media-side controls of the live call.

    Contract:
    - current_*_sender() returns None when the call has no such track.
    - disable_video()/enable_video() may return an awaitable.
    """

    def current_video_sender(self) -> Optional[Sender]: ...
    def current_audio_sender(self) -> Optional[Sender]: ...
    def disable_video(self) -> Union[None, Awaitable[None]]: ...
    def enable_video(self) -> Union[None, Awaitable[None]]: ...


@runtime_checkable
class NotificationSink(Protocol):
    def warning(self, title: str, message: str) -> None: ...
    def success(self, title: str, message: str) -> None: ...
    def error(self, title: str, message: str) -> None: ...
    def info(self, title: str, message: str) -> None: ...
    def recovery(self, title: str, message: str) -> None: ...


class NullNotificationSink:
    """Sink used when notifications are not configured."""

    def warning(self, title: str, message: str) -> None:
        pass

    def success(self, title: str, message: str) -> None:
        pass

    def error(self, title: str, message: str) -> None:
        pass

    def info(self, title: str, message: str) -> None:
        pass

    def recovery(self, title: str, message: str) -> None:
        pass


# ── Mock implementations (for testing) ──

class MockSender:
    """In-memory RTP sender recording every set_parameters() call."""

    def __init__(self, kind: str, fail_with: Optional[BaseException] = None):
        self.kind = kind
        self.parameters: Dict[str, Any] = {"encodings": [{}]}
        self.set_calls: List[Dict[str, Any]] = []
        self._fail_with = fail_with

    def get_parameters(self) -> Dict[str, Any]:
        return self.parameters

    def set_parameters(self, params: Dict[str, Any]) -> None:
        self.set_calls.append({
            "encodings": [dict(e) for e in params.get("encodings", [])],
        })
        if self._fail_with is not None:
            raise self._fail_with
        self.parameters = params

    @property
    def first_encoding(self) -> Dict[str, Any]:
        return self.parameters["encodings"][0]


class MockCallSession:
    """Call session with optional audio/video senders and counted video toggles."""

    def __init__(self, has_video: bool = True, has_audio: bool = True):
        self.video_sender: Optional[MockSender] = MockSender("video") if has_video else None
        self.audio_sender: Optional[MockSender] = MockSender("audio") if has_audio else None
        self.video_enabled = True
        self.disable_video_calls = 0
        self.enable_video_calls = 0

    def current_video_sender(self) -> Optional[MockSender]:
        return self.video_sender

    def current_audio_sender(self) -> Optional[MockSender]:
        return self.audio_sender

    def disable_video(self) -> None:
        self.disable_video_calls += 1
        self.video_enabled = False

    def enable_video(self) -> None:
        self.enable_video_calls += 1
        self.video_enabled = True


class RecordingNotificationSink:
    """Notification sink that records (severity, title, message) tuples."""

    def __init__(self):
        self.calls: List[Tuple[str, str, str]] = []

    def _record(self, severity: str, title: str, message: str):
        self.calls.append((severity, title, message))

    def warning(self, title: str, message: str) -> None:
        self._record("warning", title, message)

    def success(self, title: str, message: str) -> None:
        self._record("success", title, message)

    def error(self, title: str, message: str) -> None:
        self._record("error", title, message)

    def info(self, title: str, message: str) -> None:
        self._record("info", title, message)

    def recovery(self, title: str, message: str) -> None:
        self._record("recovery", title, message)

    def of(self, severity: str) -> List[Tuple[str, str]]:
        return [(t, m) for s, t, m in self.calls if s == severity]
