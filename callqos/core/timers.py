"""
Timer scheduling for debounce, stabilization and recovery windows.

All delays are in milliseconds. The default scheduler runs callbacks on the
asyncio event loop via loop.call_later(); tests substitute a manual clock.

Each component holds at most one live timer per kind. OneShotTimer enforces
that: starting it cancels whatever was pending (last-write-wins).
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class Scheduler(Protocol):
    """
    Clock and one-shot timer source.

    Contract:
    - now_ms() returns wall-clock milliseconds, used for rate limiting and
      history timestamps.
    - call_later() runs callback once after delay_ms unless the returned
      handle is cancelled first.
    """

    def now_ms(self) -> float: ...
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def now_ms(self) -> float:
        return time.time() * 1000

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)


class OneShotTimer:
    """
    A single cancellable timer slot.

    start() cancels the pending timer (if any) and schedules a new one, so a
    burst of starts yields exactly one firing, for the last callback, delay_ms
    after the last start. That is the trailing-debounce primitive.
    """

    def __init__(self, scheduler: Scheduler, name: str):
        self._scheduler = scheduler
        self._name = name
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self, delay_ms: float, callback: Callable[[], None]):
        """
        Replace the pending timer. If scheduling raises (e.g. no running
        event loop), the error propagates and the previous timer is kept.
        """

        def fire():
            self._handle = None
            callback()

        handle = self._scheduler.call_later(delay_ms, fire)
        self.cancel()
        self._handle = handle
        logger.debug("Timer %s armed for %.0fms", self._name, delay_ms)

    def cancel(self) -> bool:
        """Cancel the pending timer. Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        logger.debug("Timer %s cancelled", self._name)
        return True
