"""
Test Fixtures for callqos

Provides helpers for unit and integration tests:
- ManualScheduler: deterministic clock + timers (no event loop needed)
- Pre-wired health bar / degradation controller pairs
- A mutable health source for driving the controller directly
"""

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from ..config import DegradationConfig, QualityControlConfig
from ..core.degradation import GracefulDegradationController, create_quality_control
from ..core.health import ConnectionHealthBar
from ..core.models import HealthLevel
from ..core.signals import Observable
from ..interfaces.collaborators import (
    ConnectionRecoverySignals,
    MockCallSession,
    NetworkQualitySignals,
    RecordingNotificationSink,
    RegistrationSignals,
    TransportRecoverySignals,
)


class ManualTimerHandle:

    def __init__(self, due_ms: float, callback: Callable[[], None]):
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler whose clock only moves when advance() is called.

    Timers due within the advanced window fire in due order, with now_ms()
    set to each timer's due time while its callback runs, so callbacks that
    arm new timers see a consistent clock.
    """

    def __init__(self, start_ms: float = 1_000_000.0):
        self._now_ms = start_ms
        self._queue: List[Tuple[float, int, ManualTimerHandle]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now_ms

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ManualTimerHandle:
        handle = ManualTimerHandle(self._now_ms + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))
        return handle

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward, firing due timers. Returns how many fired."""
        target = self._now_ms + delta_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now_ms = max(self._now_ms, due_ms)
            handle.callback()
            fired += 1
        self._now_ms = target
        return fired

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)


class StaticHealthSource:
    """Health source whose level is set directly by the test."""

    def __init__(self, initial: HealthLevel = HealthLevel.GOOD):
        self._health_level: Observable[HealthLevel] = Observable(initial)

    @property
    def health_level(self) -> Observable[HealthLevel]:
        return self._health_level

    def set_health(self, level: HealthLevel):
        self._health_level.set(level)


@dataclass
class QualityControlHarness:
    """Every collaborator of a wired health bar + controller pair."""
    scheduler: ManualScheduler
    health_bar: ConnectionHealthBar
    controller: GracefulDegradationController
    call_session: MockCallSession
    notifications: RecordingNotificationSink
    transport: TransportRecoverySignals = field(default_factory=TransportRecoverySignals)
    registration: RegistrationSignals = field(default_factory=RegistrationSignals)
    ice: ConnectionRecoverySignals = field(default_factory=ConnectionRecoverySignals)
    network: NetworkQualitySignals = field(default_factory=NetworkQualitySignals)

    def dispose(self):
        self.controller.dispose()
        self.health_bar.dispose()


def create_test_harness(config: Optional[QualityControlConfig] = None) -> QualityControlHarness:
    """
    Wire all four signal sources, a mock call session and a recording sink
    onto a ManualScheduler. No event loop, no real media.
    """
    scheduler = ManualScheduler()
    transport = TransportRecoverySignals()
    registration = RegistrationSignals()
    ice = ConnectionRecoverySignals()
    network = NetworkQualitySignals()
    call_session = MockCallSession()
    notifications = RecordingNotificationSink()

    health_bar, controller = create_quality_control(
        transport_recovery=transport,
        registration=registration,
        connection_recovery=ice,
        network_quality=network,
        call_session=call_session,
        notifications=notifications,
        config=config,
        scheduler=scheduler,
    )
    return QualityControlHarness(
        scheduler=scheduler,
        health_bar=health_bar,
        controller=controller,
        call_session=call_session,
        notifications=notifications,
        transport=transport,
        registration=registration,
        ice=ice,
        network=network,
    )


def create_test_controller(
    health: Optional[HealthLevel] = None,
    config: Optional[DegradationConfig] = None,
    with_call_session: bool = True,
    with_notifications: bool = True,
) -> Tuple[GracefulDegradationController, ManualScheduler, Optional[StaticHealthSource],
           Optional[MockCallSession], Optional[RecordingNotificationSink]]:
    """Create a controller on a ManualScheduler with optional mock collaborators."""
    scheduler = ManualScheduler()
    health_source = StaticHealthSource(health) if health is not None else None
    call_session = MockCallSession() if with_call_session else None
    notifications = RecordingNotificationSink() if with_notifications else None
    controller = GracefulDegradationController(
        health_source=health_source,
        call_session=call_session,
        notifications=notifications,
        config=config,
        scheduler=scheduler,
    )
    return controller, scheduler, health_source, call_session, notifications
