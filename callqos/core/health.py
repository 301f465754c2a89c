"""
Connection Health Aggregator

Fuses transport, registration, ICE and network-quality signals into a single
HealthLevel. First matching rule wins:

Level     | Trigger
offline   | Transport not connected (disconnected, failed, error, reconnecting)
critical  | Registration failed, or ICE unhealthy with iceState 'failed'
poor      | Transport or ICE recovering, or network quality poor/critical
fair      | (Un)registering in progress, or network quality fair
excellent | Network quality excellent
good      | Everything else

Entering offline or critical commits immediately. Every other change,
including leaving offline or critical, goes through a trailing debounce: only
the value still present when the timer fires is committed.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from .models import (
    ConnectionState,
    HealthDetails,
    HealthLevel,
    IceDetails,
    NetworkDetails,
    RegistrationDetails,
    RegistrationState,
    TransportDetails,
)
from .signals import Observable
from .timers import AsyncioScheduler, OneShotTimer, Scheduler
from ..debugging.logging_config import ComponentLogger
from ..interfaces.collaborators import (
    ConnectionRecoverySignals,
    NetworkQualitySignals,
    NotificationSink,
    NullNotificationSink,
    RegistrationSignals,
    TransportRecoverySignals,
)
from ..performance.metrics import MetricsCollector

logger = logging.getLogger(__name__)
event_log = ComponentLogger("health")

DEFAULT_DEBOUNCE_MS = 1000

CONNECTED_STATES = (ConnectionState.CONNECTED, ConnectionState.CONNECTING)
TRANSITIONAL_REGISTRATION_STATES = (RegistrationState.REGISTERING, RegistrationState.UNREGISTERING)

HEALTH_COLORS: Dict[HealthLevel, str] = {
    HealthLevel.EXCELLENT: "#22c55e",
    HealthLevel.GOOD: "#84cc16",
    HealthLevel.FAIR: "#eab308",
    HealthLevel.POOR: "#f97316",
    HealthLevel.CRITICAL: "#ef4444",
    HealthLevel.OFFLINE: "#6b7280",
}

HEALTH_ICONS: Dict[HealthLevel, str] = {
    level: f"health-{level.value}" for level in HealthLevel
}

STATUS_TEXT: Dict[HealthLevel, str] = {
    HealthLevel.EXCELLENT: "Connected - Excellent quality",
    HealthLevel.GOOD: "Connected - Good quality",
    HealthLevel.FAIR: "Connected - Fair quality",
    HealthLevel.POOR: "Poor connection quality",
    HealthLevel.CRITICAL: "Critical - Connection issues",
    HealthLevel.OFFLINE: "Disconnected",
}

DEGRADED_LEVELS = (HealthLevel.POOR, HealthLevel.CRITICAL, HealthLevel.OFFLINE)
RECOVERED_LEVELS = (HealthLevel.GOOD, HealthLevel.EXCELLENT)


def calculate_health_level(details: HealthDetails) -> HealthLevel:
    """Derive the raw health level from a details snapshot."""
    if not details.transport.is_connected:
        return HealthLevel.OFFLINE

    if details.registration.is_failed or (
        not details.ice.is_healthy and details.ice.state == "failed"
    ):
        return HealthLevel.CRITICAL

    if details.transport.is_recovering or details.ice.is_recovering:
        return HealthLevel.POOR
    if details.network.is_available and details.network.level in ("poor", "critical"):
        return HealthLevel.POOR

    if details.registration.state in TRANSITIONAL_REGISTRATION_STATES:
        return HealthLevel.FAIR
    if details.network.is_available and details.network.level == "fair":
        return HealthLevel.FAIR

    if details.network.is_available and details.network.level == "excellent":
        return HealthLevel.EXCELLENT

    return HealthLevel.GOOD


def status_text_for(level: HealthLevel, details: HealthDetails) -> str:
    """Human-readable status, specialised by the signal that caused it."""
    if level == HealthLevel.OFFLINE:
        if details.transport.is_recovering:
            return "Reconnecting..."
        return STATUS_TEXT[level]

    if level == HealthLevel.CRITICAL:
        if details.registration.is_failed:
            return "Registration failed"
        return "ICE connection failed"

    if level == HealthLevel.POOR:
        if details.transport.is_recovering or details.ice.is_recovering:
            return "Recovering connection..."
        return STATUS_TEXT[level]

    if level == HealthLevel.FAIR:
        if details.registration.state in TRANSITIONAL_REGISTRATION_STATES:
            return "Re-registering..."
        return STATUS_TEXT[level]

    return STATUS_TEXT[level]


class ConnectionHealthBar:
    """
    Aggregated connection health indicator.

    Watches every configured signal source, recomputes the raw level
    synchronously on each change, and commits it to `health_level` either
    immediately (offline/critical) or after `debounce_ms` of stability.
    Any source may be omitted; its neutral default never worsens "good".
    """

    def __init__(
        self,
        transport_recovery: Optional[TransportRecoverySignals] = None,
        registration: Optional[RegistrationSignals] = None,
        connection_recovery: Optional[ConnectionRecoverySignals] = None,
        network_quality: Optional[NetworkQualitySignals] = None,
        notifications: Optional[NotificationSink] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        scheduler: Optional[Scheduler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._transport_recovery = transport_recovery
        self._registration = registration
        self._connection_recovery = connection_recovery
        self._network_quality = network_quality
        self._notifications: NotificationSink = notifications or NullNotificationSink()
        self._has_notifications = notifications is not None
        self._debounce_ms = debounce_ms
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._metrics = metrics

        self._debounce_timer = OneShotTimer(self._scheduler, "health-debounce")
        self._last_notified_level: Optional[HealthLevel] = None
        self._disposed = False
        self._level_changes = 0

        self._details = self._read_details()
        self._raw_level = calculate_health_level(self._details)
        self._health_level: Observable[HealthLevel] = Observable(self._raw_level)
        self._committed_at = time.monotonic()

        self._unsubscribers: List[Callable[[], None]] = []
        for source in (transport_recovery, registration, connection_recovery, network_quality):
            if source is None:
                continue
            for observable in source.observables():
                self._unsubscribers.append(observable.subscribe(self._on_signal_change))

        self._record_metrics()

        # An initial offline/critical reading is a first entry and is announced
        if self._raw_level.is_critical:
            self._notify_health_drop(self._raw_level)
            self._last_notified_level = self._raw_level

        logger.debug(
            "Connection health bar initialized: level=%s transport=%s registration=%s "
            "ice=%s network=%s notifications=%s debounce_ms=%d",
            self._raw_level.value,
            transport_recovery is not None,
            registration is not None,
            connection_recovery is not None,
            network_quality is not None,
            self._has_notifications,
            debounce_ms,
        )

    # ── Outputs ──

    @property
    def health_level(self) -> Observable[HealthLevel]:
        return self._health_level

    @property
    def level(self) -> HealthLevel:
        return self._health_level.value

    @property
    def raw_level(self) -> HealthLevel:
        """Latest undebounced level."""
        return self._raw_level

    @property
    def is_healthy(self) -> bool:
        return self.level.is_healthy

    @property
    def status_text(self) -> str:
        return status_text_for(self.level, self._details)

    @property
    def color(self) -> str:
        return HEALTH_COLORS[self.level]

    @property
    def icon(self) -> str:
        return HEALTH_ICONS[self.level]

    @property
    def details(self) -> HealthDetails:
        return self._details

    @property
    def has_pending_change(self) -> bool:
        return self._debounce_timer.pending

    # ── Signal handling ──

    def _read_details(self) -> HealthDetails:
        transport = TransportDetails()
        if self._transport_recovery is not None:
            state = self._transport_recovery.connection_state.value
            transport = TransportDetails(
                state=state,
                is_connected=state in CONNECTED_STATES,
                is_recovering=self._transport_recovery.is_recovering.value,
            )

        registration = RegistrationDetails()
        if self._registration is not None:
            registration = RegistrationDetails(
                state=self._registration.state.value,
                is_registered=self._registration.is_registered.value,
                is_failed=self._registration.has_registration_failed.value,
            )

        network = NetworkDetails()
        if self._network_quality is not None:
            network = NetworkDetails(
                level=self._network_quality.level.value,
                is_available=self._network_quality.is_available.value,
            )

        ice = IceDetails()
        if self._connection_recovery is not None:
            ice = IceDetails(
                is_healthy=self._connection_recovery.is_healthy.value,
                state=self._connection_recovery.ice_state.value,
                is_recovering=self._connection_recovery.is_recovering.value,
            )

        return HealthDetails(
            transport=transport,
            registration=registration,
            network=network,
            ice=ice,
        )

    def _on_signal_change(self, new_value, old_value):
        if self._disposed:
            return
        self.refresh()

    def refresh(self):
        """Recompute the raw level from the current signal values."""
        self._details = self._read_details()
        new_level = calculate_health_level(self._details)
        if new_level == self._raw_level:
            return
        previous_raw = self._raw_level
        self._raw_level = new_level
        try:
            self._handle_raw_level(new_level)
        except Exception:
            # Nothing was armed; the next reading must be seen as a change
            self._raw_level = previous_raw
            raise

    def _handle_raw_level(self, new_level: HealthLevel):
        if new_level.is_critical:
            self._debounce_timer.cancel()
            self._commit(new_level)
            if self._last_notified_level != new_level:
                self._notify_health_drop(new_level)
                self._last_notified_level = new_level
            return

        self._debounce_timer.start(
            self._debounce_ms,
            lambda: self._on_debounce_elapsed(new_level),
        )

    def _on_debounce_elapsed(self, new_level: HealthLevel):
        previous_level = self.level
        self._commit(new_level)

        if (
            new_level == HealthLevel.POOR
            and previous_level not in DEGRADED_LEVELS
            and self._last_notified_level != new_level
        ):
            self._notify_health_drop(new_level)
            self._last_notified_level = new_level

        if previous_level in DEGRADED_LEVELS and new_level in RECOVERED_LEVELS:
            self._notify_recovery()
            self._last_notified_level = new_level

    def _commit(self, new_level: HealthLevel):
        previous_level = self._health_level.value
        if previous_level == new_level:
            return
        now = time.monotonic()
        duration_ms = (now - self._committed_at) * 1000
        self._committed_at = now
        self._level_changes += 1

        event_log.info(
            f"Health level: {previous_level.value} -> {new_level.value}",
            extra={
                "from_level": previous_level.value,
                "to_level": new_level.value,
                "prev_duration_ms": round(duration_ms, 1),
            },
        )
        self._record_metrics(new_level)
        self._health_level.set(new_level)

    # ── Notifications ──

    def _notify(self, severity: str, title: str, message: str):
        if not self._has_notifications:
            return
        try:
            getattr(self._notifications, severity)(title, message)
        except Exception as e:
            logger.error(f"Health notification '{title}' failed: {e}")
            return
        if self._metrics is not None:
            self._metrics.record_notification(severity)

    def _notify_health_drop(self, level: HealthLevel):
        if level == HealthLevel.POOR:
            self._notify("warning", "Connection Quality", "Connection quality has degraded")
        elif level == HealthLevel.CRITICAL:
            self._notify("error", "Connection Critical", "Connection is experiencing critical issues")
        elif level == HealthLevel.OFFLINE:
            self._notify("error", "Disconnected", "Connection to server lost")

    def _notify_recovery(self):
        self._notify("recovery", "Connection Restored", "Connection quality has recovered")

    # ── Lifecycle ──

    def _record_metrics(self, level: Optional[HealthLevel] = None):
        if self._metrics is not None:
            self._metrics.set_health_level((level or self.level).priority)

    def dispose(self):
        """Cancel the pending debounce and detach from every signal source."""
        if self._disposed:
            return
        self._disposed = True
        self._debounce_timer.cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        logger.debug("Connection health bar disposed")

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def get_status(self) -> dict:
        """Get current health status."""
        return {
            "health_level": self.level.value,
            "raw_level": self._raw_level.value,
            "is_healthy": self.is_healthy,
            "status_text": self.status_text,
            "color": self.color,
            "icon": self.icon,
            "debounce_pending": self._debounce_timer.pending,
            "level_changes": self._level_changes,
            "time_in_level_ms": (time.monotonic() - self._committed_at) * 1000,
            "details": self._details.to_dict(),
        }
