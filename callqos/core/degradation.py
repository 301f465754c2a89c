"""
Graceful Degradation Controller

When connection health drops, the call sheds media quality in a fixed order:

Level | Default trigger          | Adaptations
L0    | good / excellent         | Full quality
L1    | fair                     | Video capped (250 kbps, 15 fps)
L2    | poor                     | Video disabled (audio-only)
L3    | critical / offline       | Video disabled, audio capped at 24 kbps

Timing is asymmetric:
- critical/offline health degrades straight to L3, no delay.
- Other adverse health must persist for the stabilization delay (3s) and is
  re-checked when the timer fires.
- Improved health must persist for the recovery delay (5s); recovery then
  steps down one level at a time, each step waiting a full window.
- No two committed level changes may be closer than 2s (rate limit).

Level changes apply only the net difference between the canonical adaptation
sets of the old and new level, so a 0 -> 3 jump never touches the video cap.
"""

import logging
from typing import Callable, List, Optional

from .adaptations import MediaAdaptationEffects
from .health import ConnectionHealthBar
from .history import AdaptationHistory
from .models import (
    ADAPTATIONS_BY_LEVEL,
    AdaptationHistoryEntry,
    DegradationLevel,
    HealthLevel,
    MAX_DEGRADATION_LEVEL,
    MIN_DEGRADATION_LEVEL,
)
from .timers import AsyncioScheduler, OneShotTimer, Scheduler
from ..config import DegradationConfig, QualityControlConfig
from ..debugging.logging_config import ComponentLogger
from ..interfaces.collaborators import (
    CallSessionEffector,
    ConnectionRecoverySignals,
    HealthSource,
    NetworkQualitySignals,
    NotificationSink,
    NullNotificationSink,
    RegistrationSignals,
    TransportRecoverySignals,
)
from ..performance.metrics import MetricsCollector

logger = logging.getLogger(__name__)
event_log = ComponentLogger("degradation")

MANUAL_REASON = "manual"

DEGRADE_NOTIFICATIONS = {
    DegradationLevel.L1_VIDEO_REDUCED: (
        "Quality Adjusted",
        "Video quality reduced due to network conditions",
    ),
    DegradationLevel.L2_AUDIO_ONLY: (
        "Audio-Only Mode",
        "Video disabled - switching to audio-only mode",
    ),
    DegradationLevel.L3_AUDIO_REDUCED: (
        "Severe Degradation",
        "Audio quality reduced - consider reconnecting if issues persist",
    ),
}

PARTIAL_RECOVERY_NOTIFICATION = ("Quality Improving", "Network quality improved - restoring call quality")
FULL_RECOVERY_NOTIFICATION = ("Quality Restored", "Full call quality restored")

# Health needed before stepping down *to* a given level
RECOVERY_REQUIREMENTS = {
    DegradationLevel.L0_NONE: (HealthLevel.EXCELLENT, HealthLevel.GOOD),
    DegradationLevel.L1_VIDEO_REDUCED: (HealthLevel.EXCELLENT, HealthLevel.GOOD, HealthLevel.FAIR),
    DegradationLevel.L2_AUDIO_ONLY: (
        HealthLevel.EXCELLENT,
        HealthLevel.GOOD,
        HealthLevel.FAIR,
        HealthLevel.POOR,
    ),
}


class GracefulDegradationController:
    """
    Owns the call's degradation level and the adaptations that realise it.

    State (level, history, rate-limit timestamp) is authoritative and is
    committed before any effector call or notification is issued; side
    effects are best-effort and can never undo or block a commit.
    """

    def __init__(
        self,
        health_source: Optional[HealthSource] = None,
        call_session: Optional[CallSessionEffector] = None,
        notifications: Optional[NotificationSink] = None,
        config: Optional[DegradationConfig] = None,
        scheduler: Optional[Scheduler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._config = config or DegradationConfig()
        self._health_source = health_source
        self._notifications: NotificationSink = notifications or NullNotificationSink()
        self._has_notifications = notifications is not None
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._metrics = metrics
        self._effects = MediaAdaptationEffects(call_session, metrics=metrics)

        # State
        self._level = DegradationLevel.L0_NONE
        self._auto_mode = self._config.auto_degrade
        self._last_change_ms: Optional[float] = None
        self._history = AdaptationHistory(self._config.max_history_entries)

        # Timers
        self._stabilization_timer = OneShotTimer(self._scheduler, "degrade-stabilization")
        self._recovery_timer = OneShotTimer(self._scheduler, "recovery-stabilization")

        # Metrics
        self._total_degradations = 0
        self._total_recoveries = 0
        self._rejected_changes = 0

        self._disposed = False
        self._stop_watch: Optional[Callable[[], None]] = None
        if health_source is not None:
            self._stop_watch = health_source.health_level.subscribe(self._on_health_change)

        if self._metrics is not None:
            self._metrics.set_degradation_level(int(self._level))

        logger.debug(
            "Graceful degradation initialized: auto_degrade=%s auto_recover=%s "
            "stabilization_delay_ms=%d health_source=%s call_session=%s notifications=%s",
            self._config.auto_degrade,
            self._config.auto_recover,
            self._config.stabilization_delay_ms,
            health_source is not None,
            call_session is not None,
            self._has_notifications,
        )

    # ── Read-only state ──

    @property
    def degradation_level(self) -> DegradationLevel:
        return self._level

    @property
    def is_degraded(self) -> bool:
        return self._level > DegradationLevel.L0_NONE

    @property
    def active_adaptations(self) -> List[str]:
        return [a.value for a in ADAPTATIONS_BY_LEVEL[self._level]]

    @property
    def is_auto_mode(self) -> bool:
        return self._auto_mode

    @property
    def can_recover(self) -> bool:
        if self._level == DegradationLevel.L0_NONE:
            return False
        health = self._current_health()
        if health is None:
            return True
        target = DegradationLevel(self._level - 1)
        return health in RECOVERY_REQUIREMENTS[target]

    @property
    def pending_effects(self) -> int:
        return self._effects.pending_count

    def _current_health(self) -> Optional[HealthLevel]:
        if self._health_source is None:
            return None
        return self._health_source.health_level.value

    # ── Public control ──

    def apply_degradation(self, level: int) -> bool:
        """
        Move directly to `level`.

        Returns:
            True if the change was committed; False for a same-level or
            rate-limited request.

        Raises:
            ValueError: if level is outside 0-3.
        """
        if not MIN_DEGRADATION_LEVEL <= level <= MAX_DEGRADATION_LEVEL:
            raise ValueError(f"Degradation level must be 0-3, got {level}")
        return self._transition_to(DegradationLevel(level), MANUAL_REASON)

    def recover(self) -> bool:
        """Step down exactly one level if health allows it."""
        return self._step_recover(MANUAL_REASON)

    def recover_full(self) -> bool:
        """Drop straight to level 0, subject only to the rate limit."""
        if self._level == DegradationLevel.L0_NONE:
            return False
        return self._transition_to(DegradationLevel.L0_NONE, MANUAL_REASON)

    def set_auto_mode(self, enabled: bool):
        self._auto_mode = enabled
        logger.debug("Auto mode %s", "enabled" if enabled else "disabled")

        if not enabled:
            self._stabilization_timer.cancel()
            self._recovery_timer.cancel()
            return

        health = self._current_health()
        if health is not None:
            self._handle_health(health)

    def get_adaptation_history(self) -> List[AdaptationHistoryEntry]:
        return self._history.entries()

    # ── Level transitions ──

    def _rate_limit_remaining_ms(self) -> float:
        if self._last_change_ms is None:
            return 0.0
        elapsed = self._scheduler.now_ms() - self._last_change_ms
        return max(0.0, self._config.min_level_change_interval_ms - elapsed)

    def _step_recover(self, reason: str) -> bool:
        if self._level == DegradationLevel.L0_NONE:
            return False
        if not self.can_recover:
            logger.debug("Cannot recover - health insufficient (%s)", self._current_health())
            return False
        return self._transition_to(DegradationLevel(self._level - 1), reason)

    def _transition_to(self, target: DegradationLevel, reason: str) -> bool:
        previous = self._level
        if target == previous:
            return False

        if self._rate_limit_remaining_ms() > 0:
            self._rejected_changes += 1
            logger.debug(
                "Skipping level change L%d -> L%d (%s) - too soon since last change",
                previous, target, reason,
            )
            return False

        now = self._scheduler.now_ms()
        old_set = ADAPTATIONS_BY_LEVEL[previous]
        new_set = ADAPTATIONS_BY_LEVEL[target]

        # Commit first
        self._level = target
        self._last_change_ms = now
        self._history.append(target, reason, timestamp=now)

        degrading = target > previous
        if degrading:
            self._total_degradations += 1
        else:
            self._total_recoveries += 1

        log = event_log.warning if degrading else event_log.info
        log(
            f"Degradation level: L{int(previous)} -> L{int(target)} ({reason})",
            extra={"from_level": int(previous), "to_level": int(target), "reason": reason},
        )

        # Additions before removals: L1 -> L2 disables video before lifting
        # the cap, L2 -> L1 caps before re-enabling.
        for adaptation in new_set:
            if adaptation not in old_set:
                self._effects.apply(adaptation)
        for adaptation in reversed(old_set):
            if adaptation not in new_set:
                self._effects.revert(adaptation)

        if self._metrics is not None:
            self._metrics.set_degradation_level(int(target))
            self._metrics.record_degradation_transition(
                direction="degrade" if degrading else "recover",
                trigger="manual" if reason == MANUAL_REASON else "health",
            )

        if degrading:
            title, message = DEGRADE_NOTIFICATIONS[target]
            self._notify("warning", title, message)
        elif target == DegradationLevel.L0_NONE:
            self._notify("success", *FULL_RECOVERY_NOTIFICATION)
        else:
            self._notify("success", *PARTIAL_RECOVERY_NOTIFICATION)

        return True

    def _notify(self, severity: str, title: str, message: str):
        if not self._has_notifications:
            return
        try:
            getattr(self._notifications, severity)(title, message)
        except Exception as e:
            logger.error(f"Degradation notification '{title}' failed: {e}")
            return
        if self._metrics is not None:
            self._metrics.record_notification(severity)

    # ── Health gating ──

    def _on_health_change(self, new_health: HealthLevel, old_health: HealthLevel):
        if self._disposed:
            return
        self._handle_health(new_health)

    def _handle_health(self, health: HealthLevel):
        if not self._auto_mode:
            return

        self._stabilization_timer.cancel()
        self._recovery_timer.cancel()

        target = self._config.thresholds.target_level(health)

        if health.is_critical:
            if self._level < MAX_DEGRADATION_LEVEL:
                self._degrade_immediately()
        elif target > self._level:
            self._stabilization_timer.start(
                self._config.stabilization_delay_ms,
                lambda: self._on_stabilized(DegradationLevel(target)),
            )
        elif target < self._level and self._config.auto_recover:
            self._recovery_timer.start(
                self._config.recovery_stabilization_delay_ms,
                self._on_recovery_elapsed,
            )

    def _degrade_immediately(self):
        health = self._current_health()
        if health is None or not health.is_critical or not self._auto_mode:
            return
        if self._level >= MAX_DEGRADATION_LEVEL:
            return
        if self._transition_to(MAX_DEGRADATION_LEVEL, f"health: {health.value} (immediate)"):
            return
        remaining = self._rate_limit_remaining_ms()
        if remaining > 0:
            self._stabilization_timer.start(remaining, self._degrade_immediately)

    def _on_stabilized(self, target: DegradationLevel):
        health = self._current_health()
        if health is None or not self._auto_mode:
            return
        if self._config.thresholds.target_level(health) < target:
            logger.debug("Adverse health cleared before stabilization (%s)", health.value)
            return
        if self._transition_to(target, f"health: {health.value} (stabilized)"):
            return
        remaining = self._rate_limit_remaining_ms()
        if remaining > 0 and target > self._level:
            self._stabilization_timer.start(remaining, lambda: self._on_stabilized(target))

    def _on_recovery_elapsed(self):
        health = self._current_health()
        if health is None or not self._auto_mode or not self._config.auto_recover:
            return
        target = self._config.thresholds.target_level(health)
        if target >= self._level:
            return

        if self._step_recover(f"health improved: {health.value}"):
            if target < self._level:
                self._recovery_timer.start(
                    self._config.recovery_stabilization_delay_ms,
                    self._on_recovery_elapsed,
                )
            return

        remaining = self._rate_limit_remaining_ms()
        if remaining > 0:
            self._recovery_timer.start(remaining, self._on_recovery_elapsed)

    # ── Lifecycle ──

    def dispose(self):
        """Cancel pending timers and stop watching health."""
        if self._disposed:
            return
        self._disposed = True
        self._stabilization_timer.cancel()
        self._recovery_timer.cancel()
        if self._stop_watch is not None:
            self._stop_watch()
            self._stop_watch = None
        logger.debug("Graceful degradation disposed")

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def get_status(self) -> dict:
        since_change_ms = None
        if self._last_change_ms is not None:
            since_change_ms = self._scheduler.now_ms() - self._last_change_ms
        return {
            "level": int(self._level),
            "level_name": self._level.name,
            "is_degraded": self.is_degraded,
            "active_adaptations": self.active_adaptations,
            "is_auto_mode": self._auto_mode,
            "can_recover": self.can_recover,
            "stabilization_pending": self._stabilization_timer.pending,
            "recovery_pending": self._recovery_timer.pending,
            "time_since_last_change_ms": since_change_ms,
            "total_degradations": self._total_degradations,
            "total_recoveries": self._total_recoveries,
            "rejected_changes": self._rejected_changes,
            "history_size": len(self._history),
        }


def create_quality_control(
    transport_recovery: Optional[TransportRecoverySignals] = None,
    registration: Optional[RegistrationSignals] = None,
    connection_recovery: Optional[ConnectionRecoverySignals] = None,
    network_quality: Optional[NetworkQualitySignals] = None,
    call_session: Optional[CallSessionEffector] = None,
    notifications: Optional[NotificationSink] = None,
    config: Optional[QualityControlConfig] = None,
    scheduler: Optional[Scheduler] = None,
    metrics: Optional[MetricsCollector] = None,
) -> tuple[ConnectionHealthBar, GracefulDegradationController]:
    """
    Factory function wiring a health bar into a degradation controller.

    Returns:
        Tuple of (ConnectionHealthBar, GracefulDegradationController)
    """
    config = config or QualityControlConfig()
    scheduler = scheduler or AsyncioScheduler()

    health_bar = ConnectionHealthBar(
        transport_recovery=transport_recovery,
        registration=registration,
        connection_recovery=connection_recovery,
        network_quality=network_quality,
        notifications=notifications,
        debounce_ms=config.health.debounce_ms,
        scheduler=scheduler,
        metrics=metrics,
    )
    controller = GracefulDegradationController(
        health_source=health_bar,
        call_session=call_session,
        notifications=notifications,
        config=config.degradation,
        scheduler=scheduler,
        metrics=metrics,
    )
    return health_bar, controller
