"""
callqos - Adaptive Call-Quality Control

Keeps a live call usable when the connection deteriorates.

Two cooperating units:
  Connection Health Aggregator: fuses transport, registration, ICE and
      network-quality signals into one debounced HealthLevel.
  Graceful Degradation Controller: maps health (or manual commands) onto
      degradation levels 0-3 and applies the matching media adaptations
      through the call session, with stabilization, recovery hysteresis
      and rate limiting.
"""

from .config import (
    HealthBarConfig,
    DegradationThresholds,
    DegradationConfig,
    QualityControlConfig,
    load_config_from_env,
    default_config,
)

from .core.models import (
    HealthLevel,
    ConnectionState,
    RegistrationState,
    HealthDetails,
    DegradationLevel,
    Adaptation,
    AdaptationHistoryEntry,
    adaptations_for_level,
)

from .core.signals import Observable

from .core.timers import (
    Scheduler,
    AsyncioScheduler,
    OneShotTimer,
)

from .core.history import (
    AdaptationHistory,
    MAX_HISTORY_ENTRIES,
)

from .core.health import (
    ConnectionHealthBar,
    calculate_health_level,
)

from .core.adaptations import (
    MediaAdaptationEffects,
    AUDIO_BITRATE_REDUCED,
    VIDEO_MILD_MAX_BITRATE,
    VIDEO_MILD_MAX_FRAMERATE,
)

from .core.degradation import (
    GracefulDegradationController,
    create_quality_control,
)

from .interfaces.collaborators import (
    TransportRecoverySignals,
    RegistrationSignals,
    ConnectionRecoverySignals,
    NetworkQualitySignals,
    HealthSource,
    Sender,
    CallSessionEffector,
    NotificationSink,
    NullNotificationSink,
)

from .performance.metrics import (
    MetricsCollector,
    get_metrics,
)

from .debugging.logging_config import (
    configure_logging,
    ComponentLogger,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "HealthBarConfig",
    "DegradationThresholds",
    "DegradationConfig",
    "QualityControlConfig",
    "load_config_from_env",
    "default_config",

    # Models
    "HealthLevel",
    "ConnectionState",
    "RegistrationState",
    "HealthDetails",
    "DegradationLevel",
    "Adaptation",
    "AdaptationHistoryEntry",
    "adaptations_for_level",

    # Reactive primitives
    "Observable",
    "Scheduler",
    "AsyncioScheduler",
    "OneShotTimer",

    # History
    "AdaptationHistory",
    "MAX_HISTORY_ENTRIES",

    # Health aggregation
    "ConnectionHealthBar",
    "calculate_health_level",

    # Degradation control
    "MediaAdaptationEffects",
    "AUDIO_BITRATE_REDUCED",
    "VIDEO_MILD_MAX_BITRATE",
    "VIDEO_MILD_MAX_FRAMERATE",
    "GracefulDegradationController",
    "create_quality_control",

    # Collaborators
    "TransportRecoverySignals",
    "RegistrationSignals",
    "ConnectionRecoverySignals",
    "NetworkQualitySignals",
    "HealthSource",
    "Sender",
    "CallSessionEffector",
    "NotificationSink",
    "NullNotificationSink",

    # Observability
    "MetricsCollector",
    "get_metrics",
    "configure_logging",
    "ComponentLogger",
]
