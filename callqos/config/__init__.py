"""
callqos Configuration Module

Manages all configuration settings for call-quality control:
- Health aggregation (debounce)
- Degradation timing (stabilization, recovery hysteresis, rate limit)
- Degradation thresholds (health level -> degradation level)
"""

from dataclasses import dataclass, field
from typing import Tuple

from ..core.models import HealthLevel


@dataclass(frozen=True)
class HealthBarConfig:
    """Connection health aggregation settings."""
    # Non-critical level changes must persist this long before committing
    debounce_ms: int = 1000


@dataclass(frozen=True)
class DegradationThresholds:
    """Health levels classified into target degradation levels."""
    mild: Tuple[HealthLevel, ...] = (HealthLevel.FAIR,)
    moderate: Tuple[HealthLevel, ...] = (HealthLevel.POOR,)
    severe: Tuple[HealthLevel, ...] = (HealthLevel.CRITICAL, HealthLevel.OFFLINE)

    def target_level(self, health: HealthLevel) -> int:
        """Degradation level this health calls for (most severe match wins)."""
        if health in self.severe:
            return 3
        if health in self.moderate:
            return 2
        if health in self.mild:
            return 1
        return 0


@dataclass(frozen=True)
class DegradationConfig:
    """Graceful degradation timing and policy."""
    # Adverse health must persist this long before degrading
    stabilization_delay_ms: int = 3000

    # Improved health must persist this long before recovering one step
    recovery_stabilization_delay_ms: int = 5000

    # Minimum gap between two committed level changes
    min_level_change_interval_ms: int = 2000

    auto_degrade: bool = True
    auto_recover: bool = True

    thresholds: DegradationThresholds = field(default_factory=DegradationThresholds)

    # Adaptation history ring size
    max_history_entries: int = 20


@dataclass(frozen=True)
class QualityControlConfig:
    """Complete call-quality control configuration."""
    health: HealthBarConfig = field(default_factory=HealthBarConfig)
    degradation: DegradationConfig = field(default_factory=DegradationConfig)


# Default configuration instance
default_config = QualityControlConfig()


def load_config_from_env():
    """Load configuration from environment variables."""
    from .settings import load_config_from_env as _load
    return _load()
