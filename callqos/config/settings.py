"""
Environment-based configuration loader.

Loads configuration from environment variables with defaults from config module.
"""

import os
from typing import Optional, Tuple

from ..core.models import HealthLevel
from . import (
    DegradationConfig,
    DegradationThresholds,
    HealthBarConfig,
    QualityControlConfig,
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_levels(name: str, default: Tuple[HealthLevel, ...]) -> Tuple[HealthLevel, ...]:
    raw: Optional[str] = os.getenv(name)
    if raw is None:
        return default
    return tuple(
        HealthLevel(part.strip().lower())
        for part in raw.split(",")
        if part.strip()
    )


def load_config_from_env() -> QualityControlConfig:
    """
    Load call-quality control configuration from environment variables.

    Environment variables:
        CALLQOS_DEBOUNCE_MS                      - Health debounce (default: 1000)
        CALLQOS_STABILIZATION_DELAY_MS           - Degrade stabilization (default: 3000)
        CALLQOS_RECOVERY_STABILIZATION_DELAY_MS  - Recovery stabilization (default: 5000)
        CALLQOS_MIN_LEVEL_CHANGE_INTERVAL_MS     - Rate limit (default: 2000)
        CALLQOS_AUTO_DEGRADE                     - 1/0 (default: 1)
        CALLQOS_AUTO_RECOVER                     - 1/0 (default: 1)
        CALLQOS_MAX_HISTORY_ENTRIES              - History ring size (default: 20)
        CALLQOS_THRESHOLD_MILD                   - Comma-separated levels (default: fair)
        CALLQOS_THRESHOLD_MODERATE               - Comma-separated levels (default: poor)
        CALLQOS_THRESHOLD_SEVERE                 - Comma-separated levels (default: critical,offline)

    Raises:
        ValueError: on a non-integer delay or an unknown health level name.
    """
    health = HealthBarConfig(
        debounce_ms=int(os.getenv("CALLQOS_DEBOUNCE_MS", 1000)),
    )

    default_thresholds = DegradationThresholds()
    thresholds = DegradationThresholds(
        mild=_env_levels("CALLQOS_THRESHOLD_MILD", default_thresholds.mild),
        moderate=_env_levels("CALLQOS_THRESHOLD_MODERATE", default_thresholds.moderate),
        severe=_env_levels("CALLQOS_THRESHOLD_SEVERE", default_thresholds.severe),
    )

    degradation = DegradationConfig(
        stabilization_delay_ms=int(os.getenv("CALLQOS_STABILIZATION_DELAY_MS", 3000)),
        recovery_stabilization_delay_ms=int(os.getenv("CALLQOS_RECOVERY_STABILIZATION_DELAY_MS", 5000)),
        min_level_change_interval_ms=int(os.getenv("CALLQOS_MIN_LEVEL_CHANGE_INTERVAL_MS", 2000)),
        auto_degrade=_env_bool("CALLQOS_AUTO_DEGRADE", True),
        auto_recover=_env_bool("CALLQOS_AUTO_RECOVER", True),
        thresholds=thresholds,
        max_history_entries=int(os.getenv("CALLQOS_MAX_HISTORY_ENTRIES", 20)),
    )

    return QualityControlConfig(health=health, degradation=degradation)
