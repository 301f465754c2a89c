"""
Tests for configuration defaults and the environment loader.
"""

import dataclasses

import pytest

from callqos.config import (
    DegradationConfig,
    DegradationThresholds,
    HealthBarConfig,
    QualityControlConfig,
    default_config,
    load_config_from_env,
)
from callqos.core.models import HealthLevel

ENV_VARS = [
    "CALLQOS_DEBOUNCE_MS",
    "CALLQOS_STABILIZATION_DELAY_MS",
    "CALLQOS_RECOVERY_STABILIZATION_DELAY_MS",
    "CALLQOS_MIN_LEVEL_CHANGE_INTERVAL_MS",
    "CALLQOS_AUTO_DEGRADE",
    "CALLQOS_AUTO_RECOVER",
    "CALLQOS_MAX_HISTORY_ENTRIES",
    "CALLQOS_THRESHOLD_MILD",
    "CALLQOS_THRESHOLD_MODERATE",
    "CALLQOS_THRESHOLD_SEVERE",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:

    def test_default_timings(self):
        assert HealthBarConfig().debounce_ms == 1000
        config = DegradationConfig()
        assert config.stabilization_delay_ms == 3000
        assert config.recovery_stabilization_delay_ms == 5000
        assert config.min_level_change_interval_ms == 2000
        assert config.auto_degrade is True
        assert config.auto_recover is True
        assert config.max_history_entries == 20

    def test_default_config_instance(self):
        assert default_config == QualityControlConfig()

    @pytest.mark.parametrize("health,expected", [
        (HealthLevel.EXCELLENT, 0),
        (HealthLevel.GOOD, 0),
        (HealthLevel.FAIR, 1),
        (HealthLevel.POOR, 2),
        (HealthLevel.CRITICAL, 3),
        (HealthLevel.OFFLINE, 3),
    ])
    def test_default_thresholds(self, health, expected):
        assert DegradationThresholds().target_level(health) == expected

    def test_most_severe_match_wins(self):
        thresholds = DegradationThresholds(
            mild=(HealthLevel.POOR,),
            moderate=(HealthLevel.POOR,),
        )
        assert thresholds.target_level(HealthLevel.POOR) == 2

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DegradationConfig().auto_degrade = False


class TestEnvLoader:

    def test_defaults_without_env(self, clean_env):
        assert load_config_from_env() == QualityControlConfig()

    def test_overrides(self, clean_env):
        clean_env.setenv("CALLQOS_DEBOUNCE_MS", "250")
        clean_env.setenv("CALLQOS_STABILIZATION_DELAY_MS", "1500")
        clean_env.setenv("CALLQOS_RECOVERY_STABILIZATION_DELAY_MS", "8000")
        clean_env.setenv("CALLQOS_MIN_LEVEL_CHANGE_INTERVAL_MS", "500")
        clean_env.setenv("CALLQOS_MAX_HISTORY_ENTRIES", "5")

        config = load_config_from_env()
        assert config.health.debounce_ms == 250
        assert config.degradation.stabilization_delay_ms == 1500
        assert config.degradation.recovery_stabilization_delay_ms == 8000
        assert config.degradation.min_level_change_interval_ms == 500
        assert config.degradation.max_history_entries == 5

    @pytest.mark.parametrize("raw,expected", [
        ("0", False),
        ("false", False),
        ("1", True),
        ("TRUE", True),
        ("on", True),
    ])
    def test_bool_flags(self, clean_env, raw, expected):
        clean_env.setenv("CALLQOS_AUTO_DEGRADE", raw)
        clean_env.setenv("CALLQOS_AUTO_RECOVER", raw)
        config = load_config_from_env()
        assert config.degradation.auto_degrade is expected
        assert config.degradation.auto_recover is expected

    def test_thresholds(self, clean_env):
        clean_env.setenv("CALLQOS_THRESHOLD_MODERATE", "Fair, poor")
        clean_env.setenv("CALLQOS_THRESHOLD_MILD", "")
        thresholds = load_config_from_env().degradation.thresholds
        assert thresholds.moderate == (HealthLevel.FAIR, HealthLevel.POOR)
        assert thresholds.mild == ()
        assert thresholds.severe == (HealthLevel.CRITICAL, HealthLevel.OFFLINE)

    def test_unknown_level_raises(self, clean_env):
        clean_env.setenv("CALLQOS_THRESHOLD_SEVERE", "terrible")
        with pytest.raises(ValueError):
            load_config_from_env()

    def test_non_integer_delay_raises(self, clean_env):
        clean_env.setenv("CALLQOS_DEBOUNCE_MS", "soon")
        with pytest.raises(ValueError):
            load_config_from_env()
