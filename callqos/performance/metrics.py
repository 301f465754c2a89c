"""
Prometheus Metrics for callqos

Key metrics:
- callqos_health_level (Gauge, 0=offline .. 5=excellent)
- callqos_degradation_level (Gauge, 0-3)
- callqos_degradation_transitions_total (Counter, direction/trigger)
- callqos_effector_failures_total (Counter, per action)
- callqos_notifications_total (Counter, per severity)

The exposition server is optional and runs in prometheus_client's own thread,
off the event loop.
"""

import logging
import os
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    start_http_server,
)

logger = logging.getLogger(__name__)

# Default metrics port
DEFAULT_METRICS_PORT = 9090


class MetricsCollector:
    """
    Centralized Prometheus metrics collector for callqos.

    All metrics are registered once at initialization. Components report
    values via the collector's methods. Pass a private CollectorRegistry to
    run several collectors side by side (tests do).
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        port: Optional[int] = None,
    ):
        self._registry = registry if registry is not None else REGISTRY
        self._port = port or int(os.environ.get("CALLQOS_METRICS_PORT", DEFAULT_METRICS_PORT))
        self._server_started = False

        self.health_level = Gauge(
            "callqos_health_level",
            "Committed connection health (0=offline .. 5=excellent)",
            registry=self._registry,
        )

        self.degradation_level = Gauge(
            "callqos_degradation_level",
            "Current degradation level (0-3)",
            registry=self._registry,
        )

        self.degradation_transitions = Counter(
            "callqos_degradation_transitions_total",
            "Committed degradation level changes",
            labelnames=["direction", "trigger"],
            registry=self._registry,
        )

        self.effector_failures = Counter(
            "callqos_effector_failures_total",
            "Media effector calls that raised or rejected",
            labelnames=["action"],
            registry=self._registry,
        )

        self.notifications = Counter(
            "callqos_notifications_total",
            "User notifications emitted",
            labelnames=["severity"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def start_server(self):
        """Start the Prometheus metrics HTTP server in a background thread."""
        if self._server_started:
            return

        try:
            start_http_server(self._port, registry=self._registry)
            self._server_started = True
            logger.info("Prometheus metrics server started on port %d", self._port)
        except Exception as e:
            logger.error("Failed to start metrics server: %s", e)

    # ── Convenience methods ──

    def set_health_level(self, priority: int):
        self.health_level.set(priority)

    def set_degradation_level(self, level: int):
        self.degradation_level.set(level)

    def record_degradation_transition(self, direction: str, trigger: str):
        self.degradation_transitions.labels(direction=direction, trigger=trigger).inc()

    def record_effector_failure(self, action: str):
        self.effector_failures.labels(action=action).inc()

    def record_notification(self, severity: str):
        self.notifications.labels(severity=severity).inc()


# Singleton instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get the global MetricsCollector singleton (default registry)."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
