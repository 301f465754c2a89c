"""
Structured Logging Configuration for callqos

All logs can use structured JSON format for machine parseability.

Log levels:
- ERROR: Notification sink failures, subscriber errors
- WARN: Effector failures, degradation escalations
- INFO: Health level changes, recoveries
- DEBUG: Rejected transitions (same level, rate limit, health gate), timers

Component tags: health, degradation

Debug mode (CALLQOS_DEBUG=1) forces DEBUG level.
"""

import json
import logging
import os
import sys
import time
from typing import Optional

# Check debug mode
CALLQOS_DEBUG = os.environ.get("CALLQOS_DEBUG", "0") == "1"


class StructuredFormatter(logging.Formatter):
    """Formats log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": time.time(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name.split(".")[-1]),
            "event": record.getMessage(),
        }

        # Add extra fields
        if hasattr(record, "extra_fields") and record.extra_fields:
            log_entry.update(record.extra_fields)

        # Add exception info
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])

        return json.dumps(log_entry, default=str)


def configure_logging(
    level: Optional[str] = None,
    json_format: bool = True,
) -> logging.Handler:
    """
    Configure callqos structured logging on the root logger.

    Args:
        level: Log level string. Defaults to CALLQOS_LOG_LEVEL env var or INFO.
        json_format: Use structured JSON format.

    Returns:
        The configured root handler.
    """
    log_level_str = level or os.environ.get("CALLQOS_LOG_LEVEL", "INFO")
    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARN": logging.WARNING,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }
    log_level = log_level_map.get(log_level_str.upper(), logging.INFO)

    # If debug mode, force DEBUG level
    if CALLQOS_DEBUG:
        log_level = logging.DEBUG

    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    # Suppress noisy third-party loggers
    for noisy in ["asyncio", "prometheus_client"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return handler


class ComponentLogger:
    """
    Convenience wrapper for component-tagged logging.

    Usage:
        log = ComponentLogger("degradation")
        log.info("Degradation level: L0 -> L2 (manual)", extra={"to_level": 2})
    """

    def __init__(self, component: str):
        self._logger = logging.getLogger(f"callqos.{component}")
        self._component = component

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, extra: Optional[dict] = None):
        if not self._logger.isEnabledFor(level):
            return
        record = self._logger.makeRecord(
            name=self._logger.name,
            level=level,
            fn="",
            lno=0,
            msg=msg,
            args=(),
            exc_info=None,
        )
        record.component = self._component
        record.extra_fields = extra or {}
        self._logger.handle(record)

    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs):
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)
