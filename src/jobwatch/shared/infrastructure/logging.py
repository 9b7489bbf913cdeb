"""
Structured Logging
==================

JSON-structured logging with correlation ID tracking.

Provides:
- Structured JSON logs (parseable by log aggregators)
- Correlation ID for request and tick tracing
- Latency timing for engine ticks

Usage:
    from jobwatch.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Job breached", extra={"job_id": "J1", "stage": "acceptance"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    Custom JSON formatter with additional fields.

    Adds:
    - timestamp in ISO format
    - correlation_id / tick_id when available
    - Environment info
    """

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        self.environment = environment
        super().__init__(*args, **kwargs)

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        for key in ("correlation_id", "tick_id"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)

        log_record["environment"] = self.environment

        # Webhook URLs embed their secret in the path
        for key, value in list(log_record.items()):
            if isinstance(value, str) and ("webhook" in key.lower() or "password" in key.lower()):
                log_record[key] = "***REDACTED***"


_QUIET_LOGGERS = (
    "uvicorn.access",
    "apscheduler.executors.default",
    "sqlalchemy.engine",
    "aiosqlite",
    "watchdog",
)


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Route every log record through one JSON handler on stdout.

    Replaces whatever handlers were installed before, so calling it again
    (tests, reloads) never duplicates output.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        environment=environment,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any):
    """
    Log how long the wrapped block took, whether or not it raised.

        with log_latency(logger, "engine_tick", tick_id=tick_id):
            ...
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                **extra_context,
            },
        )
