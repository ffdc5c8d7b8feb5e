"""
Logging utilities for listing-sync.

Structured or human-readable output with correlation fields so a job's
lines can be followed through snapshot fetches, diffs and writes.
"""

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional


CORRELATION_FIELDS = ("job_id", "app_id", "store", "locale", "action")

PACKAGE_LOGGER = "listing_sync"


def _correlation_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        name: getattr(record, name)
        for name in CORRELATION_FIELDS
        if getattr(record, name, None) is not None
    }


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each line carries level, logger, message, the timestamp (optional) and
    any correlation fields present on the record.
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        log_entry.update(_correlation_fields(record))

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter for console output.

    Format: TIMESTAMP - LOGGER - LEVEL - MESSAGE [job_id=X store=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        fields = _correlation_fields(record)
        if not fields:
            return base
        suffix = " ".join(f"{name}={value}" for name, value in fields.items())
        return f"{base} [{suffix}]"


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
    stream=None,
) -> None:
    """
    Configure the package logger.

    Args:
        level: Logging level
        structured: JSON lines when True, human-readable otherwise
        include_timestamp: Whether lines carry a timestamp
        stream: Output stream (defaults to stderr so stdout stays free for
            NDJSON event output)
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    if package_logger.handlers:
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if structured:
        handler.setFormatter(StructuredFormatter(include_timestamp=include_timestamp))
    else:
        handler.setFormatter(HumanReadableFormatter(include_timestamp=include_timestamp))
    package_logger.addHandler(handler)


class CorrelationContext:
    """
    Context manager adding correlation fields to log records.

    Contexts are tracked per thread, so apply workers and the job runner
    each see their own.

    Example:
        >>> with CorrelationContext(job_id=12, store="play_store"):
        ...     log_with_context(logger, logging.INFO, "Fetching snapshot")
    """

    _local = threading.local()

    def __init__(self, **fields: Any):
        self.context = {k: v for k, v in fields.items() if v is not None}
        self._previous: Optional[Dict[str, Any]] = None

    def __enter__(self) -> "CorrelationContext":
        self._previous = getattr(CorrelationContext._local, "context", None)
        merged = dict(self._previous or {})
        merged.update(self.context)
        CorrelationContext._local.context = merged
        return self

    def __exit__(self, *args) -> None:
        CorrelationContext._local.context = self._previous

    @classmethod
    def get_current(cls) -> Dict[str, Any]:
        return dict(getattr(cls._local, "context", None) or {})


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Log a message merged with the current correlation context."""
    context = CorrelationContext.get_current()
    context.update(extra)
    logger.log(level, message, extra=context)
