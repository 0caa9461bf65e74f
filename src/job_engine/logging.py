"""
Diagnostic logging for the job engine.

This module provides:
- StructuredLogger: stdlib logging with job/tenant fields on every record
- JSON and text formatters that render those fields
- Trace scoping so related lines can be correlated
- A small timer used to report job durations

Job loggers mirror every job line into this stream, so operators can
follow jobs live while the job record keeps its own copy.
"""

from __future__ import annotations

import json
import logging
import secrets
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

FIELDS_ATTR = "job_fields"


@dataclass(frozen=True)
class LogContext:
    """Fields bound to every line a StructuredLogger emits."""

    trace_id: str | None = None
    tenant_id: str | None = None
    job_id: str | None = None
    job_type: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_fields(self) -> dict[str, Any]:
        fields = {
            "trace_id": self.trace_id,
            "tenant_id": self.tenant_id,
            "job_id": self.job_id,
            "job_type": self.job_type,
            "operation": self.operation,
        }
        fields = {k: v for k, v in fields.items() if v is not None}
        fields.update(self.extra)
        return fields

    def bind(self, **fields: Any) -> LogContext:
        """Return a copy with ``fields`` bound; unknown keys go to ``extra``."""
        known = {k: fields.pop(k) for k in list(fields) if k in _CONTEXT_KEYS}
        return LogContext(
            trace_id=known.get("trace_id", self.trace_id),
            tenant_id=known.get("tenant_id", self.tenant_id),
            job_id=known.get("job_id", self.job_id),
            job_type=known.get("job_type", self.job_type),
            operation=known.get("operation", self.operation),
            extra={**self.extra, **fields},
        )


_CONTEXT_KEYS = frozenset({"trace_id", "tenant_id", "job_id", "job_type", "operation"})


class StructuredLogger:
    """
    Engine-wide diagnostic logger.

    Every call takes a message plus keyword fields. Fields travel on the
    LogRecord (``record.job_fields``) and are rendered by the attached
    formatter, so the message itself stays human readable.

    Example:
        ```python
        logger = StructuredLogger("job_engine", json_output=True)

        with logger.trace_context(tenant_id="acme"):
            logger.info("Job queued", job_id=job.job_id, queue_depth=3)
        ```
    """

    def __init__(
        self,
        name: str = "job_engine",
        level: str = "INFO",
        json_output: bool = True,
    ):
        self.name = name
        self.json_output = json_output
        self._context = LogContext()

        self._logger = logging.getLogger(name)
        self._logger.setLevel(level.upper())
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
            self._logger.addHandler(handler)

    @property
    def context(self) -> LogContext:
        return self._context

    def bind(self, **fields: Any) -> None:
        """Bind fields to every following line from this logger."""
        self._context = self._context.bind(**fields)

    @contextmanager
    def trace_context(self, trace_id: str | None = None, **fields: Any) -> Iterator[str]:
        """Bind a trace id (generated when omitted) for the duration of the block."""
        trace_id = trace_id or generate_trace_id()
        saved = self._context
        self._context = saved.bind(trace_id=trace_id, **fields)
        try:
            yield trace_id
        finally:
            self._context = saved

    def _emit(self, level: int, message: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        payload = {**self._context.as_fields(), **fields}
        self._logger.log(level, message, extra={FIELDS_ATTR: payload})

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, fields)

    def log_job_event(self, event_type: str, message: str, **fields: Any) -> None:
        """Log a job lifecycle event (job.queued, job.started, job.completed, job.failed)."""
        level = logging.WARNING if event_type == "job.failed" else logging.INFO
        self._emit(level, message, {"event_type": event_type, **fields})

    def log_error(self, error: BaseException, message: str | None = None, **fields: Any) -> None:
        """Log an exception; engine errors contribute their code and context."""
        details: dict[str, Any] = {
            "event_type": "error",
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
        code = getattr(error, "code", None)
        if code is not None:
            details["error_code"] = getattr(code, "value", str(code))
        if hasattr(error, "retryable"):
            details["retryable"] = error.retryable
        context = getattr(error, "context", None)
        if context is not None and hasattr(context, "to_dict"):
            details["error_context"] = context.to_dict()

        self._emit(logging.ERROR, message or f"Error: {error}", {**details, **fields})


# =============================================================================
# Formatters
# =============================================================================


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    return dict(getattr(record, FIELDS_ATTR, None) or {})


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message and fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_record_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Colored single-line output with ``key=value`` fields."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S")
        color = self.COLORS.get(record.levelname, "")
        level = f"{color}{record.levelname:<8}{self.RESET if color else ''}"
        fields = " ".join(f"{k}={v}" for k, v in _record_fields(record).items())
        line = f"{stamp} {level} {record.getMessage()}"
        return f"{line} {fields}" if fields else line


# =============================================================================
# Utilities
# =============================================================================


def generate_trace_id() -> str:
    return f"trace-{secrets.token_hex(8)}"


@dataclass
class Timer:
    """Monotonic stopwatch; ``elapsed_ms`` keeps growing until stopped."""

    started: float = field(default_factory=time.monotonic)
    stopped: float | None = None

    def stop(self) -> float:
        if self.stopped is None:
            self.stopped = time.monotonic()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = self.stopped if self.stopped is not None else time.monotonic()
        return (end - self.started) * 1000


@contextmanager
def timed() -> Iterator[Timer]:
    timer = Timer()
    try:
        yield timer
    finally:
        timer.stop()


# =============================================================================
# Shared loggers
# =============================================================================

_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str = "job_engine") -> StructuredLogger:
    """Return the shared StructuredLogger for ``name``, creating it once."""
    logger = _loggers.get(name)
    if logger is None:
        logger = _loggers[name] = StructuredLogger(name)
    return logger


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    name: str = "job_engine",
) -> StructuredLogger:
    """Replace the shared logger for ``name`` with one at ``level``."""
    logging.getLogger(name).handlers.clear()
    logger = _loggers[name] = StructuredLogger(name, level=level, json_output=json_output)
    return logger


__all__ = [
    "LogContext",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "Timer",
    "timed",
    "generate_trace_id",
    "get_logger",
    "configure_logging",
]
