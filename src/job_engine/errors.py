"""
Exceptions raised by the job engine.

Errors fall into families that match where they surface: admission
errors reach the submitter synchronously, persistence errors come from
the job record store, and execution errors are retried by the worker
and end up on the job record. Each carries an ``ErrorCode`` and an
``ErrorContext`` naming the job and tenant involved.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

_TRANSIENT_ERRORS = (TimeoutError, ConnectionError)


class ErrorCode(str, Enum):
    """Standardized error codes for the job engine."""

    # Admission errors (1xxx)
    VALIDATION_ERROR = "ERR_1000"
    UNKNOWN_JOB_TYPE = "ERR_1001"
    QUEUE_FULL = "ERR_1002"
    SHUTTING_DOWN = "ERR_1003"

    # Persistence errors (2xxx)
    PERSISTENCE_ERROR = "ERR_2000"
    INVALID_TRANSITION = "ERR_2001"

    # Execution errors (3xxx)
    EXECUTION_ERROR = "ERR_3000"
    ATTEMPT_TIMEOUT = "ERR_3001"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    INVALID_CONFIG = "ERR_6001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Which job, tenant and operation an error belongs to."""

    job_id: str | None = None
    tenant_id: str | None = None
    job_type: str | None = None
    attempt: int = 1
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        fields = {k: v for k, v in asdict(self).items() if k != "extra"}
        fields.update(self.extra)
        return fields


class JobEngineError(Exception):
    """
    Root of the engine's exception tree.

    Subclasses set ``code`` and ``retryable`` as class attributes; both
    can be overridden per instance. ``cause`` keeps the lower-level
    exception (store driver, executor) that was translated.
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for structured logs."""
        return {
            "error_type": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": None if self.cause is None else str(self.cause),
        }


# =============================================================================
# Admission Errors
# =============================================================================


class ValidationError(JobEngineError):
    """Submission rejected before enqueue. Never persisted as a failed job."""

    code = ErrorCode.VALIDATION_ERROR
    retryable = False


class UnknownJobTypeError(ValidationError):
    """Job type is not a supported kind or has no registered executor."""

    code = ErrorCode.UNKNOWN_JOB_TYPE

    def __init__(
        self,
        message: str = "Unknown job type",
        *,
        job_type: str | None = None,
        **kwargs,
    ):
        if job_type is not None:
            message = f"Unknown job type: {job_type}"
        super().__init__(message, **kwargs)
        self.job_type = job_type


class QueueFullError(JobEngineError):
    """Tenant queue is at capacity. Submitter may try again later."""

    code = ErrorCode.QUEUE_FULL
    retryable = True

    def __init__(
        self,
        message: str = "Tenant queue is full",
        *,
        tenant_id: str | None = None,
        capacity: int | None = None,
        **kwargs,
    ):
        if tenant_id is not None:
            message = f"Queue for tenant {tenant_id} is full"
            if capacity is not None:
                message += f" ({capacity} jobs pending)"
        super().__init__(message, **kwargs)
        self.tenant_id = tenant_id
        self.capacity = capacity


class ShuttingDownError(JobEngineError):
    """Submission arrived after shutdown began."""

    code = ErrorCode.SHUTTING_DOWN
    retryable = False

    def __init__(self, message: str = "Job manager is shutting down", **kwargs):
        super().__init__(message, **kwargs)


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(JobEngineError):
    """Job record store is unavailable or rejected a write."""

    code = ErrorCode.PERSISTENCE_ERROR
    retryable = True


class InvalidTransitionError(PersistenceError):
    """Requested status change is not allowed by the job state machine."""

    code = ErrorCode.INVALID_TRANSITION
    retryable = False


# =============================================================================
# Execution Errors
# =============================================================================


class ExecutionError(JobEngineError):
    """Task executor failure. Retried up to the policy limit."""

    code = ErrorCode.EXECUTION_ERROR
    retryable = True


class AttemptTimeoutError(ExecutionError):
    """A single execution attempt exceeded its deadline."""

    code = ErrorCode.ATTEMPT_TIMEOUT

    def __init__(
        self,
        message: str = "Attempt timed out",
        *,
        timeout: float | None = None,
        **kwargs,
    ):
        if timeout is not None:
            message = f"Attempt timed out after {timeout:g}s"
        super().__init__(message, **kwargs)
        self.timeout = timeout


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(JobEngineError):
    """Settings could not be loaded."""

    code = ErrorCode.CONFIG_ERROR
    retryable = False


class InvalidConfigError(ConfigError):
    """Settings were loaded but failed validation."""

    code = ErrorCode.INVALID_CONFIG


def is_retryable(error: BaseException) -> bool:
    """
    Whether resubmitting after ``error`` could succeed.

    The retry policy retries every executor failure regardless; this is
    for submitters deciding what to do with an admission error.
    """
    if isinstance(error, JobEngineError):
        return error.retryable
    return isinstance(error, _TRANSIENT_ERRORS)


__all__ = [
    # Base
    "ErrorCode",
    "ErrorContext",
    "JobEngineError",
    # Admission errors
    "ValidationError",
    "UnknownJobTypeError",
    "QueueFullError",
    "ShuttingDownError",
    # Persistence errors
    "PersistenceError",
    "InvalidTransitionError",
    # Execution errors
    "ExecutionError",
    "AttemptTimeoutError",
    # Config errors
    "ConfigError",
    "InvalidConfigError",
    # Utilities
    "is_retryable",
]
