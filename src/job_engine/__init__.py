"""
job-engine - per-tenant serialized execution of fallible automation jobs.

This package provides:
- Job admission with fail-fast per-tenant backpressure
- One sequential worker per tenant, tenants running concurrently
- Bounded retries with linear backoff
- Per-job log aggregation mirrored to a structured diagnostic log
- Graceful shutdown that lets running jobs finish

Example:
    ```python
    from job_engine import JobManager, InMemoryJobStore, JobType, TaskRegistry

    registry = TaskRegistry()

    @registry.task(JobType.TEST_LOGIN, max_attempts=1)
    async def test_login(ctx, tenant_config, log, capture):
        log.log("Starting login test")

    async with JobManager(InMemoryJobStore(), registry) as manager:
        job = await manager.submit("tenant-123", "test-login")
    ```
"""

from .config import EngineConfig, LoggingConfig, Settings, StorageConfig
from .context import JobContext
from .errors import (
    AttemptTimeoutError,
    ErrorCode,
    ErrorContext,
    ExecutionError,
    InvalidTransitionError,
    JobEngineError,
    PersistenceError,
    QueueFullError,
    ShuttingDownError,
    UnknownJobTypeError,
    ValidationError,
)
from .jobs import (
    ArtifactRecord,
    InMemoryJobStore,
    JobLogger,
    JobManager,
    JobRecord,
    JobStatus,
    JobStore,
    JobType,
    RetryPolicy,
    TaskRegistry,
    TenantWorker,
    WorkerState,
)
from .logging import StructuredLogger, configure_logging, get_logger
from .runtime import JobEngine

__version__ = "0.1.0"

__all__ = [
    # Config
    "EngineConfig",
    "LoggingConfig",
    "StorageConfig",
    "Settings",
    # Context
    "JobContext",
    # Errors
    "ErrorCode",
    "ErrorContext",
    "JobEngineError",
    "ValidationError",
    "UnknownJobTypeError",
    "QueueFullError",
    "ShuttingDownError",
    "PersistenceError",
    "InvalidTransitionError",
    "ExecutionError",
    "AttemptTimeoutError",
    # Jobs
    "ArtifactRecord",
    "InMemoryJobStore",
    "JobLogger",
    "JobManager",
    "JobRecord",
    "JobStatus",
    "JobStore",
    "JobType",
    "RetryPolicy",
    "TaskRegistry",
    "TenantWorker",
    "WorkerState",
    # Logging
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    # Runtime
    "JobEngine",
]
