"""
Job execution engine.

This module provides the job lifecycle machinery:
- JobRecord: Persisted job state
- JobManager: Admission and shutdown across tenants
- TenantWorker: Sequential per-tenant execution
- RetryPolicy: Bounded retries with linear backoff
- JobLogger: Per-job log aggregation
- JobStore: Persistence interface with implementations
"""

from .types import (
    JobStatus,
    JobType,
    JobRecord,
    ArtifactRecord,
    VALID_TRANSITIONS,
)
from .store import (
    JobStore,
    InMemoryJobStore,
)
from .logger import JobLogger
from .retry import RetryPolicy
from .registry import (
    ArtifactCapture,
    TaskExecutor,
    TaskRegistry,
    TaskSpec,
)
from .worker import (
    EvidenceCapturer,
    TenantConfigProvider,
    TenantWorker,
    WorkerState,
)
from .manager import JobManager

__all__ = [
    "JobStatus",
    "JobType",
    "JobRecord",
    "ArtifactRecord",
    "VALID_TRANSITIONS",
    "JobStore",
    "InMemoryJobStore",
    "JobLogger",
    "RetryPolicy",
    "ArtifactCapture",
    "TaskExecutor",
    "TaskRegistry",
    "TaskSpec",
    "EvidenceCapturer",
    "TenantConfigProvider",
    "TenantWorker",
    "WorkerState",
    "JobManager",
]
