"""
Execution context for task executors.

This module provides the JobContext handed to every task executor call,
carrying job identity, tenant scope, attempt number and tracing
information.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .jobs.types import JobRecord, JobType


@dataclass(frozen=True)
class JobContext:
    """Context that flows into one task executor attempt.

    - tenant_id: owner of the job; executors must not cross it
    - job_id: lifecycle record identifier
    - attempt: 1-indexed attempt number within the retry policy
    - timeout: per-attempt deadline in seconds, if any
    - artifact_dir: where evidence for this job is written
    """
    job_id: str
    tenant_id: str
    job_type: JobType
    attempt: int = 1
    max_attempts: int = 1
    timeout: float | None = None
    artifact_dir: Path | None = None

    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    @classmethod
    def for_job(
        cls,
        job: JobRecord,
        *,
        max_attempts: int = 1,
        timeout: float | None = None,
        artifacts_root: Path | None = None,
    ) -> JobContext:
        """Build the first-attempt context for ``job``."""
        artifact_dir = None
        if artifacts_root is not None:
            artifact_dir = Path(artifacts_root) / job.tenant_id / job.job_id
        return cls(
            job_id=job.job_id,
            tenant_id=job.tenant_id,
            job_type=job.job_type,
            max_attempts=max_attempts,
            timeout=timeout,
            artifact_dir=artifact_dir,
        )

    def with_attempt(self, attempt: int) -> JobContext:
        """Create a new context for a specific attempt, keeping the trace."""
        return replace(self, attempt=attempt, metadata=dict(self.metadata))

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt >= self.max_attempts

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "tenant_id": self.tenant_id,
            "job_type": self.job_type.value,
            "attempt": self.attempt,
            "max_attempts": self.max_attempts,
            "timeout": self.timeout,
            "artifact_dir": str(self.artifact_dir) if self.artifact_dir else None,
            "trace_id": self.trace_id,
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
        }


__all__ = ["JobContext"]
