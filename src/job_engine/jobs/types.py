"""
Job types for the execution engine.

This module defines the JobStatus and JobType enums and the JobRecord
and ArtifactRecord dataclasses that form the core of the job lifecycle.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..errors import InvalidTransitionError, UnknownJobTypeError


class JobStatus(str, Enum):
    """Job lifecycle states.

    State transitions:
    - PENDING -> RUNNING (worker picked the job up)
    - RUNNING -> COMPLETED (executor succeeded)
    - RUNNING -> FAILED (retries exhausted or worker fault)
    """
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in {JobStatus.COMPLETED, JobStatus.FAILED}


class JobType(str, Enum):
    """Supported automation task kinds."""
    TEST_LOGIN = "test-login"
    TEST_CHECK = "test-check"
    FULL = "full"

    @classmethod
    def parse(cls, value: JobType | str) -> JobType:
        """Parse a submitted job type.

        Raises:
            UnknownJobTypeError: If the value is not a supported kind
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownJobTypeError(job_type=str(value)) from None


# PENDING -> FAILED covers jobs that could not be started or queued.
VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.RUNNING, JobStatus.FAILED},
    JobStatus.RUNNING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


@dataclass
class JobRecord:
    """Persistent record of one job."""
    job_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str = ""
    job_type: JobType = JobType.FULL

    status: JobStatus = JobStatus.PENDING
    error: str | None = None
    logs: list[str] = field(default_factory=list)

    created_at: float = field(default_factory=time.time)
    started_at: float | None = None
    completed_at: float | None = None

    def can_transition_to(self, new_status: JobStatus) -> bool:
        """Check if transition to new_status is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def transition_to(
        self,
        new_status: JobStatus,
        error: str | None = None,
        now: float | None = None,
    ) -> JobRecord:
        """Create a new JobRecord with updated status.

        ``started_at`` is stamped when entering RUNNING and ``completed_at``
        when entering a terminal state; neither ever moves before
        ``created_at``.

        Raises:
            InvalidTransitionError: If the transition is invalid
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Invalid transition: {self.status.value} -> {new_status.value}"
            )

        now = max(now if now is not None else time.time(), self.created_at)
        updates: dict[str, Any] = {"status": new_status}

        if new_status == JobStatus.RUNNING and self.started_at is None:
            updates["started_at"] = now

        if new_status.is_terminal:
            updates["completed_at"] = max(now, self.started_at or now)
            updates["error"] = error if new_status == JobStatus.FAILED else None

        return replace(self, logs=list(self.logs), **updates)

    def with_logs(self, lines: list[str]) -> JobRecord:
        """Create a new JobRecord whose logs are replaced by ``lines``."""
        return replace(self, logs=list(lines))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "job_id": self.job_id,
            "tenant_id": self.tenant_id,
            "job_type": self.job_type.value,
            "status": self.status.value,
            "error": self.error,
            "logs": list(self.logs),
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobRecord:
        """Deserialize from dictionary."""
        return cls(
            job_id=data.get("job_id", str(uuid.uuid4())),
            tenant_id=data.get("tenant_id", ""),
            job_type=JobType(data.get("job_type", JobType.FULL.value)),
            status=JobStatus(data.get("status", "pending")),
            error=data.get("error"),
            logs=list(data.get("logs") or []),
            created_at=data.get("created_at", time.time()),
            started_at=data.get("started_at"),
            completed_at=data.get("completed_at"),
        )


@dataclass(frozen=True)
class ArtifactRecord:
    """Evidence file captured while a job ran (e.g. a page rendering)."""
    job_id: str
    tenant_id: str
    filename: str
    artifact_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "job_id": self.job_id,
            "tenant_id": self.tenant_id,
            "filename": self.filename,
            "created_at": self.created_at,
        }


__all__ = [
    "JobStatus",
    "JobType",
    "JobRecord",
    "ArtifactRecord",
    "VALID_TRANSITIONS",
]
