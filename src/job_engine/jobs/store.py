"""
Job record store implementations.

This module provides the JobStore interface the engine persists through
and an in-memory implementation. The engine does not own persistence;
callers read job status, logs and artifacts straight from the store.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from .types import ArtifactRecord, JobRecord, JobStatus, JobType


class JobStore(ABC):
    """Abstract interface for job persistence.

    Implementations must be safe for concurrent access from many
    tenant workers and submitters.
    """

    @abstractmethod
    async def create_job(
        self,
        job_id: str,
        tenant_id: str,
        job_type: JobType,
    ) -> JobRecord:
        """Create a new job record in PENDING state.

        Raises:
            ValueError: If job_id already exists
        """
        ...

    @abstractmethod
    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: str | None = None,
    ) -> JobRecord:
        """Move a job to ``status``.

        RUNNING stamps ``started_at``; terminal statuses stamp
        ``completed_at`` and store ``error``.

        Raises:
            KeyError: If the job doesn't exist
            InvalidTransitionError: If the transition is invalid
        """
        ...

    @abstractmethod
    async def save_logs(self, job_id: str, lines: list[str]) -> None:
        """Replace the stored log of a job with ``lines``.

        This is a full overwrite, not an append.
        """
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> JobRecord | None:
        """Get a job by ID."""
        ...

    @abstractmethod
    async def list_jobs(
        self,
        tenant_id: str,
        limit: int = 20,
        status: JobStatus | None = None,
    ) -> tuple[list[JobRecord], int]:
        """List a tenant's jobs, newest first.

        Returns:
            Tuple of (jobs, total) where total counts every match,
            ignoring ``limit``.
        """
        ...

    @abstractmethod
    async def add_artifact(
        self,
        job_id: str,
        tenant_id: str,
        filename: str,
    ) -> ArtifactRecord:
        """Record an artifact captured for a job."""
        ...

    @abstractmethod
    async def list_artifacts(self, job_id: str) -> list[ArtifactRecord]:
        """List a job's artifacts, oldest first."""
        ...


class InMemoryJobStore(JobStore):
    """In-memory job store implementation.

    Suitable for testing and single-process deployments.
    Thread-safe via asyncio.Lock.
    """

    def __init__(self):
        self._jobs: dict[str, JobRecord] = {}
        self._artifacts: dict[str, list[ArtifactRecord]] = {}
        self._lock = asyncio.Lock()

    async def create_job(
        self,
        job_id: str,
        tenant_id: str,
        job_type: JobType,
    ) -> JobRecord:
        async with self._lock:
            if job_id in self._jobs:
                raise ValueError(f"Job {job_id} already exists")

            job = JobRecord(job_id=job_id, tenant_id=tenant_id, job_type=job_type)
            self._jobs[job_id] = job
            return job

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: str | None = None,
    ) -> JobRecord:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise KeyError(f"Job {job_id} not found")

            job = job.transition_to(status, error=error)
            self._jobs[job_id] = job
            return job

    async def save_logs(self, job_id: str, lines: list[str]) -> None:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise KeyError(f"Job {job_id} not found")

            self._jobs[job_id] = job.with_logs(lines)

    async def get_job(self, job_id: str) -> JobRecord | None:
        async with self._lock:
            return self._jobs.get(job_id)

    async def list_jobs(
        self,
        tenant_id: str,
        limit: int = 20,
        status: JobStatus | None = None,
    ) -> tuple[list[JobRecord], int]:
        async with self._lock:
            jobs = [
                j for j in self._jobs.values()
                if j.tenant_id == tenant_id and (status is None or j.status == status)
            ]
            jobs.sort(key=lambda j: j.created_at, reverse=True)
            return jobs[:limit], len(jobs)

    async def add_artifact(
        self,
        job_id: str,
        tenant_id: str,
        filename: str,
    ) -> ArtifactRecord:
        async with self._lock:
            if job_id not in self._jobs:
                raise KeyError(f"Job {job_id} not found")

            artifact = ArtifactRecord(job_id=job_id, tenant_id=tenant_id, filename=filename)
            self._artifacts.setdefault(job_id, []).append(artifact)
            return artifact

    async def list_artifacts(self, job_id: str) -> list[ArtifactRecord]:
        async with self._lock:
            return list(self._artifacts.get(job_id, []))


__all__ = [
    "JobStore",
    "InMemoryJobStore",
]
