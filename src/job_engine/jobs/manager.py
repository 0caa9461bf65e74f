"""
Job manager for admission and shutdown.

This module provides the JobManager that owns the tenant -> worker map,
admits new jobs, lazily starts one worker per tenant and coordinates
graceful shutdown.
"""

from __future__ import annotations

import asyncio
import uuid

from ..config import EngineConfig
from ..errors import ErrorContext, PersistenceError, ShuttingDownError, ValidationError
from ..logging import StructuredLogger, get_logger
from .registry import TaskRegistry
from .retry import RetryPolicy
from .store import JobStore
from .types import JobRecord, JobStatus, JobType
from .worker import EvidenceCapturer, TenantConfigProvider, TenantWorker, WorkerState


class JobManager:
    """Runs jobs for many tenants, one at a time per tenant.

    The JobManager is responsible for:
    - Validating and persisting submissions
    - Creating each tenant's queue and worker exactly once
    - Fail-fast backpressure when a tenant's queue is full
    - Graceful shutdown that lets running jobs finish

    Execution failures never surface here; they are recorded on the job
    and observed by reading it back from the store.
    """

    def __init__(
        self,
        store: JobStore,
        registry: TaskRegistry,
        *,
        config: EngineConfig | None = None,
        tenant_configs: TenantConfigProvider | None = None,
        capturer: EvidenceCapturer | None = None,
        retry: RetryPolicy | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._store = store
        self._registry = registry
        self._config = config or EngineConfig()
        self._tenant_configs = tenant_configs
        self._capturer = capturer
        self._retry = retry or RetryPolicy(self._config.base_delay)
        self._logger = logger or get_logger()

        self._workers: dict[str, TenantWorker] = {}
        self._lock = asyncio.Lock()
        self._shutting_down = False

        missing = registry.missing()
        if missing:
            self._logger.warning(
                "Job types without an executor will be rejected",
                job_types=[t.value for t in missing],
            )

    @property
    def store(self) -> JobStore:
        return self._store

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def tenants(self) -> list[str]:
        return list(self._workers)

    async def submit(self, tenant_id: str, job_type: JobType | str) -> JobRecord:
        """Create a pending job and queue it on the tenant's worker.

        Raises:
            ShuttingDownError: If shutdown has begun
            ValidationError: If the job type is unsupported/unregistered
                or the tenant id is empty
            QueueFullError: If the tenant already has a full queue
            PersistenceError: If the job record could not be created
        """
        if self._shutting_down:
            raise ShuttingDownError(context=ErrorContext(tenant_id=tenant_id, operation="submit"))
        if not tenant_id:
            raise ValidationError("tenant_id is required", context=ErrorContext(operation="submit"))

        job_type = self._registry.resolve(job_type).job_type

        worker = await self._ensure_worker(tenant_id)
        worker.reserve()

        job_id = str(uuid.uuid4())
        try:
            job = await self._store.create_job(job_id, tenant_id, job_type)
        except Exception as e:
            worker.release()
            raise PersistenceError(
                f"Failed to create job: {e}",
                context=ErrorContext(
                    job_id=job_id,
                    tenant_id=tenant_id,
                    job_type=job_type.value,
                    operation="create_job",
                ),
                cause=e,
            ) from e

        async with self._lock:
            admitted = not self._shutting_down
            if admitted:
                worker.enqueue(job)
            else:
                worker.release()
        if not admitted:
            await self._reject_after_shutdown(job)

        self._logger.log_job_event(
            "job.queued",
            f"Queued job {job.job_id}",
            job_id=job.job_id,
            tenant_id=tenant_id,
            job_type=job_type.value,
            queue_depth=worker.depth,
        )
        return job

    async def _reject_after_shutdown(self, job: JobRecord) -> None:
        """Fail a job whose record was created while shutdown began, then refuse it."""
        context = ErrorContext(
            job_id=job.job_id,
            tenant_id=job.tenant_id,
            job_type=job.job_type.value,
            operation="submit",
        )
        error = ShuttingDownError(context=context)
        try:
            await self._store.update_status(job.job_id, JobStatus.FAILED, error.message)
        except Exception as e:
            self._logger.log_error(e, "Failed to mark rejected job as failed", job_id=job.job_id)
        raise error

    async def _ensure_worker(self, tenant_id: str) -> TenantWorker:
        """Get the tenant's worker, creating and starting it on first use."""
        async with self._lock:
            if self._shutting_down:
                raise ShuttingDownError(context=ErrorContext(tenant_id=tenant_id, operation="submit"))

            worker = self._workers.get(tenant_id)
            if worker is None:
                worker = TenantWorker(
                    tenant_id,
                    store=self._store,
                    registry=self._registry,
                    retry=self._retry,
                    config=self._config,
                    diagnostics=self._logger,
                    tenant_configs=self._tenant_configs,
                    capturer=self._capturer,
                )
                self._workers[tenant_id] = worker
                worker.start()
                self._logger.info("Started worker", tenant_id=tenant_id)
            return worker

    def queue_depth(self, tenant_id: str) -> int:
        worker = self._workers.get(tenant_id)
        return worker.depth if worker else 0

    def worker_state(self, tenant_id: str) -> WorkerState | None:
        worker = self._workers.get(tenant_id)
        return worker.state if worker else None

    async def shutdown(self) -> None:
        """Stop every worker after its current job and wait for them.

        Safe to call more than once. Jobs still queued stay pending.
        """
        async with self._lock:
            self._shutting_down = True
            workers = list(self._workers.values())

        for worker in workers:
            worker.stop()

        results = await asyncio.gather(
            *(worker.wait_closed() for worker in workers),
            return_exceptions=True,
        )
        for worker, result in zip(workers, results):
            if isinstance(result, BaseException):
                self._logger.log_error(result, "Worker exited with an error", tenant_id=worker.tenant_id)

        self._logger.info("Job manager stopped", workers=len(workers))

    async def __aenter__(self) -> JobManager:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()


__all__ = ["JobManager"]
