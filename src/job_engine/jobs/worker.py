"""
Per-tenant worker.

A TenantWorker owns one tenant's bounded FIFO queue and a single asyncio
task that drains it, running jobs strictly one after another. Workers are
created lazily by the JobManager and only stop on engine shutdown.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import aiofiles
import aiofiles.os

from ..config import EngineConfig
from ..context import JobContext
from ..errors import AttemptTimeoutError, ErrorContext, QueueFullError
from ..logging import StructuredLogger, timed
from .logger import JobLogger
from .registry import ArtifactCapture, TaskRegistry, TaskSpec
from .retry import RetryPolicy
from .store import JobStore
from .types import JobRecord, JobStatus

TenantConfigProvider = Callable[[str], Awaitable[Any]]
EvidenceCapturer = Callable[[JobContext, str], Awaitable[bytes]]


class WorkerState(str, Enum):
    """Worker lifecycle states.

    - IDLE: waiting for the next job or the stop signal
    - EXECUTING: running one job, retries included
    - TERMINATED: exited after a stop signal
    """
    IDLE = "idle"
    EXECUTING = "executing"
    TERMINATED = "terminated"


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class TenantWorker:
    """Sequential executor bound to one tenant's queue."""

    FINAL_CAPTURE_LABEL = "error_final"

    def __init__(
        self,
        tenant_id: str,
        *,
        store: JobStore,
        registry: TaskRegistry,
        retry: RetryPolicy,
        config: EngineConfig,
        diagnostics: StructuredLogger,
        tenant_configs: TenantConfigProvider | None = None,
        capturer: EvidenceCapturer | None = None,
    ):
        self.tenant_id = tenant_id
        self._store = store
        self._registry = registry
        self._retry = retry
        self._config = config
        self._diagnostics = diagnostics
        self._tenant_configs = tenant_configs
        self._capturer = capturer

        self._queue: asyncio.Queue[JobRecord] = asyncio.Queue(maxsize=config.queue_size)
        self._reserved = 0
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._state = WorkerState.IDLE
        self.current_job_id: str | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name=f"tenant-worker:{self.tenant_id}")

    def stop(self) -> None:
        """Ask the worker to exit once its current job (if any) is done."""
        self._stop.set()

    async def wait_closed(self) -> None:
        if self._task is not None:
            await self._task

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def depth(self) -> int:
        """Jobs waiting in the queue, not counting the one executing."""
        return self._queue.qsize()

    # -------------------------------------------------------------------------
    # Admission
    # -------------------------------------------------------------------------

    def reserve(self) -> None:
        """Claim a queue slot ahead of persisting a job.

        Raises:
            QueueFullError: If queued jobs plus open reservations fill the queue
        """
        if self._queue.qsize() + self._reserved >= self._queue.maxsize:
            raise QueueFullError(
                tenant_id=self.tenant_id,
                capacity=self._queue.maxsize,
                context=ErrorContext(tenant_id=self.tenant_id, operation="submit"),
            )
        self._reserved += 1

    def release(self) -> None:
        """Give back a reservation whose job was never created."""
        self._reserved = max(self._reserved - 1, 0)

    def enqueue(self, job: JobRecord) -> None:
        """Turn a reservation into a queued job. Never blocks."""
        self.release()
        self._queue.put_nowait(job)

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    async def _run(self) -> None:
        self._diagnostics.debug("Worker started", tenant_id=self.tenant_id)
        try:
            while not self._stop.is_set():
                job = await self._next_job()
                if job is None:
                    break

                self._state = WorkerState.EXECUTING
                try:
                    await self.execute(job)
                finally:
                    self._state = WorkerState.IDLE
                    self._queue.task_done()
        finally:
            self._state = WorkerState.TERMINATED
            abandoned = self._queue.qsize()
            if abandoned:
                self._diagnostics.warning(
                    "Worker stopped with queued jobs left pending",
                    tenant_id=self.tenant_id,
                    abandoned=abandoned,
                )
            self._diagnostics.debug("Worker stopped", tenant_id=self.tenant_id)

    async def _next_job(self) -> JobRecord | None:
        """Wait for a job or the stop signal, whichever comes first."""
        getter = asyncio.ensure_future(self._queue.get())
        stopper = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait({getter, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for fut in (getter, stopper):
                if not fut.done():
                    fut.cancel()

        if stopper in done:
            if getter in done:
                job = getter.result()
                self._queue.task_done()
                self._diagnostics.warning(
                    "Job dequeued during shutdown left pending",
                    tenant_id=self.tenant_id,
                    job_id=job.job_id,
                )
            return None
        return getter.result()

    # -------------------------------------------------------------------------
    # Job execution
    # -------------------------------------------------------------------------

    async def execute(self, job: JobRecord) -> None:
        """Run one job to a terminal status.

        Never raises: faults are recorded on the job and the log is
        flushed on every exit path.
        """
        job_logger = JobLogger(job.job_id, self._store, self._diagnostics, tenant_id=job.tenant_id)
        self.current_job_id = job.job_id
        self._diagnostics.log_job_event(
            "job.started",
            f"Starting job {job.job_id} (type: {job.job_type.value})",
            job_id=job.job_id,
            tenant_id=job.tenant_id,
        )

        with timed() as timer:
            try:
                await self._run_job(job, job_logger)
            except Exception as e:
                self._diagnostics.log_error(e, "Unexpected fault while executing job", job_id=job.job_id)
                message = f"Unexpected error: {_error_message(e)}"
                job_logger.log(f"Job failed: {message}")
                await self._fail_after_fault(job, message)
            finally:
                try:
                    await job_logger.save()
                except Exception as e:
                    self._diagnostics.log_error(e, "Failed to save job logs", job_id=job.job_id)
                self.current_job_id = None

        self._diagnostics.info(
            f"Job {job.job_id} finished",
            job_id=job.job_id,
            tenant_id=job.tenant_id,
            duration_ms=round(timer.elapsed_ms, 1),
        )

    async def _run_job(self, job: JobRecord, job_logger: JobLogger) -> None:
        if await self._set_status(job, JobStatus.RUNNING) is None:
            message = "Could not mark job as running"
            job_logger.log(f"Job failed: {message}")
            await self._fail_after_fault(job, message)
            return

        spec = self._registry.resolve(job.job_type)
        max_attempts = spec.max_attempts or self._config.max_attempts
        context = JobContext.for_job(
            job,
            max_attempts=max_attempts,
            timeout=self._config.attempt_timeout,
            artifacts_root=self._config.artifacts_dir,
        )
        capture = self._capture_for(context, job_logger)

        try:
            tenant_config = await self._load_tenant_config(job.tenant_id)
        except Exception as e:
            message = f"Failed to get tenant config: {_error_message(e)}"
            job_logger.log(message)
            await self._set_status(job, JobStatus.FAILED, message)
            return

        try:
            await self._retry.execute(
                max_attempts,
                self._attempt_runner(spec, context, tenant_config, job_logger, capture),
                on_failure=self._attempt_failure_logger(job_logger, max_attempts),
            )
        except Exception as e:
            message = _error_message(e)
            job_logger.log(f"Job failed: {message}")
            await capture(self.FINAL_CAPTURE_LABEL)
            await self._set_status(job, JobStatus.FAILED, message)
            self._diagnostics.log_job_event(
                "job.failed",
                f"Job {job.job_id} failed",
                job_id=job.job_id,
                tenant_id=job.tenant_id,
                error=message,
            )
        else:
            job_logger.log("Job completed successfully")
            await self._set_status(job, JobStatus.COMPLETED)
            self._diagnostics.log_job_event(
                "job.completed",
                f"Job {job.job_id} completed",
                job_id=job.job_id,
                tenant_id=job.tenant_id,
            )

    def _attempt_runner(
        self,
        spec: TaskSpec,
        context: JobContext,
        tenant_config: Any,
        job_logger: JobLogger,
        capture: ArtifactCapture,
    ) -> Callable[[int], Awaitable[None]]:
        timeout = context.timeout

        async def run_attempt(attempt: int) -> None:
            job_logger.log(f"Starting attempt {attempt}/{context.max_attempts}")
            call = spec.executor(context.with_attempt(attempt), tenant_config, job_logger, capture)
            if timeout is None:
                await call
                return
            try:
                async with asyncio.timeout(timeout) as deadline:
                    await call
            except TimeoutError:
                if not deadline.expired():
                    raise
                raise AttemptTimeoutError(
                    timeout=timeout,
                    context=ErrorContext(
                        job_id=context.job_id,
                        tenant_id=context.tenant_id,
                        job_type=context.job_type.value,
                        attempt=attempt,
                        operation="execute",
                    ),
                ) from None

        return run_attempt

    @staticmethod
    def _attempt_failure_logger(
        job_logger: JobLogger,
        max_attempts: int,
    ) -> Callable[[int, Exception, float | None], None]:
        def on_failure(attempt: int, error: Exception, next_delay: float | None) -> None:
            job_logger.log(f"Attempt {attempt}/{max_attempts} failed: {_error_message(error)}")
            if next_delay is not None:
                job_logger.log(f"Retry {attempt + 1}/{max_attempts} after {next_delay:g}s...")

        return on_failure

    async def _load_tenant_config(self, tenant_id: str) -> Any:
        if self._tenant_configs is None:
            return None
        return await self._tenant_configs(tenant_id)

    def _capture_for(self, context: JobContext, job_logger: JobLogger) -> ArtifactCapture:
        """Build the evidence capture callable handed to executors.

        Failures are written to the job log and never raised.
        """

        async def capture(label: str) -> None:
            if self._capturer is None or context.artifact_dir is None:
                return
            filename = f"{label}.png"
            try:
                data = await self._capturer(context, label)
                await aiofiles.os.makedirs(context.artifact_dir, exist_ok=True)
                async with aiofiles.open(context.artifact_dir / filename, "wb") as f:
                    await f.write(data)
                await self._store.add_artifact(context.job_id, context.tenant_id, filename)
                job_logger.log(f"Artifact saved: {label}")
            except Exception as e:
                job_logger.log(f"Failed to save artifact {label}: {_error_message(e)}")

        return capture

    # -------------------------------------------------------------------------
    # Store helpers
    # -------------------------------------------------------------------------

    async def _set_status(
        self,
        job: JobRecord,
        status: JobStatus,
        error: str | None = None,
    ) -> JobRecord | None:
        """Persist a status change; store failures are logged, not raised."""
        try:
            return await self._store.update_status(job.job_id, status, error)
        except Exception as e:
            self._diagnostics.log_error(
                e,
                f"Failed to set job status to {status.value}",
                job_id=job.job_id,
                tenant_id=job.tenant_id,
            )
            return None

    async def _fail_after_fault(self, job: JobRecord, message: str) -> None:
        try:
            current = await self._store.get_job(job.job_id)
        except Exception as e:
            self._diagnostics.log_error(e, "Failed to read job after fault", job_id=job.job_id)
            return
        if current is not None and not current.status.is_terminal:
            await self._set_status(job, JobStatus.FAILED, message)


__all__ = [
    "WorkerState",
    "TenantWorker",
    "TenantConfigProvider",
    "EvidenceCapturer",
]
