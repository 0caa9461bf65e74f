"""
Shared test fixtures for job-engine tests.

This module provides:
- In-memory store and fast engine configuration
- A diagnostic logger that records what it was sent
- Executor factories (succeeding, failing, blocking)
- Polling helpers for waiting on job completion
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from job_engine.config import EngineConfig
from job_engine.jobs import (
    InMemoryJobStore,
    JobManager,
    JobRecord,
    JobStatus,
    JobType,
    TaskRegistry,
    WorkerState,
)
from job_engine.logging import StructuredLogger

# =============================================================================
# Recording Helpers
# =============================================================================


class RecordingLogger(StructuredLogger):
    """StructuredLogger that keeps (level, message, fields) tuples."""

    def __init__(self):
        super().__init__("job_engine.tests", level="DEBUG", json_output=False)
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def debug(self, message: str, **kwargs) -> None:
        self.records.append(("debug", message, kwargs))

    def info(self, message: str, **kwargs) -> None:
        self.records.append(("info", message, kwargs))

    def warning(self, message: str, **kwargs) -> None:
        self.records.append(("warning", message, kwargs))

    def error(self, message: str, **kwargs) -> None:
        self.records.append(("error", message, kwargs))

    def log_job_event(self, event_type: str, message: str, **kwargs) -> None:
        self.records.append(("event", event_type, kwargs))

    def log_error(self, error: Exception, message: str | None = None, **kwargs) -> None:
        self.records.append(("error", message or str(error), {"error": error, **kwargs}))

    def messages(self, level: str | None = None) -> list[str]:
        return [m for lvl, m, _ in self.records if level is None or lvl == level]


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _flaky_executor(failures: int, calls: list[int] | None = None):
    """Executor that fails ``failures`` times, then succeeds."""
    state = {"count": 0}

    async def executor(ctx, tenant_config, log, capture):
        state["count"] += 1
        if calls is not None:
            calls.append(ctx.attempt)
        if state["count"] <= failures:
            raise RuntimeError(f"boom {state['count']}")
        log.log("executor done")

    return executor


async def noop_executor(ctx, tenant_config, log, capture):
    log.log("noop")


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture
def store():
    """Fresh in-memory job store."""
    return InMemoryJobStore()


@pytest.fixture
def diagnostics():
    """Recording diagnostic logger."""
    return RecordingLogger()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fast_config(tmp_path: Path):
    """Engine configuration with no backoff and a temp artifact root."""
    return EngineConfig(
        queue_size=10,
        max_attempts=3,
        base_delay=0.0,
        attempt_timeout=5.0,
        artifacts_dir=tmp_path / "artifacts",
    )


@pytest.fixture
def registry():
    """Registry with a no-op executor for every job type."""
    reg = TaskRegistry()
    for job_type in JobType:
        reg.register(job_type, noop_executor)
    return reg


@pytest.fixture
def make_manager(store, fast_config, diagnostics):
    """Factory building a JobManager over the shared store and config."""

    def factory(registry: TaskRegistry, **kwargs) -> JobManager:
        kwargs.setdefault("config", fast_config)
        kwargs.setdefault("logger", diagnostics)
        return JobManager(store, registry, **kwargs)

    return factory


@pytest.fixture
def wait_for_jobs(store):
    """Poll until every job is terminal and its worker has gone idle."""

    async def wait(
        manager: JobManager,
        jobs: list[JobRecord],
        timeout: float = 5.0,
    ) -> list[JobRecord]:
        async def settled() -> list[JobRecord]:
            while True:
                current = [await store.get_job(j.job_id) for j in jobs]
                tenants = {j.tenant_id for j in jobs}
                if all(c is not None and c.status.is_terminal for c in current) and all(
                    manager.worker_state(t) == WorkerState.IDLE for t in tenants
                ):
                    return current
                await asyncio.sleep(0.005)

        return await asyncio.wait_for(settled(), timeout)

    return wait


@pytest.fixture
def wait_for_status(store):
    """Poll until a job reaches ``status``."""

    async def wait(job_id: str, status: JobStatus, timeout: float = 5.0) -> JobRecord:
        async def reached() -> JobRecord:
            while True:
                job = await store.get_job(job_id)
                if job is not None and job.status == status:
                    return job
                await asyncio.sleep(0.005)

        return await asyncio.wait_for(reached(), timeout)

    return wait


@pytest.fixture
def gated_executor():
    """Executor that blocks each call until ``gate`` is set.

    Returns (executor, gate, started) where ``started`` collects job ids in
    the order executors began.
    """
    gate = asyncio.Event()
    started: list[str] = []

    async def executor(ctx, tenant_config, log, capture):
        started.append(ctx.job_id)
        await gate.wait()

    return executor, gate, started


@pytest.fixture
def make_flaky():
    """Factory for executors failing ``failures`` times before succeeding."""
    return _flaky_executor
