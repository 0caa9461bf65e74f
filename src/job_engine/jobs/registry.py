"""
Task executor registry.

Maps each JobType to the injected coroutine that performs the actual
automation. The engine never looks inside an executor; it only resolves
one per job and runs it through the retry policy.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import UnknownJobTypeError
from .types import JobType

if TYPE_CHECKING:
    from ..context import JobContext
    from .logger import JobLogger


logger = logging.getLogger(__name__)

ArtifactCapture = Callable[[str], Awaitable[None]]
TaskExecutor = Callable[["JobContext", Any, "JobLogger", ArtifactCapture], Awaitable[None]]


@dataclass(frozen=True)
class TaskSpec:
    """A registered executor and its retry budget."""
    job_type: JobType
    executor: TaskExecutor
    max_attempts: int | None = None  # None = engine default


class TaskRegistry:
    """Registry of task executors keyed by job type.

    Executors have the signature
    ``async (context, tenant_config, logger, capture) -> None`` and signal
    failure by raising.

    Example:
        registry = TaskRegistry()

        @registry.task(JobType.TEST_LOGIN, max_attempts=1)
        async def test_login(ctx, cfg, log, capture):
            log.log("Starting login test")
            ...
    """

    def __init__(self):
        self._tasks: dict[JobType, TaskSpec] = {}

    def register(
        self,
        job_type: JobType | str,
        executor: TaskExecutor,
        *,
        max_attempts: int | None = None,
    ) -> TaskRegistry:
        """Register the executor for ``job_type``.

        Returns:
            Self for chaining

        Raises:
            ValueError: If the type already has an executor or
                max_attempts < 1
        """
        job_type = JobType.parse(job_type)
        if job_type in self._tasks:
            raise ValueError(f"Executor for '{job_type.value}' is already registered")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._tasks[job_type] = TaskSpec(job_type, executor, max_attempts)
        logger.info(f"Registered executor for job type: {job_type.value}")
        return self

    def task(
        self,
        job_type: JobType | str,
        *,
        max_attempts: int | None = None,
    ) -> Callable[[TaskExecutor], TaskExecutor]:
        """Decorator form of :meth:`register`."""

        def decorator(func: TaskExecutor) -> TaskExecutor:
            self.register(job_type, func, max_attempts=max_attempts)
            return func

        return decorator

    def resolve(self, job_type: JobType | str) -> TaskSpec:
        """Get the TaskSpec for ``job_type``.

        Raises:
            UnknownJobTypeError: If the type is unsupported or unregistered
        """
        job_type = JobType.parse(job_type)
        spec = self._tasks.get(job_type)
        if spec is None:
            raise UnknownJobTypeError(f"No executor registered for job type: {job_type.value}")
        return spec

    def missing(self) -> list[JobType]:
        """Job types with no executor, for startup checks."""
        return [t for t in JobType if t not in self._tasks]

    def __contains__(self, job_type: object) -> bool:
        return job_type in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)


__all__ = [
    "ArtifactCapture",
    "TaskExecutor",
    "TaskSpec",
    "TaskRegistry",
]
