"""
Engine runtime - wires settings, logging, storage and the job manager.

This module provides the JobEngine that assembles all components from
Settings and owns the resources (database pool) they need.
"""

from __future__ import annotations

from typing import Any

from .config import Settings, get_settings
from .jobs import (
    EvidenceCapturer,
    JobManager,
    JobRecord,
    JobStore,
    JobType,
    TaskRegistry,
    TenantConfigProvider,
)
from .logging import StructuredLogger
from .storage import open_store


class JobEngine:
    """Assembled engine: a JobManager plus the store it writes to.

    Example:
        ```python
        registry = TaskRegistry()
        registry.register(JobType.FULL, run_full_job)

        engine = await JobEngine.create(registry, tenant_configs=load_config)
        job = await engine.submit("tenant-123", "full")
        ...
        await engine.close()
        ```
    """

    def __init__(
        self,
        manager: JobManager,
        *,
        pool: Any = None,  # asyncpg.Pool
        logger: StructuredLogger | None = None,
    ):
        self._manager = manager
        self._pool = pool
        self._logger = logger

    @classmethod
    async def create(
        cls,
        registry: TaskRegistry,
        *,
        settings: Settings | None = None,
        store: JobStore | None = None,
        tenant_configs: TenantConfigProvider | None = None,
        capturer: EvidenceCapturer | None = None,
    ) -> JobEngine:
        """Create an engine from settings (environment by default)."""
        settings = settings or get_settings()
        logger = StructuredLogger(
            settings.logging.logger_name,
            level=settings.logging.level,
            json_output=settings.logging.format == "json",
        )

        pool = None
        if store is None:
            store, pool = await open_store(settings.storage)

        manager = JobManager(
            store,
            registry,
            config=settings.engine,
            tenant_configs=tenant_configs,
            capturer=capturer,
            logger=logger,
        )
        logger.info("Job engine started", storage=settings.storage.backend)
        return cls(manager, pool=pool, logger=logger)

    @property
    def manager(self) -> JobManager:
        return self._manager

    @property
    def store(self) -> JobStore:
        return self._manager.store

    async def submit(self, tenant_id: str, job_type: JobType | str) -> JobRecord:
        return await self._manager.submit(tenant_id, job_type)

    async def close(self) -> None:
        """Shut the manager down, then release the database pool."""
        await self._manager.shutdown()
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> JobEngine:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["JobEngine"]
