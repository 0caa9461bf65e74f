"""
Storage adapters for the job engine.

This module provides persistent job record stores and a helper that
opens the store selected by configuration:
- memory: InMemoryJobStore (tests, single process)
- postgres: PostgresJobStore over an asyncpg pool
"""

from __future__ import annotations

import asyncpg

from ..config import StorageConfig
from ..jobs.store import InMemoryJobStore, JobStore
from .postgres import PostgresJobStore


async def open_store(config: StorageConfig) -> tuple[JobStore, asyncpg.Pool | None]:
    """Open the configured store.

    Returns:
        Tuple of (store, pool); pool is None for the memory backend and
        must be closed by the caller otherwise.
    """
    if config.backend == "memory":
        return InMemoryJobStore(), None

    pool = await asyncpg.create_pool(
        config.dsn,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
    )
    store = PostgresJobStore(
        pool,
        jobs_table=config.jobs_table,
        artifacts_table=config.artifacts_table,
    )
    return store, pool


__all__ = [
    "PostgresJobStore",
    "open_store",
]
