"""
Job record store configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from .base import StorageBackendType


@dataclass
class StorageConfig:
    """Configuration for the job record store."""

    backend: StorageBackendType = "memory"
    dsn: str | None = None
    jobs_table: str = "jobs"
    artifacts_table: str = "job_artifacts"
    pool_min_size: int = 1
    pool_max_size: int = 10

    def __post_init__(self):
        if self.backend not in ("memory", "postgres"):
            raise ValueError(f"Invalid storage backend: {self.backend}")
        if self.backend == "postgres" and not self.dsn:
            raise ValueError("dsn is required for the postgres backend")
        if self.pool_min_size < 1:
            raise ValueError("pool_min_size must be at least 1")
        if self.pool_max_size < self.pool_min_size:
            raise ValueError("pool_max_size must be >= pool_min_size")


__all__ = ["StorageConfig"]
