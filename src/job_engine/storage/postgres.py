"""
PostgreSQL job record store.

Tables:
- jobs: one row per job, logs kept as a JSON array in a TEXT column
- job_artifacts: evidence files recorded against a job
"""

from __future__ import annotations

import asyncio
import json
import re
import uuid
from datetime import datetime, timezone
from typing import Any

import asyncpg

from ..jobs.store import JobStore
from ..jobs.types import ArtifactRecord, JobRecord, JobStatus, JobType


def _sanitize_table_name(name: str) -> str:
    """Ensure the table name is safe for SQL interpolation."""
    if not name:
        raise ValueError("table_name cannot be empty")
    if not re.fullmatch(r"[a-zA-Z0-9_]+", name):
        raise ValueError(f"Invalid table name: {name!r}")
    return name


def _to_timestamptz(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _to_epoch(value: Any) -> float | None:
    if value is None:
        return None
    if hasattr(value, "timestamp"):
        return value.timestamp()
    return float(value)


class PostgresJobStore(JobStore):
    """PostgreSQL implementation of JobStore.

    Table schema (jobs):
    - job_id (TEXT PRIMARY KEY)
    - tenant_id, job_type, status (TEXT)
    - error, logs (TEXT; logs holds a JSON array)
    - created_at, started_at, completed_at (TIMESTAMPTZ)
    """

    JOBS_TABLE = "jobs"
    ARTIFACTS_TABLE = "job_artifacts"

    def __init__(
        self,
        pool: asyncpg.Pool,
        *,
        jobs_table: str | None = None,
        artifacts_table: str | None = None,
    ):
        self._pool = pool
        self._jobs = _sanitize_table_name(jobs_table or self.JOBS_TABLE)
        self._artifacts = _sanitize_table_name(artifacts_table or self.ARTIFACTS_TABLE)
        self._ensured = False
        self._lock = asyncio.Lock()

    async def _ensure_tables(self) -> None:
        """Create the tables if they don't exist."""
        async with self._lock:
            if self._ensured:
                return

            ddl = f'''
            CREATE TABLE IF NOT EXISTS "{self._jobs}" (
                job_id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL,
                job_type TEXT NOT NULL,
                status TEXT NOT NULL,
                error TEXT,
                logs TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                started_at TIMESTAMPTZ,
                completed_at TIMESTAMPTZ
            );
            CREATE TABLE IF NOT EXISTS "{self._artifacts}" (
                artifact_id TEXT PRIMARY KEY,
                job_id TEXT NOT NULL REFERENCES "{self._jobs}"(job_id) ON DELETE CASCADE,
                tenant_id TEXT NOT NULL,
                filename TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            CREATE INDEX IF NOT EXISTS "{self._jobs}_tenant_id_idx" ON "{self._jobs}" (tenant_id);
            CREATE INDEX IF NOT EXISTS "{self._jobs}_status_idx" ON "{self._jobs}" (status);
            CREATE INDEX IF NOT EXISTS "{self._artifacts}_job_id_idx" ON "{self._artifacts}" (job_id);
            '''

            async with self._pool.acquire() as conn:
                for stmt in [s.strip() for s in ddl.split(";") if s.strip()]:
                    await conn.execute(stmt)

            self._ensured = True

    def _row_to_job(self, row: Any) -> JobRecord:
        return JobRecord(
            job_id=row["job_id"],
            tenant_id=row["tenant_id"],
            job_type=JobType(row["job_type"]),
            status=JobStatus(row["status"]),
            error=row["error"],
            logs=json.loads(row["logs"]) if row["logs"] else [],
            created_at=_to_epoch(row["created_at"]),
            started_at=_to_epoch(row["started_at"]),
            completed_at=_to_epoch(row["completed_at"]),
        )

    def _row_to_artifact(self, row: Any) -> ArtifactRecord:
        return ArtifactRecord(
            artifact_id=row["artifact_id"],
            job_id=row["job_id"],
            tenant_id=row["tenant_id"],
            filename=row["filename"],
            created_at=_to_epoch(row["created_at"]),
        )

    async def create_job(
        self,
        job_id: str,
        tenant_id: str,
        job_type: JobType,
    ) -> JobRecord:
        await self._ensure_tables()

        job = JobRecord(job_id=job_id, tenant_id=tenant_id, job_type=job_type)
        q = f'''
        INSERT INTO "{self._jobs}" (job_id, tenant_id, job_type, status, created_at)
        VALUES ($1, $2, $3, $4, $5)
        '''

        async with self._pool.acquire() as conn:
            try:
                await conn.execute(
                    q,
                    job.job_id,
                    job.tenant_id,
                    job.job_type.value,
                    job.status.value,
                    _to_timestamptz(job.created_at),
                )
            except asyncpg.UniqueViolationError:
                raise ValueError(f"Job {job_id} already exists")

        return job

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: str | None = None,
    ) -> JobRecord:
        await self._ensure_tables()

        async with self._pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    f'SELECT * FROM "{self._jobs}" WHERE job_id = $1 FOR UPDATE',
                    job_id,
                )
                if row is None:
                    raise KeyError(f"Job {job_id} not found")

                job = self._row_to_job(row).transition_to(status, error=error)
                await conn.execute(
                    f'''
                    UPDATE "{self._jobs}"
                    SET status = $2, error = $3, started_at = $4, completed_at = $5
                    WHERE job_id = $1
                    ''',
                    job_id,
                    job.status.value,
                    job.error,
                    _to_timestamptz(job.started_at),
                    _to_timestamptz(job.completed_at),
                )
        return job

    async def save_logs(self, job_id: str, lines: list[str]) -> None:
        await self._ensure_tables()

        async with self._pool.acquire() as conn:
            result = await conn.execute(
                f'UPDATE "{self._jobs}" SET logs = $2 WHERE job_id = $1',
                job_id,
                json.dumps(list(lines)),
            )
            if result == "UPDATE 0":
                raise KeyError(f"Job {job_id} not found")

    async def get_job(self, job_id: str) -> JobRecord | None:
        await self._ensure_tables()

        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(f'SELECT * FROM "{self._jobs}" WHERE job_id = $1', job_id)
            if row is None:
                return None
            return self._row_to_job(row)

    async def list_jobs(
        self,
        tenant_id: str,
        limit: int = 20,
        status: JobStatus | None = None,
    ) -> tuple[list[JobRecord], int]:
        await self._ensure_tables()

        conditions = ["tenant_id = $1"]
        params: list[Any] = [tenant_id]
        if status is not None:
            conditions.append("status = $2")
            params.append(status.value)
        where = " AND ".join(conditions)

        async with self._pool.acquire() as conn:
            total = await conn.fetchval(f'SELECT COUNT(*) FROM "{self._jobs}" WHERE {where}', *params)
            rows = await conn.fetch(
                f'''
                SELECT * FROM "{self._jobs}" WHERE {where}
                ORDER BY created_at DESC
                LIMIT ${len(params) + 1}
                ''',
                *params,
                limit,
            )

        return [self._row_to_job(r) for r in rows], int(total or 0)

    async def add_artifact(
        self,
        job_id: str,
        tenant_id: str,
        filename: str,
    ) -> ArtifactRecord:
        await self._ensure_tables()

        artifact = ArtifactRecord(
            artifact_id=str(uuid.uuid4()),
            job_id=job_id,
            tenant_id=tenant_id,
            filename=filename,
        )
        async with self._pool.acquire() as conn:
            await conn.execute(
                f'''
                INSERT INTO "{self._artifacts}" (artifact_id, job_id, tenant_id, filename, created_at)
                VALUES ($1, $2, $3, $4, $5)
                ''',
                artifact.artifact_id,
                artifact.job_id,
                artifact.tenant_id,
                artifact.filename,
                _to_timestamptz(artifact.created_at),
            )
        return artifact

    async def list_artifacts(self, job_id: str) -> list[ArtifactRecord]:
        await self._ensure_tables()

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                f'SELECT * FROM "{self._artifacts}" WHERE job_id = $1 ORDER BY created_at',
                job_id,
            )
        return [self._row_to_artifact(r) for r in rows]


__all__ = ["PostgresJobStore"]
