"""
Per-job log aggregation.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..logging import StructuredLogger
    from .store import JobStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobLogger:
    """Collects timestamped log lines for one job.

    Owned by the worker running the job; there is never more than one
    writer. Each line is also mirrored to the diagnostic logger so
    operators can follow jobs live.

    Usage:
        logger = JobLogger(job.job_id, store, diagnostics, tenant_id=job.tenant_id)
        logger.log("Starting login test")
        await logger.save()
    """

    TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

    def __init__(
        self,
        job_id: str,
        store: JobStore,
        diagnostics: StructuredLogger,
        *,
        tenant_id: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.job_id = job_id
        self.tenant_id = tenant_id
        self._store = store
        self._diagnostics = diagnostics
        self._clock = clock
        self._lines: list[str] = []

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def log(self, message: str) -> None:
        stamp = self._clock().astimezone(timezone.utc).strftime(self.TIMESTAMP_FORMAT)
        self._lines.append(f"{stamp} {message}")
        self._diagnostics.info(message, job_id=self.job_id, tenant_id=self.tenant_id)

    async def save(self) -> None:
        """Write every accumulated line to the store.

        The store replaces the job's previous log, so this always sends
        the complete set.
        """
        await self._store.save_logs(self.job_id, list(self._lines))

    def __len__(self) -> int:
        return len(self._lines)


__all__ = ["JobLogger"]
