"""
Bounded retry with linear backoff.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")

FailureHook = Callable[[int, Exception, float | None], Any]


class RetryPolicy:
    """Run an operation up to ``max_attempts`` times.

    Before attempt ``i`` (1-indexed, ``i >= 2``) the policy waits
    ``(i - 1) * base_delay`` seconds. Every ``Exception`` counts as a
    failed attempt; only the last one is re-raised once attempts run out.
    """

    def __init__(
        self,
        base_delay: float = 2.0,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if base_delay < 0:
            raise ValueError("base_delay cannot be negative")
        self.base_delay = base_delay
        self._sleep = sleep

    def delay_before(self, attempt: int) -> float:
        """Backoff to wait before ``attempt`` (0 for the first one)."""
        return max(attempt - 1, 0) * self.base_delay

    async def execute(
        self,
        max_attempts: int,
        operation: Callable[[int], Awaitable[T]],
        *,
        on_failure: FailureHook | None = None,
    ) -> T:
        """Run ``operation(attempt)`` until it succeeds or attempts run out.

        Args:
            max_attempts: Total attempts allowed; 1 means no retry
            operation: Async callable receiving the 1-indexed attempt number
            on_failure: Called as ``on_failure(attempt, error, next_delay)``
                after each failed attempt; ``next_delay`` is None after the
                last one

        Raises:
            ValueError: If max_attempts < 1
            Exception: The last attempt's error when every attempt failed
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                await self._sleep(self.delay_before(attempt))

            try:
                return await operation(attempt)
            except Exception as e:
                last_error = e
                next_delay = self.delay_before(attempt + 1) if attempt < max_attempts else None
                if on_failure is not None:
                    on_failure(attempt, e, next_delay)

        assert last_error is not None
        raise last_error


__all__ = ["RetryPolicy"]
