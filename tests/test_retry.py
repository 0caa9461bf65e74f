"""
Tests for the retry policy.
"""

import pytest

from job_engine.jobs import RetryPolicy


class TestDelays:
    """Test linear backoff computation."""

    def test_first_attempt_has_no_delay(self):
        policy = RetryPolicy(base_delay=2.0)

        assert policy.delay_before(1) == 0

    def test_linear_growth(self):
        """Delay before attempt i is (i - 1) * base_delay."""
        policy = RetryPolicy(base_delay=2.0)

        assert [policy.delay_before(i) for i in range(1, 5)] == [0, 2.0, 4.0, 6.0]

    def test_negative_base_delay_rejected(self):
        with pytest.raises(ValueError, match="base_delay cannot be negative"):
            RetryPolicy(base_delay=-1)


class TestExecute:
    """Test RetryPolicy.execute."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, recording_sleep):
        """A successful first attempt never sleeps."""
        policy = RetryPolicy(2.0, sleep=recording_sleep)

        async def op(attempt):
            return f"ok-{attempt}"

        assert await policy.execute(3, op) == "ok-1"
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_until_success(self, recording_sleep):
        """Two failures then success sleeps 2s then 4s."""
        policy = RetryPolicy(2.0, sleep=recording_sleep)
        attempts = []

        async def op(attempt):
            attempts.append(attempt)
            if attempt < 3:
                raise RuntimeError(f"fail {attempt}")
            return "done"

        assert await policy.execute(3, op) == "done"
        assert attempts == [1, 2, 3]
        assert recording_sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_raises_last_error(self, recording_sleep):
        """When every attempt fails, only the final error surfaces."""
        policy = RetryPolicy(1.0, sleep=recording_sleep)

        async def op(attempt):
            raise RuntimeError(f"fail {attempt}")

        with pytest.raises(RuntimeError, match="fail 3"):
            await policy.execute(3, op)

        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self, recording_sleep):
        policy = RetryPolicy(2.0, sleep=recording_sleep)

        async def op(attempt):
            raise ValueError("nope")

        with pytest.raises(ValueError, match="nope"):
            await policy.execute(1, op)

        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_zero_attempts_rejected(self, recording_sleep):
        policy = RetryPolicy(2.0, sleep=recording_sleep)
        calls = []

        async def op(attempt):
            calls.append(attempt)

        with pytest.raises(ValueError, match="max_attempts must be at least 1"):
            await policy.execute(0, op)

        assert calls == []

    @pytest.mark.asyncio
    async def test_on_failure_hook(self, recording_sleep):
        """Hook sees each failure and the delay before the next attempt."""
        policy = RetryPolicy(2.0, sleep=recording_sleep)
        seen = []

        async def op(attempt):
            raise RuntimeError(f"fail {attempt}")

        def on_failure(attempt, error, next_delay):
            seen.append((attempt, str(error), next_delay))

        with pytest.raises(RuntimeError):
            await policy.execute(3, op, on_failure=on_failure)

        assert seen == [
            (1, "fail 1", 2.0),
            (2, "fail 2", 4.0),
            (3, "fail 3", None),
        ]
