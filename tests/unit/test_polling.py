"""
Unit tests for CancellationToken and poll_until.

Tests verify:
- Interruptible sleeps wake on cancellation
- Polls stop on success, on expiry, and on cancellation
"""
import asyncio
import time

import pytest

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.errors import UserStop
from ebbtide.core.polling import PollPolicy, poll_until


class TestCancellationToken:
    """Tests for the cooperative stop signal."""

    @pytest.mark.asyncio
    async def test_sleep_completes_when_not_cancelled(self):
        token = CancellationToken()
        await token.sleep(0.01)
        assert not token.cancelled

    @pytest.mark.asyncio
    async def test_cancel_wakes_sleep(self):
        """Verify a long sleep unwinds promptly after cancel()."""
        token = CancellationToken()

        async def cancel_soon():
            await asyncio.sleep(0.02)
            token.cancel("operator stop")

        started = time.monotonic()
        asyncio.create_task(cancel_soon())
        with pytest.raises(UserStop):
            await token.sleep(10)
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_sleep_after_cancel_raises_immediately(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(UserStop):
            await token.sleep(0)

    def test_first_reason_is_kept(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"
        with pytest.raises(UserStop, match="first"):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self):
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        token.cancel()
        await asyncio.wait_for(waiter, timeout=1.0)


class TestPollPolicy:
    """Tests for PollPolicy validation."""

    def test_budget(self):
        assert PollPolicy(1.0, 60).budget_seconds == 60.0

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            PollPolicy(1.0, 0)

    def test_rejects_negative_interval(self):
        with pytest.raises(ValueError):
            PollPolicy(-1.0, 5)

    def test_with_name(self):
        policy = PollPolicy(0.5, 4, sleep_first=True).with_name("fill")
        assert policy.name == "fill"
        assert policy.sleep_first is True
        assert policy.max_attempts == 4


class TestPollUntil:
    """Tests for bounded condition polling."""

    @pytest.mark.asyncio
    async def test_returns_true_when_condition_met(self):
        calls = []

        async def condition():
            calls.append(1)
            return len(calls) >= 3

        observed = await poll_until(condition, PollPolicy(0.01, 10), CancellationToken())

        assert observed is True
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_returns_false_on_expiry(self):
        """Verify expiry is reported, not raised, after max_attempts checks."""
        calls = []

        async def condition():
            calls.append(1)
            return False

        observed = await poll_until(condition, PollPolicy(0.01, 4), CancellationToken())

        assert observed is False
        assert len(calls) == 4

    @pytest.mark.asyncio
    async def test_cancellation_raises_user_stop(self):
        token = CancellationToken()

        async def condition():
            token.cancel()
            return False

        with pytest.raises(UserStop):
            await poll_until(condition, PollPolicy(5.0, 60), token)

    @pytest.mark.asyncio
    async def test_cancelled_token_skips_condition(self):
        token = CancellationToken()
        token.cancel()
        calls = []

        async def condition():
            calls.append(1)
            return True

        with pytest.raises(UserStop):
            await poll_until(condition, PollPolicy(0.01, 3), token)
        assert calls == []

    @pytest.mark.asyncio
    async def test_sleep_first_delays_first_check(self):
        started = time.monotonic()
        checked_at = []

        async def condition():
            checked_at.append(time.monotonic() - started)
            return True

        await poll_until(condition, PollPolicy(0.05, 2, sleep_first=True), CancellationToken())
        assert checked_at[0] >= 0.04
