"""Tests for the resilient call wrapper."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from corpus_rag.utils.resilience import resilient_call


@pytest.mark.asyncio
async def test_first_attempt_succeeds():
    call = AsyncMock(return_value=42)
    outcome = await resilient_call(call, timeout=1.0, max_attempts=3)

    assert outcome.ok
    assert outcome.value == 42
    assert outcome.attempts == 1


@pytest.mark.asyncio
async def test_retries_until_success():
    call = AsyncMock(side_effect=[ConnectionError("flaky"), ConnectionError("flaky"), "done"])
    outcome = await resilient_call(call, timeout=1.0, max_attempts=3, backoff=0.0)

    assert outcome.value == "done"
    assert outcome.attempts == 3


@pytest.mark.asyncio
async def test_gives_up_with_last_error():
    call = AsyncMock(side_effect=ConnectionError("down"))
    outcome = await resilient_call(call, timeout=1.0, max_attempts=2, backoff=0.0, backoff_mode="exponential")

    assert not outcome.ok
    assert isinstance(outcome.error, ConnectionError)
    assert outcome.attempts == 2
    assert call.await_count == 2


@pytest.mark.asyncio
async def test_timeout_per_attempt():
    async def slow():
        await asyncio.sleep(5)

    outcome = await resilient_call(slow, timeout=0.01, max_attempts=2)

    assert outcome.timed_out
    assert outcome.attempts == 2


@pytest.mark.asyncio
async def test_unlisted_errors_fail_fast():
    call = AsyncMock(side_effect=ValueError("bad input"))

    with pytest.raises(ValueError):
        await resilient_call(call, timeout=1.0, max_attempts=3, retry_on=(ConnectionError,))
    assert call.await_count == 1


@pytest.mark.asyncio
async def test_unknown_backoff_mode():
    with pytest.raises(ValueError, match="Unknown backoff mode"):
        await resilient_call(AsyncMock(), timeout=1.0, backoff_mode="random")


@pytest.mark.asyncio
async def test_predicate_stops_retries():
    call = AsyncMock(side_effect=RuntimeError("404 model not found"))
    outcome = await resilient_call(
        call,
        timeout=1.0,
        max_attempts=3,
        retry_if=lambda error: "404" not in str(error),
    )

    assert not outcome.ok
    assert outcome.attempts == 1
    assert call.await_count == 1
