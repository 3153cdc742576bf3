"""Tests for the exponential backoff executor (core/backoff.py)."""

from __future__ import annotations

import asyncio
import time

import httpx
import openai
import pytest

from core.backoff import backoff_delay, execute, is_rate_limited
from core.errors import FetchError, RateLimited, RetriesExhausted


class _Recorder:
    """Fake sleep that records requested delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _flaky(failures: int, error_factory, result="ok"):
    """Operation failing *failures* times with *error_factory()* then returning *result*."""
    calls = {"count": 0}

    async def op():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error_factory()
        return result

    return op, calls


def _openai_rate_limit() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return openai.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)


# ---------------------------------------------------------------------------
# Delay schedule
# ---------------------------------------------------------------------------

def test_backoff_delay_doubles_from_attempt_one():
    assert [backoff_delay(n, 1.0) for n in range(1, 6)] == [2.0, 4.0, 8.0, 16.0, 32.0]


@pytest.mark.asyncio
async def test_two_rate_limits_then_success():
    sleep = _Recorder()
    op, calls = _flaky(2, RateLimited)

    result = await execute(op, base_delay=0.5, sleep=sleep)

    assert result == "ok"
    assert calls["count"] == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_real_sleep_waits_between_attempts():
    op, calls = _flaky(2, RateLimited)

    start = time.monotonic()
    result = await execute(op, base_delay=0.01)
    elapsed = time.monotonic() - start

    assert result == "ok"
    # 0.02 + 0.04, minus a little scheduling slack
    assert elapsed >= 0.05


# ---------------------------------------------------------------------------
# Exhaustion
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_always_rate_limited_exhausts_after_max_retries():
    sleep = _Recorder()
    op, calls = _flaky(100, RateLimited)

    with pytest.raises(RetriesExhausted) as exc_info:
        await execute(op, max_retries=5, base_delay=1.0, sleep=sleep)

    assert calls["count"] == 5
    assert exc_info.value.attempts == 5
    assert isinstance(exc_info.value.last_error, RateLimited)
    assert isinstance(exc_info.value.__cause__, RateLimited)
    assert sleep.delays == [2.0, 4.0, 8.0, 16.0, 32.0]


@pytest.mark.asyncio
async def test_retries_exhausted_is_not_the_rate_limit_error():
    op, _ = _flaky(100, RateLimited)
    with pytest.raises(RetriesExhausted) as exc_info:
        await execute(op, max_retries=2, sleep=_Recorder())
    assert not isinstance(exc_info.value, RateLimited)


# ---------------------------------------------------------------------------
# Non-retryable errors
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_other_error_propagates_without_retry():
    sleep = _Recorder()
    op, calls = _flaky(1, lambda: FetchError(upstream_status=401))

    with pytest.raises(FetchError):
        await execute(op, sleep=sleep)

    assert calls["count"] == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_custom_predicate_controls_retry():
    sleep = _Recorder()
    op, calls = _flaky(1, lambda: KeyError("x"))

    result = await execute(op, is_retryable=lambda exc: isinstance(exc, KeyError), base_delay=0, sleep=sleep)

    assert result == "ok"
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_rejects_empty_budget():
    op, _ = _flaky(0, RateLimited)
    with pytest.raises(ValueError):
        await execute(op, max_retries=0)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def test_is_rate_limited_recognises_429_sources():
    request = httpx.Request("GET", "https://api.spotify.com/v1/me")
    http_429 = httpx.HTTPStatusError("429", request=request, response=httpx.Response(429, request=request))
    http_500 = httpx.HTTPStatusError("500", request=request, response=httpx.Response(500, request=request))

    assert is_rate_limited(RateLimited())
    assert is_rate_limited(_openai_rate_limit())
    assert is_rate_limited(http_429)
    assert not is_rate_limited(http_500)
    assert not is_rate_limited(ValueError("nope"))


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_backoff_does_not_block_other_tasks():
    """While one task backs off, another task keeps running."""
    progress: list[str] = []
    inner, _ = _flaky(1, RateLimited)

    async def op():
        result = await inner()
        progress.append("op")
        return result

    async def other():
        progress.append("other")

    results = await asyncio.gather(execute(op, base_delay=0.02), other())

    assert results[0] == "ok"
    assert progress == ["other", "op"]
