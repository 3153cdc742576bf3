"""Exponential backoff executor, pure asyncio, no knowledge of the callee.

``execute`` keeps invoking an async operation while it fails with a
retryable (rate-limit) error, doubling the wait each time:

    attempt 1 → base * 2
    attempt 2 → base * 4
    ...

Every other error propagates on the spot.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx

from core.errors import RateLimited, RetriesExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY = 1.0  # seconds


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def is_rate_limited(exc: BaseException) -> bool:
    """True if *exc* signals HTTP 429.

    Recognises our own ``RateLimited``, ``httpx.HTTPStatusError`` and any
    SDK error exposing a ``status_code`` attribute (e.g. ``openai.RateLimitError``).
    """
    if isinstance(exc, RateLimited):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429
    return getattr(exc, "status_code", None) == 429


def backoff_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY) -> float:
    """Delay in seconds to wait after the *attempt*-th rate-limited call (1-based)."""
    return base_delay * (2 ** attempt)


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

async def execute(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    is_retryable: Callable[[BaseException], bool] = is_rate_limited,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run *operation* under the backoff policy and return its result.

    Parameters
    ----------
    operation:
        Zero-argument callable returning an awaitable. Called once per attempt.
    max_retries:
        Maximum number of invocations of *operation*.
    base_delay:
        Base wait in seconds; the n-th retryable failure waits ``base * 2**n``.
    is_retryable:
        Predicate deciding whether an error is worth another attempt.
    sleep:
        Awaitable sleep function. Swapped out in tests.

    Raises
    ------
    RetriesExhausted
        After *max_retries* retryable failures.
    Exception
        Any non-retryable error raised by *operation*, unchanged.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    if base_delay < 0:
        raise ValueError("base_delay must not be negative")

    attempt = 0
    last_error: BaseException | None = None
    while attempt < max_retries:
        try:
            return await operation()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            last_error = exc
            attempt += 1
            delay = backoff_delay(attempt, base_delay)
            logger.info("Rate limit hit. Retrying in %.1fs (attempt %d/%d)", delay, attempt, max_retries)
            await sleep(delay)

    raise RetriesExhausted(attempt, last_error) from last_error
