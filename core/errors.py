"""Error taxonomy shared by the relay.

Every error carries an HTTP ``status_code`` and a client-safe ``message``.
Raw provider payloads never go into either.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for failures that resolve to an HTTP response."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(RelayError):
    """Missing or malformed client input (query param or JSON body)."""

    status_code = 400
    message = "Invalid request"


class StateMismatchError(RelayError):
    """OAuth ``state`` was absent or did not match the stored cookie."""

    status_code = 400
    message = "state_mismatch"


class UpstreamError(RelayError):
    """Non-retryable failure reported by an external API."""

    status_code = 500
    message = "Upstream service failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        upstream_status: int | None = None,
        status_code: int | None = None,
    ):
        self.upstream_status = upstream_status
        super().__init__(message, status_code=status_code)


class AuthExchangeError(UpstreamError):
    """Token exchange, refresh or profile call to the OAuth provider failed."""

    message = "Failed to exchange token"


class FetchError(UpstreamError):
    """Top tracks / artists call failed (expired tokens included)."""

    message = "Failed to fetch top tracks or top artists"


class RateLimited(UpstreamError):
    """The remote answered 429; retried by the backoff executor."""

    message = "Rate limited"

    def __init__(self, message: str | None = None, *, retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(message, upstream_status=429)


class RetriesExhausted(RelayError):
    """The remote kept rate limiting until the retry budget ran out."""

    message = "Exceeded maximum retries"

    def __init__(self, attempts: int, last_error: BaseException | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Exceeded maximum retries ({attempts})")
