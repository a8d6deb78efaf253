"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

_RETRYABLE_STATUS = frozenset({408, 429})


class RetryPolicy:
    """Exponential backoff shared by the product fetcher and the publisher."""

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        backoff_factor: float = 2.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.backoff_factor = backoff_factor

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        return self.base_delay_seconds * (self.backoff_factor ** (attempt - 1))

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_attempts,
            base_delay_seconds=settings.retry_base_delay_seconds,
            backoff_factor=settings.retry_backoff_factor,
        )

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_attempts={self.max_attempts}, "
            f"base_delay_seconds={self.base_delay_seconds}, "
            f"backoff_factor={self.backoff_factor})"
        )


def is_retryable(exc: Exception) -> bool:
    """Transport failures, undecodable bodies, 408/429 and 5xx are worth another attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status in _RETRYABLE_STATUS
    return isinstance(exc, (httpx.TransportError, httpx.DecodingError))


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_policy: RetryPolicy | None = None,
    sleep: Sleeper = asyncio.sleep,
    **kwargs,
) -> httpx.Response:
    """Call ``func`` until it returns a 2xx response or attempts run out.

    Non-retryable status errors (e.g. 400, 401, 404) are raised immediately.
    """
    policy = retry_policy or RetryPolicy()
    attempt = 0

    while True:
        attempt += 1
        try:
            response = await func(*args, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPError as exc:
            if not is_retryable(exc) or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "HTTP attempt %s/%s failed (%s); retrying in %.1fs",
                attempt,
                policy.max_attempts,
                describe_http_error(exc),
                delay,
            )
            await sleep(delay)


def describe_http_error(exc: Exception) -> str:
    """Short human-readable description that never includes request headers."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__


__all__ = [
    "RetryPolicy",
    "Sleeper",
    "describe_http_error",
    "is_retryable",
    "request_with_retry",
]
