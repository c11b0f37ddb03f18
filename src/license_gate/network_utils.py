from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

T = TypeVar("T")


def _is_retryable_http_exception(
    exc: Exception,
    retry_on_429: bool = True,
    retry_on_403: bool = False,
) -> bool:
    """Check if an HTTP exception is retryable.

    Args:
        exc: The exception to check
        retry_on_429: Whether to retry on HTTP 429 Too Many Requests
        retry_on_403: Whether to retry on HTTP 403 Forbidden (GitHub uses for rate limits)

    Returns:
        True if the exception is retryable
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        # Server errors (5xx) are always retryable
        if status_code >= 500:
            return True
        if status_code == 429 and retry_on_429:
            return True
        # GitHub answers 403 when the rate limit is exhausted
        if status_code == 403 and retry_on_403:
            return True
        return False
    return isinstance(
        exc,
        (
            httpx.TransportError,
            asyncio.TimeoutError,
        ),
    ) and not isinstance(exc, (httpx.UnsupportedProtocol, httpx.ProxyError))


async def _with_retries(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    backoff_base: float = 2.0,
    backoff_max: float = 60.0,
    on_retry: Callable[[int, Exception], None] | None = None,
    retry_on_429: bool = True,
    retry_on_403: bool = False,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await a coroutine factory with retry logic.

    Args:
        fn: Zero-argument callable returning a fresh awaitable per attempt
        max_attempts: Maximum number of attempts
        backoff_base: Base for exponential backoff (seconds)
        backoff_max: Maximum backoff time (seconds)
        on_retry: Optional callback called on each retry with (attempt_num, exception)
        retry_on_429: Whether to retry on HTTP 429 Too Many Requests
        retry_on_403: Whether to retry on HTTP 403 Forbidden (GitHub rate limits)
        sleep: Coroutine used to wait between attempts

    Returns:
        The result of ``await fn()``

    Raises:
        Exception: The last exception if all retries fail
    """
    attempts = max(1, max_attempts)
    for attempt in range(attempts):
        try:
            return await fn()
        except Exception as exc:
            is_retryable = _is_retryable_http_exception(
                exc, retry_on_429=retry_on_429, retry_on_403=retry_on_403
            )
            if not is_retryable or attempt >= attempts - 1:
                raise
            if on_retry:
                on_retry(attempt + 1, exc)
            await sleep(min(backoff_base**attempt, backoff_max))
    raise RuntimeError("unreachable")
