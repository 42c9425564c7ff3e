"""Retry utilities with exponential backoff.

This module provides a decorator for retrying async provider calls. The
wait between attempts grows exponentially, and a provider that says how
long to back off (``retry_after`` on the raised error) is given at least
that long.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, Type

from news_sync.core.config import settings

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, min_wait: float, max_wait: float, multiplier: float) -> float:
    """Wait time before the retry that follows ``attempt`` (0-based)."""
    return min(min_wait * (multiplier**attempt), max_wait)


def requested_delay(error: BaseException, max_retry_after: Optional[float] = None) -> Optional[float]:
    """Back-off a failed call asked for, if any.

    Args:
        error: Exception raised by the call
        max_retry_after: Ceiling applied to the requested delay

    Returns:
        Seconds to wait, or None if the error carries no usable ``retry_after``
    """
    retry_after = getattr(error, "retry_after", None)
    if retry_after is None or retry_after < 0:
        return None
    if max_retry_after is not None:
        return min(retry_after, max_retry_after)
    return float(retry_after)


def retry_async(
    max_attempts: int | None = None,
    min_wait: float | None = None,
    max_wait: float | None = None,
    multiplier: float | None = None,
    exceptions: tuple[Type[Exception], ...] = (Exception,),
    max_retry_after: float | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator for retrying async functions with exponential backoff.

    When the caught exception has a ``retry_after`` attribute the wait is
    the larger of the backoff and that value, capped at ``max_retry_after``.

    Args:
        max_attempts: Maximum number of attempts (default from settings)
        min_wait: Minimum wait time in seconds (default from settings)
        max_wait: Maximum backoff in seconds (default from settings)
        multiplier: Exponential backoff multiplier (default from settings)
        exceptions: Tuple of exception types to retry on
        max_retry_after: Ceiling for a provider-requested wait; None means no ceiling

    Returns:
        Decorated function with retry logic

    Example:
        @retry_async(max_attempts=3, exceptions=(ProviderRateLimitedError,))
        async def fetch_page():
            ...
    """
    # Use settings defaults if not provided
    _max_attempts = max_attempts if max_attempts is not None else settings.retry_max_attempts
    _min_wait = min_wait if min_wait is not None else settings.retry_min_wait
    _max_wait = max_wait if max_wait is not None else settings.retry_max_wait
    _multiplier = multiplier if multiplier is not None else settings.retry_multiplier

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = getattr(func, "__name__", repr(func))

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_exception: Exception | None = None

            for attempt in range(_max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt == _max_attempts - 1:
                        logger.error(f"Giving up on {name} after {_max_attempts} attempts: {e}")
                        break

                    wait_time = backoff_delay(attempt, _min_wait, _max_wait, _multiplier)

                    # Provider asked for a longer pause than our backoff
                    requested = requested_delay(e, max_retry_after)
                    if requested is not None and requested > wait_time:
                        wait_time = requested

                    logger.warning(
                        f"Attempt {attempt + 1}/{_max_attempts} of {name} failed: {e}. "
                        f"Retrying in {wait_time:g}s"
                    )
                    await asyncio.sleep(wait_time)

            raise last_exception  # type: ignore[misc]

        return wrapper

    return decorator
