"""Grant Analyzer — Resilience Utilities.

Retry decorator with exponential backoff for calls to external services.

Usage:
    @retry_async(max_attempts=3, base_delay=2.0, exceptions=(aiohttp.ClientError,))
    async def flaky_function():
        ...
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, Sequence, Type

from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)


def retry_async(
    max_attempts: int = 3,
    base_delay: float = 2.0,
    max_delay: float = 60.0,
    exceptions: Sequence[Type[BaseException]] = (Exception,),
) -> Callable:
    """Decorator for async functions that should be retried on failure.

    Uses exponential backoff: delay = base_delay * 2^(attempt-1),
    capped at max_delay. The last exception is re-raised once the
    attempts are exhausted.

    Args:
        max_attempts: Maximum number of attempts (including first).
        base_delay: Base delay in seconds (doubles each retry).
        max_delay: Maximum delay between retries.
        exceptions: Exception types to retry on. Anything else propagates
            immediately.

    Returns:
        Decorator function.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except tuple(exceptions) as e:
                    if attempt == max_attempts:
                        logger.warning(
                            "Retry exhausted for %s after %d attempts: %s",
                            func.__name__, max_attempts, e,
                        )
                        raise
                    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                    logger.debug(
                        "Retry %d/%d for %s in %.1fs: %s",
                        attempt, max_attempts, func.__name__, delay, e,
                    )
                    await asyncio.sleep(delay)
        return wrapper
    return decorator
