"""Grant Analyzer — Async Rate Limiter.

Sliding-window limiter used to space out catalog requests and
evaluation-service calls. Safe to share between coroutines via
asyncio.Lock.
"""

from __future__ import annotations

import asyncio
import time

from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)


class AsyncRateLimiter:
    """Async rate limiter over a sliding time window.

    Tracks timestamps of recent calls and sleeps until a slot becomes
    available. A period of 0 disables limiting.

    Attributes:
        max_calls: Maximum number of calls allowed within the time window.
        period: Time window in seconds.
    """

    def __init__(self, max_calls: int, period_seconds: float) -> None:
        """Initialize the rate limiter.

        Args:
            max_calls: Maximum number of calls allowed per time period.
            period_seconds: Length of the sliding window in seconds.

        Raises:
            ValueError: If max_calls is below 1 or the period is negative.
        """
        if max_calls < 1:
            raise ValueError(f"max_calls must be >= 1, got {max_calls}")
        if period_seconds < 0:
            raise ValueError(f"period_seconds must be >= 0, got {period_seconds}")

        self.max_calls = max_calls
        self.period = period_seconds
        self._timestamps: list[float] = []
        self._lock = asyncio.Lock()

        logger.debug(
            "Rate limiter initialized: %d calls / %.1f seconds",
            max_calls, period_seconds,
        )

    def _cleanup_expired(self) -> None:
        """Drop timestamps that have fallen outside the current window."""
        cutoff = time.monotonic() - self.period
        self._timestamps = [ts for ts in self._timestamps if ts > cutoff]

    @property
    def available_slots(self) -> int:
        """Approximate number of free slots in the current window."""
        self._cleanup_expired()
        return max(0, self.max_calls - len(self._timestamps))

    async def acquire(self) -> None:
        """Acquire a rate-limit slot, suspending until one is available."""
        if self.period == 0:
            return

        async with self._lock:
            while True:
                self._cleanup_expired()

                if len(self._timestamps) < self.max_calls:
                    self._timestamps.append(time.monotonic())
                    return

                wait_time = self._timestamps[0] + self.period - time.monotonic()
                if wait_time > 0:
                    logger.debug(
                        "Rate limit reached (%d/%d). Waiting %.2f seconds...",
                        len(self._timestamps), self.max_calls, wait_time,
                    )
                    await asyncio.sleep(wait_time)

    def __repr__(self) -> str:
        return f"AsyncRateLimiter(max_calls={self.max_calls}, period={self.period}s)"
