"""Grant Analyzer — Utilities Package.

Logging setup, async rate limiting and retry helpers shared by the
scraper and analyzer packages.
"""

from grant_analyzer.utils.logger import get_logger, set_console_level
from grant_analyzer.utils.rate_limiter import AsyncRateLimiter
from grant_analyzer.utils.resilience import retry_async

__all__ = [
    "get_logger",
    "set_console_level",
    "AsyncRateLimiter",
    "retry_async",
]
