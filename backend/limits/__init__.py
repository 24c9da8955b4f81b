"""
Request limiting for the public crop endpoints.

- RateLimiter: fixed-window request counter per key
- DailyUsageLimiter: per-IP free quota per usage day
"""

from .daily_usage import DailyUsageLimiter, DailyUsageResult, format_reset_time
from .rate_limiter import RateLimiter, RateLimitResult

__all__ = [
    "RateLimiter",
    "RateLimitResult",
    "DailyUsageLimiter",
    "DailyUsageResult",
    "format_reset_time",
]
