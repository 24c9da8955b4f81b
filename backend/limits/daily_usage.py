"""
Per-IP daily usage limiter for free crop requests.

A usage day starts at the configured UTC reset hour. Counters live in
Redis when available (expiring one hour after the next reset) and in
memory otherwise.
"""

import logging
import math
import threading
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

import redis

from backend.utils.redis_client import RedisConnector
from config.constants import (
    DAILY_RESET_HOUR,
    DAILY_USAGE_LIMIT,
    DAILY_WARNING_THRESHOLD,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DailyUsageResult:
    """Usage snapshot for one client."""

    allowed: bool
    remaining: int
    used: int
    limit: int
    reset_time: str
    should_warn: bool

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class DailyUsageLimiter:
    """Cap free requests per client IP per usage day."""

    def __init__(
        self,
        limit: int = DAILY_USAGE_LIMIT,
        warning_threshold: int = DAILY_WARNING_THRESHOLD,
        reset_hour: int = DAILY_RESET_HOUR,
        redis_connector: Optional[RedisConnector] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize limiter.

        Args:
            limit: Free requests per usage day
            warning_threshold: Warn when this many or fewer remain
            reset_hour: UTC hour at which the usage day rolls over
            redis_connector: Shared Redis connector (None = memory only)
            clock: Returns the current aware UTC datetime
        """
        if not 0 <= reset_hour <= 23:
            raise ValueError(f"reset_hour must be between 0 and 23, got {reset_hour}")

        self.limit = limit
        self.warning_threshold = warning_threshold
        self.reset_hour = reset_hour
        self._redis = redis_connector
        self._clock = clock
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def check(self, ip: str, increment: bool = True) -> DailyUsageResult:
        """
        Report usage for ip, consuming one unit when increment is True.

        A consuming call over the limit is denied and not counted. A
        non-consuming call reports whether one more request would pass.
        """
        now = self._clock()
        usage_day, next_reset = self._usage_window(now)

        client = self._redis.get_client() if self._redis else None
        if client is not None:
            try:
                used, allowed = self._check_redis(client, ip, usage_day, next_reset, now, increment)
                return self._result(used, allowed, next_reset)
            except redis.RedisError as e:
                logger.warning(f"Redis daily usage error for {ip}, using in-memory counter: {e}")
                self._redis.mark_failed(e)

        used, allowed = self._check_memory(ip, usage_day, increment)
        return self._result(used, allowed, next_reset)

    def status(self, ip: str) -> DailyUsageResult:
        """Usage for ip without consuming."""
        return self.check(ip, increment=False)

    def _usage_window(self, now: datetime) -> Tuple[date, datetime]:
        """Current usage day and the moment the next one starts."""
        shifted = now - timedelta(hours=self.reset_hour)
        usage_day = shifted.date()
        day_start = datetime.combine(usage_day, time(hour=self.reset_hour), tzinfo=timezone.utc)
        return usage_day, day_start + timedelta(days=1)

    def _check_redis(
        self,
        client: redis.Redis,
        ip: str,
        usage_day: date,
        next_reset: datetime,
        now: datetime,
        increment: bool,
    ) -> Tuple[int, bool]:
        redis_key = f"daily:{ip}:{usage_day.isoformat()}"

        if not increment:
            used = int(client.get(redis_key) or 0)
            return used, used < self.limit

        expire_seconds = math.ceil((next_reset - now).total_seconds()) + 3600
        pipe = client.pipeline(transaction=True)
        pipe.incr(redis_key)
        pipe.expire(redis_key, expire_seconds)
        count, _ = pipe.execute()
        count = int(count)

        if count > self.limit:
            client.decr(redis_key)
            return count - 1, False
        return count, True

    def _check_memory(self, ip: str, usage_day: date, increment: bool) -> Tuple[int, bool]:
        key = f"{ip}:{usage_day.isoformat()}"

        with self._lock:
            # Counters from earlier usage days are dropped lazily
            suffix = f":{usage_day.isoformat()}"
            stale = [k for k in self._counters if not k.endswith(suffix)]
            for k in stale:
                del self._counters[k]

            used = self._counters.get(key, 0)
            if not increment:
                return used, used < self.limit
            if used >= self.limit:
                return used, False

            used += 1
            self._counters[key] = used
            return used, True

    def _result(self, used: int, allowed: bool, next_reset: datetime) -> DailyUsageResult:
        remaining = max(0, self.limit - used)
        return DailyUsageResult(
            allowed=allowed,
            remaining=remaining,
            used=used,
            limit=self.limit,
            reset_time=next_reset.isoformat().replace("+00:00", "Z"),
            should_warn=0 < remaining <= self.warning_threshold,
        )


def format_reset_time(
    reset_time: str, now: Optional[datetime] = None, language: str = "en"
) -> str:
    """Human readable time until reset, e.g. "5 hours" or "1 days 2 hours"."""
    now = now or _utc_now()
    reset = datetime.fromisoformat(reset_time.replace("Z", "+00:00"))
    diff_seconds = (reset - now).total_seconds()

    hours_word, days_word = ("小时", "天") if language == "zh" else ("hours", "days")

    if diff_seconds <= 0:
        return f"0 {hours_word}"

    diff_hours = math.ceil(diff_seconds / 3600)
    if diff_hours < 24:
        return f"{diff_hours} {hours_word}"

    diff_days, remaining_hours = divmod(diff_hours, 24)
    if remaining_hours == 0:
        return f"{diff_days} {days_word}"
    return f"{diff_days} {days_word} {remaining_hours} {hours_word}"
