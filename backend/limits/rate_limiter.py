"""Windowed request limiter backed by Redis with an in-memory fallback."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis

from backend.utils.redis_client import RedisConnector

logger = logging.getLogger(__name__)

# Prune expired in-memory windows once this many keys are tracked
PRUNE_THRESHOLD = 10_000


@dataclass
class RateLimitResult:
    """Outcome of one consume() call."""

    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds when the current window ends


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window counter per key.

    A window opens on the first request for a key and lasts
    window_seconds; the limit-th request in a window is allowed, the next
    one is denied.
    """

    def __init__(
        self,
        redis_connector: Optional[RedisConnector] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._redis = redis_connector
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def consume(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        """
        Count one request against key.

        Args:
            key: Limiter key, e.g. "crop:203.0.113.7"
            limit: Max requests per window
            window_seconds: Window length

        Returns:
            RateLimitResult with allowed flag and remaining budget
        """
        client = self._redis.get_client() if self._redis else None
        if client is not None:
            try:
                return self._consume_redis(client, key, limit, window_seconds)
            except redis.RedisError as e:
                logger.warning(f"Redis rate limit error for {key}, using in-memory counter: {e}")
                self._redis.mark_failed(e)

        return self._consume_memory(key, limit, window_seconds)

    def reset(self, key: Optional[str] = None) -> None:
        """Forget in-memory windows (one key or all)."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _consume_redis(
        self, client: redis.Redis, key: str, limit: int, window_seconds: float
    ) -> RateLimitResult:
        redis_key = f"ratelimit:{key}"
        window_ms = int(window_seconds * 1000)

        pipe = client.pipeline(transaction=True)
        pipe.incr(redis_key)
        pipe.pexpire(redis_key, window_ms, nx=True)
        pipe.pttl(redis_key)
        count, _, ttl_ms = pipe.execute()

        count = int(count)
        now = self._clock()
        reset_at = now + (ttl_ms / 1000 if ttl_ms and ttl_ms > 0 else window_seconds)
        return RateLimitResult(
            allowed=count <= limit,
            remaining=max(0, limit - count),
            reset_at=reset_at,
        )

    def _consume_memory(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        now = self._clock()

        with self._lock:
            if len(self._windows) > PRUNE_THRESHOLD:
                self._prune(now)

            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = _Window(count=1, reset_at=now + window_seconds)
                self._windows[key] = window
                return RateLimitResult(
                    allowed=True,
                    remaining=max(0, limit - 1),
                    reset_at=window.reset_at,
                )

            if window.count >= limit:
                return RateLimitResult(allowed=False, remaining=0, reset_at=window.reset_at)

            window.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=max(0, limit - window.count),
                reset_at=window.reset_at,
            )

    def _prune(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        logger.debug(f"Pruned {len(expired)} expired rate limit windows")
