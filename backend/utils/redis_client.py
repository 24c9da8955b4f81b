"""
Lazy Redis connection shared by the cache and the limiters.

Callers ask for a client on every operation; when Redis is disabled or
unreachable they get None and use their in-memory fallback. After a
failure the connector waits before trying to reconnect.
"""

import logging
import time
from typing import Callable, Optional

import redis

logger = logging.getLogger(__name__)


class RedisConnector:
    """Hands out a Redis client, or None while Redis is unavailable."""

    def __init__(
        self,
        url: str,
        enabled: bool = True,
        name: str = "redis",
        retry_after: float = 30.0,
        client: Optional[redis.Redis] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize connector.

        Args:
            url: Redis URL (redis://host:port/db)
            enabled: Use Redis at all (False = always in-memory)
            name: Owner name for log messages
            retry_after: Seconds to wait before reconnecting after a failure
            client: Pre-built client (tests)
            clock: Monotonic clock
        """
        self.url = url
        self.enabled = enabled
        self.name = name
        self.retry_after = retry_after
        self._client = client
        self._clock = clock
        self._unavailable_until = 0.0

    def get_client(self) -> Optional[redis.Redis]:
        """Return a connected client or None to signal the in-memory fallback."""
        if not self.enabled:
            return None
        if self._client is not None:
            return self._client
        if self._clock() < self._unavailable_until:
            return None

        try:
            client = redis.Redis.from_url(
                self.url,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
            client.ping()
        except redis.RedisError as e:
            self._back_off(e)
            return None

        logger.info(f"{self.name}: connected to Redis at {self.url}")
        self._client = client
        return client

    def mark_failed(self, error: Exception) -> None:
        """Drop the client after an operation error."""
        self._client = None
        self._back_off(error)

    def is_connected(self) -> bool:
        return self._client is not None

    def _back_off(self, error: Exception) -> None:
        self._unavailable_until = self._clock() + self.retry_after
        logger.warning(
            f"{self.name}: Redis unavailable, using in-memory fallback: {error}"
        )
