"""
Crop result caching to avoid re-analyzing duplicate images.

Results are stored as JSON in Redis (when reachable) and always in an
in-memory map with per-item TTL, keyed by a SHA-256 of the image bytes
plus the request parameters that change the answer.
"""

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import redis

from backend.imaging.formats import file_extension
from backend.utils.redis_client import RedisConnector
from config.constants import CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

KEY_PREFIX = "crop"


@dataclass
class _CacheItem:
    payload: str
    stored_at: float
    ttl: float


class ResultCache:
    """Dedup cache for crop results."""

    def __init__(
        self,
        ttl: int = CACHE_TTL_SECONDS,
        redis_connector: Optional[RedisConnector] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            ttl: Default time-to-live in seconds
            redis_connector: Shared Redis connector (None = memory only)
            clock: Wall clock in seconds
        """
        self.ttl = ttl
        self._redis = redis_connector
        self._clock = clock
        self._memory: Dict[str, _CacheItem] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        logger.info(f"ResultCache initialized (ttl={ttl}s, redis={redis_connector is not None})")

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get a cached result.

        Args:
            key: Cache key from analysis_key() or upload_key()

        Returns:
            Cached result dict or None if not found or expired
        """
        client = self._redis.get_client() if self._redis else None
        if client is not None:
            try:
                cached = client.get(key)
                if cached:
                    self._hits += 1
                    logger.info(f"Cache HIT (redis) for {key[:40]}")
                    return json.loads(cached)
            except redis.RedisError as e:
                logger.warning(f"Redis cache get error, using memory cache: {e}")
                self._redis.mark_failed(e)

        now = self._clock()
        with self._lock:
            item = self._memory.get(key)
            if item and now - item.stored_at < item.ttl:
                self._hits += 1
                logger.info(f"Cache HIT (memory) for {key[:40]}")
                return json.loads(item.payload)
            if item:
                del self._memory[key]

        self._misses += 1
        logger.debug(f"Cache MISS for {key[:40]}")
        return None

    def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """
        Cache a result.

        Args:
            key: Cache key
            value: JSON-serializable result
            ttl: Override default TTL in seconds
        """
        ttl_seconds = max(1, int(ttl if ttl is not None else self.ttl))
        payload = json.dumps(value, ensure_ascii=False)

        client = self._redis.get_client() if self._redis else None
        if client is not None:
            try:
                client.setex(key, ttl_seconds, payload)
            except redis.RedisError as e:
                logger.warning(f"Redis cache set error, storing in memory only: {e}")
                self._redis.mark_failed(e)

        now = self._clock()
        with self._lock:
            self._memory[key] = _CacheItem(payload=payload, stored_at=now, ttl=ttl_seconds)
            self._cleanup(now)

        logger.info(f"Cached result for {key[:40]} (ttl={ttl_seconds}s)")

    def delete(self, key: str) -> None:
        """Remove a result from Redis and memory."""
        client = self._redis.get_client() if self._redis else None
        if client is not None:
            try:
                client.delete(key)
            except redis.RedisError as e:
                logger.warning(f"Redis cache delete error: {e}")
                self._redis.mark_failed(e)

        with self._lock:
            self._memory.pop(key, None)

    def clear(self) -> None:
        """Clear the in-memory cache."""
        with self._lock:
            count = len(self._memory)
            self._memory.clear()
        logger.info(f"Cache cleared ({count} entries removed)")

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return {
            "total_entries": len(self._memory),
            "hits": self._hits,
            "misses": self._misses,
            "redis_connected": bool(self._redis and self._redis.is_connected()),
        }

    def _cleanup(self, now: float) -> None:
        expired = [k for k, item in self._memory.items() if now - item.stored_at > item.ttl]
        for k in expired:
            del self._memory[k]

    @staticmethod
    def compute_hash(data: bytes) -> str:
        """SHA-256 of image bytes."""
        return hashlib.sha256(data).hexdigest()

    @classmethod
    def analysis_key(
        cls,
        image_bytes: bytes,
        scene: str,
        ratio: str,
        model: str,
        prompt_version: str,
    ) -> str:
        """Key for analyze results: image + scene + ratio + model + prompt."""
        image_hash = cls.compute_hash(image_bytes)
        return f"{KEY_PREFIX}:{image_hash}:{scene}:{ratio}:{model}:{prompt_version}"

    @classmethod
    def upload_key(cls, image_bytes: bytes, filename: Optional[str], mime_type: Optional[str]) -> str:
        """Format-aware key for crop results: image + extension + MIME type."""
        image_hash = cls.compute_hash(image_bytes)
        extension = file_extension(filename) or "unknown"
        return f"{KEY_PREFIX}:{image_hash}:{extension}:{mime_type or 'unknown'}"
