from unittest.mock import MagicMock

import redis

from backend.utils.redis_client import RedisConnector
from backend.vision import ResultCache


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_memory_hit_and_miss():
    cache = ResultCache(ttl=60, clock=FakeClock())
    assert cache.get("crop:a") is None

    cache.set("crop:a", {"reason": "nice"})

    assert cache.get("crop:a") == {"reason": "nice"}
    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["redis_connected"] is False


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResultCache(ttl=60, clock=clock)
    cache.set("crop:a", {"n": 1})

    clock.now += 59
    assert cache.get("crop:a") == {"n": 1}
    clock.now += 2
    assert cache.get("crop:a") is None


def test_delete_and_clear():
    cache = ResultCache(clock=FakeClock())
    cache.set("crop:a", {"n": 1})
    cache.set("crop:b", {"n": 2})

    cache.delete("crop:a")
    assert cache.get("crop:a") is None

    cache.clear()
    assert cache.get_stats()["total_entries"] == 0


def test_redis_hit_is_used_first():
    client = MagicMock()
    client.get.return_value = '{"source": "redis"}'
    cache = ResultCache(redis_connector=RedisConnector("redis://x", client=client))

    assert cache.get("crop:a") == {"source": "redis"}


def test_set_writes_redis_with_ttl():
    client = MagicMock()
    cache = ResultCache(ttl=120, redis_connector=RedisConnector("redis://x", client=client))

    cache.set("crop:a", {"n": 1})

    client.setex.assert_called_once_with("crop:a", 120, '{"n": 1}')


def test_redis_failure_falls_back_to_memory():
    client = MagicMock()
    client.setex.side_effect = redis.ConnectionError("down")
    connector = RedisConnector("redis://x", client=client, clock=FakeClock())
    cache = ResultCache(redis_connector=connector)

    cache.set("crop:a", {"n": 1})

    assert not connector.is_connected()
    assert cache.get("crop:a") == {"n": 1}


def test_analysis_key_includes_request_parameters():
    key = ResultCache.analysis_key(b"img", "tiktok", "9:16", "gpt-4o", "v1.0")
    assert key.startswith("crop:")
    assert key.endswith(":tiktok:9:16:gpt-4o:v1.0")
    assert key != ResultCache.analysis_key(b"img", "tiktok", "9:16", "gpt-4o", "v1.1")


def test_upload_key_is_format_aware():
    png = ResultCache.upload_key(b"img", "a.png", "image/png")
    jpg = ResultCache.upload_key(b"img", "a.jpg", "image/jpeg")
    assert png != jpg
    assert ResultCache.upload_key(b"img", None, None).endswith(":unknown:unknown")
