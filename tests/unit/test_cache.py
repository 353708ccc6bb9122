"""Unit tests for the analytics cache backends."""

from unittest.mock import AsyncMock, patch

import pytest

from config.settings import Settings
from quota_engine.cache import build_cache, get_analytics_cache, MemoryCache, NullCache, CacheClient


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    return MemoryCache(default_ttl=60, clock=clock)


@pytest.mark.asyncio
async def test_get_returns_stored_value(memory_cache):
    await memory_cache.set("analytics:1:overview", {"total": 5})

    assert await memory_cache.get("analytics:1:overview") == {"total": 5}
    assert memory_cache.stats.hits == 1


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(memory_cache, clock):
    await memory_cache.set("k", 1)
    clock.now += 59
    assert await memory_cache.get("k") == 1

    clock.now += 1
    assert await memory_cache.get("k") is None
    assert len(memory_cache) == 0


@pytest.mark.asyncio
async def test_per_entry_ttl(memory_cache, clock):
    await memory_cache.set("short", 1, ttl=5)
    clock.now += 10

    assert await memory_cache.get("short") is None


@pytest.mark.asyncio
async def test_returned_value_is_a_copy(memory_cache):
    await memory_cache.set("k", {"items": [1]})

    value = await memory_cache.get("k")
    value["items"].append(2)

    assert await memory_cache.get("k") == {"items": [1]}


@pytest.mark.asyncio
async def test_invalidate_pattern(memory_cache):
    await memory_cache.set("analytics:1:overview:a", 1)
    await memory_cache.set("analytics:1:window:b", 2)
    await memory_cache.set("analytics:2:overview:a", 3)

    removed = await memory_cache.invalidate_pattern("analytics:1:*")

    assert removed == 2
    assert await memory_cache.get("analytics:2:overview:a") == 3


@pytest.mark.asyncio
async def test_delete(memory_cache):
    await memory_cache.set("k", 1)

    assert await memory_cache.delete("k") is True
    assert await memory_cache.delete("k") is False


@pytest.mark.asyncio
async def test_null_cache_stores_nothing():
    cache = NullCache()

    assert await cache.set("k", 1) is False
    assert await cache.get("k") is None
    assert await cache.invalidate_pattern("*") == 0


def test_build_cache_backends():
    assert isinstance(build_cache(Settings(analytics_cache_backend="memory")), MemoryCache)
    assert isinstance(build_cache(Settings(analytics_cache_backend="none")), NullCache)
    assert isinstance(build_cache(Settings(analytics_cache_backend="redis")), CacheClient)
    assert isinstance(build_cache(Settings(analytics_cache_backend="bogus")), MemoryCache)


def test_build_cache_uses_configured_ttl():
    cache = build_cache(Settings(analytics_cache_backend="memory", analytics_cache_ttl=15))

    assert cache.default_ttl == 15


@pytest.mark.asyncio
async def test_redis_cache_without_server_misses():
    with patch("quota_engine.cache.redis_client.get_redis", AsyncMock(return_value=None)):
        client = CacheClient()

        assert await client.get("k") is None
        assert await client.set("k", 1) is False


@pytest.mark.asyncio
async def test_hit_rate(memory_cache):
    await memory_cache.set("k", 1)
    await memory_cache.get("k")
    await memory_cache.get("missing")

    assert memory_cache.stats.get_total() == 2
    assert memory_cache.stats.get_rate() == 0.5


def test_analytics_cache_is_shared():
    assert get_analytics_cache() is get_analytics_cache()
