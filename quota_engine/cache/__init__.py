"""
Caching layer for computed analytics.

Provides:
- MemoryCache (in-process, TTL)
- CacheClient (Redis)
- NullCache (disabled)
- build_cache() to pick one from settings
- get_analytics_cache() for the shared instance used by default

The chosen cache is passed into AnalyticsService rather than looked up
globally, so tests can swap or disable it.
"""

import logging
from typing import Any, Optional, Protocol

from config.settings import Settings, get_settings
from .redis_client import get_redis, close_redis, CacheClient
from .memory import MemoryCache, NullCache
from .stats import CacheStats

logger = logging.getLogger(__name__)


class AnalyticsCache(Protocol):
    """Interface every cache backend implements."""

    stats: CacheStats

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def invalidate_pattern(self, pattern: str) -> int: ...


def build_cache(settings: Optional[Settings] = None) -> AnalyticsCache:
    """Create the cache backend named by settings.analytics_cache_backend."""
    settings = settings or get_settings()
    backend = settings.analytics_cache_backend.lower()

    if backend == "redis":
        return CacheClient(default_ttl=settings.analytics_cache_ttl)
    if backend == "none":
        return NullCache()
    if backend != "memory":
        logger.warning(f"Unknown cache backend '{backend}', using memory")
    return MemoryCache(default_ttl=settings.analytics_cache_ttl)


_analytics_cache: Optional[AnalyticsCache] = None


def get_analytics_cache() -> AnalyticsCache:
    """Get the process-wide analytics cache, built from settings on first use."""
    global _analytics_cache
    if _analytics_cache is None:
        _analytics_cache = build_cache()
        logger.info(f"Analytics cache backend: {type(_analytics_cache).__name__}")
    return _analytics_cache


__all__ = [
    "AnalyticsCache",
    "build_cache",
    "get_analytics_cache",
    "get_redis",
    "close_redis",
    "CacheClient",
    "MemoryCache",
    "NullCache",
    "CacheStats",
]
