"""
Response Cache
==============
Interchangeable memory, file and Redis backends behind one async contract.
"""

from typing import Optional

from rana.cache.base import CacheEntry, CacheProvider, CacheStats, request_cache_key
from rana.cache.file import FileCache
from rana.cache.memory import MemoryCache
from rana.cache.redis_cache import RedisCache
from rana.config import Settings, settings


def create_cache(config: Optional[Settings] = None) -> CacheProvider:
    """Build the cache backend named by ``cache_backend``."""
    config = config or settings
    if config.cache_backend == "file":
        return FileCache(cache_dir=config.cache_dir, prefix=config.cache_prefix, ttl=config.cache_ttl)
    if config.cache_backend == "redis":
        return RedisCache(url=config.redis_url, prefix=config.redis_prefix, ttl=config.cache_ttl)
    return MemoryCache(ttl=config.cache_ttl, max_size=config.cache_max_size)


__all__ = [
    "CacheEntry",
    "CacheProvider",
    "CacheStats",
    "FileCache",
    "MemoryCache",
    "RedisCache",
    "create_cache",
    "request_cache_key",
]
