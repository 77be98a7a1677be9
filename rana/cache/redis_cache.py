"""
Redis Cache
===========
Remote cache on redis.asyncio with per-key TTL.

``clear()`` walks the keyspace with SCAN so unrelated keys in a shared
database survive.
"""

from typing import Any, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from rana.cache.base import CacheEntry, CacheProvider, Clock

logger = structlog.get_logger()

SCAN_COUNT = 100
DELETE_BATCH = 100

# ValueError covers bad URLs from Redis.from_url and undecodable entries.
REDIS_FAILURES = (RedisError, OSError, ValueError)


class RedisCache(CacheProvider):
    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        prefix: str = "rana:cache:",
        ttl: Optional[int] = 3600,
        client: Optional[Redis] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(ttl=ttl, clock=clock)
        self.url = url
        self.prefix = prefix
        self._client = client

    @property
    def client(self) -> Redis:
        """Get or create the Redis client (lazy)."""
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=True)
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def _read(self, key: str) -> Optional[CacheEntry]:
        raw = await self.client.get(self._key(key))
        if raw is None:
            return None
        entry = CacheEntry.model_validate_json(raw)
        if entry.is_expired(self._clock()):
            await self.client.delete(self._key(key))
            return None
        return entry

    async def get(self, key: str) -> Optional[Any]:
        try:
            entry = await self._read(key)
        except REDIS_FAILURES as e:
            logger.warning("Redis cache get failed", key=key, error=str(e))
            entry = None
        self._record(entry is not None)
        return entry.data if entry else None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        entry = self._new_entry(value, ttl)
        effective_ttl = self.default_ttl if ttl is None else ttl
        try:
            payload = entry.model_dump_json()
            if effective_ttl and effective_ttl > 0:
                await self.client.setex(self._key(key), int(effective_ttl), payload)
            else:
                await self.client.set(self._key(key), payload)
        except (*REDIS_FAILURES, TypeError) as e:
            logger.warning("Redis cache set failed", key=key, error=str(e))

    async def has(self, key: str) -> bool:
        try:
            return await self._read(key) is not None
        except REDIS_FAILURES as e:
            logger.warning("Redis cache read failed", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.client.delete(self._key(key)))
        except REDIS_FAILURES as e:
            logger.warning("Redis cache delete failed", key=key, error=str(e))
            return False

    async def _scan_keys(self) -> list[str]:
        keys: list[str] = []
        cursor = 0
        while True:
            cursor, batch = await self.client.scan(
                cursor=cursor, match=f"{self.prefix}*", count=SCAN_COUNT
            )
            keys.extend(batch)
            if int(cursor) == 0:
                return keys

    async def clear(self) -> None:
        try:
            keys = await self._scan_keys()
            for i in range(0, len(keys), DELETE_BATCH):
                await self.client.delete(*keys[i:i + DELETE_BATCH])
            logger.info("Cleared redis cache", keys=len(keys), prefix=self.prefix)
        except REDIS_FAILURES as e:
            logger.warning("Redis cache clear failed", error=str(e))

    async def size(self) -> int:
        try:
            return len(await self._scan_keys())
        except REDIS_FAILURES as e:
            logger.warning("Redis cache size failed", error=str(e))
            return 0

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except REDIS_FAILURES as e:
                logger.warning("Redis cache close failed", error=str(e))
            self._client = None
