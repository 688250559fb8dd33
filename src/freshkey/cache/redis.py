"""Redis cache store for freshkey.

Provides async Redis operations for encoded cache entries.
Uses redis-py async client for connection pooling.
"""

from __future__ import annotations

from collections.abc import Awaitable, Sequence
from typing import TYPE_CHECKING, cast

import redis.asyncio as redis
from redis.exceptions import RedisError

from freshkey.cache.keys import CacheKeys
from freshkey.cache.store import CacheStore
from freshkey.config import settings
from freshkey.errors import CacheUnavailable

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Module-level connection pool
_redis_client: Redis | None = None

# Failures that mean "cache unavailable" rather than a programming error
REDIS_FAILURES = (RedisError, ConnectionError, TimeoutError, OSError)


def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            decode_responses=False,  # We're storing bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisCacheStore(CacheStore):
    """Cache store backed by a shared Redis instance.

    Every backend failure surfaces as CacheUnavailable.
    """

    name = "redis"

    def __init__(self, client: Redis):
        self.client = client

    async def get(self, key: str) -> bytes | None:
        try:
            return cast(bytes | None, await self.client.get(key))
        except REDIS_FAILURES as exc:
            raise CacheUnavailable("get", str(exc)) from exc

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        """Fetch several entries in one MGET round trip."""
        if not keys:
            return []
        try:
            return cast(list[bytes | None], await self.client.mget(list(keys)))
        except REDIS_FAILURES as exc:
            raise CacheUnavailable("get", str(exc)) from exc

    async def put(self, key: str, value: bytes, ttl: int | None = None) -> None:
        try:
            if ttl:
                await self.client.setex(key, ttl, value)
            else:
                await self.client.set(key, value)
        except REDIS_FAILURES as exc:
            raise CacheUnavailable("put", str(exc)) from exc

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except REDIS_FAILURES as exc:
            raise CacheUnavailable("delete", str(exc)) from exc

    async def flush_record_type(self, record_type: str) -> int:
        """Delete every entry for a record type.

        Never needed for correctness; reclaims memory after bulk rewrites.
        Returns the number of keys deleted.
        """
        pattern = CacheKeys.record_type_pattern(record_type)
        deleted = 0

        # Use SCAN to avoid blocking on large keyspaces
        try:
            async for key in self.client.scan_iter(match=pattern):
                await self.client.delete(key)
                deleted += 1
        except REDIS_FAILURES as exc:
            raise CacheUnavailable("flush", str(exc)) from exc

        return deleted

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except REDIS_FAILURES:
            return False
