"""Cache store interface and the in-process backend.

The fetcher only needs get/put. Implementations raise CacheUnavailable for
any backend failure so the fetcher can apply its degrade policy uniformly.

- MemoryCacheStore: per-process dict with TTL and a size bound
- RedisCacheStore (freshkey.cache.redis): shared store for multiple processes
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Sequence

from freshkey.config import settings

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Abstract key-value store holding encoded cache entries."""

    name: str = "cache"

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the entry for key, or None if absent or expired."""
        pass

    @abstractmethod
    async def put(self, key: str, value: bytes, ttl: int | None = None) -> None:
        """Store an entry. ``ttl`` is in seconds; None or 0 means no expiry."""
        pass

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        """Return entries for several keys, in order.

        Backends with a native multi-get override this.
        """
        return [await self.get(key) for key in keys]

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove an entry. Not used by the fetcher; for operational flushes."""
        pass

    async def health_check(self) -> bool:
        """Check store connectivity."""
        return True

    def __bool__(self) -> bool:
        # A store is configured whether or not it holds entries
        return True


class MemoryCacheStore(CacheStore):
    """In-process store with per-entry TTL and LRU eviction.

    Suitable for single-process deployments and tests. Orphaned entries
    (from superseded versions) age out through TTL or the size bound.
    """

    name = "memory"

    def __init__(self, max_entries: int = 10_000):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, tuple[float, bytes]] = OrderedDict()

    def _now(self) -> float:
        return time.monotonic()

    async def get(self, key: str) -> bytes | None:
        item = self._entries.get(key)
        if item is None:
            return None
        expires_at, value = item
        if expires_at and self._now() > expires_at:
            self._entries.pop(key, None)
            return None
        self._entries.move_to_end(key)
        return value

    async def put(self, key: str, value: bytes, ttl: int | None = None) -> None:
        expires_at = self._now() + ttl if ttl else 0.0
        self._entries[key] = (expires_at, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cache entry %s", evicted)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()


# Process-wide default store (initialized lazily)
_default_store: CacheStore | None = None


def get_default_store() -> CacheStore:
    """Return the process-wide store used when a record type configures none."""
    global _default_store
    if _default_store is not None:
        return _default_store

    backend = settings.cache_backend.lower()
    if backend == "memory":
        _default_store = MemoryCacheStore()
    elif backend == "redis":
        from freshkey.cache.redis import RedisCacheStore, get_redis

        _default_store = RedisCacheStore(get_redis())
    else:
        raise ValueError("Unsupported cache_backend. Supported values: memory, redis.")

    logger.info("Default cache store: %s", _default_store.name)
    return _default_store


def set_default_store(store: CacheStore | None) -> None:
    """Replace (or with None, reset) the process-wide default store."""
    global _default_store
    _default_store = store
