"""Tests for the in-process cache store and default store selection."""

from __future__ import annotations

import pytest

from freshkey.cache.store import MemoryCacheStore, get_default_store, set_default_store
from freshkey.config import settings


class TestMemoryCacheStore:
    """Tests for MemoryCacheStore."""

    @pytest.mark.asyncio
    async def test_get_missing(self, cache_store: MemoryCacheStore) -> None:
        assert await cache_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_put_get(self, cache_store: MemoryCacheStore) -> None:
        await cache_store.put("k", b"v")
        assert await cache_store.get("k") == b"v"
        assert "k" in cache_store

    @pytest.mark.asyncio
    async def test_get_many_in_order(self, cache_store: MemoryCacheStore) -> None:
        await cache_store.put("a", b"1")
        await cache_store.put("c", b"3")

        assert await cache_store.get_many(["c", "b", "a"]) == [b"3", None, b"1"]

    @pytest.mark.asyncio
    async def test_ttl_expiry(
        self, cache_store: MemoryCacheStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Entries vanish once their TTL has passed."""
        now = [1000.0]
        monkeypatch.setattr(cache_store, "_now", lambda: now[0])

        await cache_store.put("k", b"v", ttl=60)
        now[0] += 59
        assert await cache_store.get("k") == b"v"

        now[0] += 2
        assert await cache_store.get("k") is None
        assert len(cache_store) == 0

    @pytest.mark.asyncio
    async def test_no_ttl_never_expires(
        self, cache_store: MemoryCacheStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        now = [1000.0]
        monkeypatch.setattr(cache_store, "_now", lambda: now[0])

        await cache_store.put("k", b"v", ttl=None)
        now[0] += 10**9
        assert await cache_store.get("k") == b"v"

    @pytest.mark.asyncio
    async def test_lru_eviction(self) -> None:
        """The least recently used entry is evicted past the size bound."""
        store = MemoryCacheStore(max_entries=2)
        await store.put("a", b"1")
        await store.put("b", b"2")
        await store.get("a")
        await store.put("c", b"3")

        assert "a" in store
        assert "b" not in store
        assert "c" in store

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, cache_store: MemoryCacheStore) -> None:
        await cache_store.put("a", b"1")
        await cache_store.put("b", b"2")

        await cache_store.delete("a")
        await cache_store.delete("missing")
        assert len(cache_store) == 1

        cache_store.clear()
        assert len(cache_store) == 0

    @pytest.mark.asyncio
    async def test_health_check(self, cache_store: MemoryCacheStore) -> None:
        assert await cache_store.health_check() is True


class TestDefaultStore:
    """Tests for the process-wide default store."""

    def test_memory_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "cache_backend", "memory")

        store = get_default_store()

        assert isinstance(store, MemoryCacheStore)
        assert get_default_store() is store

    def test_override(self, cache_store: MemoryCacheStore) -> None:
        set_default_store(cache_store)
        assert get_default_store() is cache_store

    def test_unknown_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "cache_backend", "memcached")

        with pytest.raises(ValueError, match="Unsupported cache_backend"):
            get_default_store()
