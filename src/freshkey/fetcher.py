"""Cache-aside fetcher keyed by version metadata.

Every lookup follows the same two-phase shape:

1. Probe the store for version metadata (cheap, no full rows)
2. Derive the cache key from query identity + metadata
3. Check the cache store; on a hit, decode and return
4. On a miss, load the full records (eager associations attached),
   write them under the derived key, and return them

Any committed write that advances a version changes the derived key, so
reads never see data older than the probed version and no writer has to
invalidate anything.

Two strategies share this shape:
- Single-record: per-record (id, version) keys (fetch_one, fetch_many_ids,
  fetch_first)
- Multi-record: one key per query from (max_version, count) over the
  predicate (fetch_all)

Cache failures degrade to a direct load. Store failures (ProbeFailure,
LoadFailure) always propagate.

Known staleness windows:
- Eager associations are not versioned with their owner (see
  freshkey.associations)
- Two writes within the version column's resolution produce equal versions
- A write committed between the probe and the load is cached under the
  older key; the next probe sees the newer version and moves on
- Concurrent misses on the same key both load and both write; last write wins
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from freshkey.cache.keys import CacheKeys
from freshkey.cache.store import CacheStore
from freshkey.config import settings
from freshkey.core.canonicalize import decode_entry, encode_entry
from freshkey.core.descriptor import QueryDescriptor
from freshkey.core.metadata import ABSENT, RecordVersion
from freshkey.core.records import FrozenRecord, freeze
from freshkey.errors import CacheUnavailable
from freshkey.observability.metrics import (
    record_cache_degraded,
    record_cache_hit,
    record_cache_miss,
)
from freshkey.persistence.base import RecordPayload, RecordSource, VersionSource
from freshkey.registry import record_type

logger = logging.getLogger(__name__)

_MISSING = object()


class CacheAsideFetcher:
    """Orchestrates probe -> key -> cache -> load -> populate.

    Holds no state between calls beyond its collaborators.
    """

    def __init__(
        self,
        probe: VersionSource,
        loader: RecordSource,
        store: CacheStore,
        ttl: int | None = None,
        degrade_on_cache_error: bool | None = None,
    ):
        self.probe = probe
        self.loader = loader
        self.store = store
        self.ttl = ttl
        if degrade_on_cache_error is None:
            degrade_on_cache_error = settings.degrade_on_cache_error
        self.degrade_on_cache_error = degrade_on_cache_error

    # -------------------------------------------------------------------------
    # Single-record strategy
    # -------------------------------------------------------------------------

    async def fetch_one(
        self, model: type, record_id: Any, include: Sequence[str] = ()
    ) -> FrozenRecord | None:
        """Fetch one record by id.

        A missing id is answered by the probe alone: no cache access, no load,
        nothing cached.
        """
        metadata = await self.probe.probe_single(model, record_id)
        if metadata is ABSENT:
            return None
        return await self._fetch_record(model, metadata, include)

    async def fetch_first(self, model: type, descriptor: QueryDescriptor) -> FrozenRecord | None:
        """Fetch the first record matching a descriptor.

        The probe picks the record; its entry is shared with fetch_one.
        """
        metadata = await self.probe.probe_first(model, descriptor)
        if metadata is ABSENT:
            return None
        return await self._fetch_record(model, metadata, descriptor.include)

    async def fetch_many_ids(
        self, model: type, ids: Sequence[Any], include: Sequence[str] = ()
    ) -> list[FrozenRecord | None]:
        """Fetch several records by id, in request order (None for absent ids).

        Misses are loaded in a single query; hits are never reloaded. An id
        of another type than the key column (such as "1" for an integer key)
        resolves like it does in fetch_one.
        """
        name = record_type(model)
        unique_ids = list(dict.fromkeys(ids))
        versions = await self.probe.probe_many(model, unique_ids)

        present = [rid for rid in unique_ids if rid in versions]
        # Keys and loads use the stored id, so entries are shared with fetch_one
        keys = {
            rid: CacheKeys.record(name, versions[rid].id, versions[rid], include)
            for rid in present
        }
        entries = await self._get_many([keys[rid] for rid in present])

        found: dict[Any, FrozenRecord] = {}
        missing: list[Any] = []
        for rid, data in zip(present, entries):
            value = self._decode(data)
            if value is _MISSING:
                missing.append(rid)
            else:
                found[rid] = value

        for _ in found:
            record_cache_hit(name, "rec")

        if missing:
            logger.debug(
                "Cache miss for %d of %d records", len(missing), len(present),
                extra={"record_type": name},
            )
            loaded = await self.loader.load_by_ids(
                model, [versions[rid].id for rid in missing], include
            )
            for rid in missing:
                record_cache_miss(name, "rec")
                payload = loaded.get(versions[rid].id)
                if payload is not None:
                    found[rid] = await self._populate(keys[rid], payload)

        return [found.get(rid) for rid in ids]

    async def _fetch_record(
        self, model: type, metadata: RecordVersion, include: Sequence[str]
    ) -> FrozenRecord | None:
        name = record_type(model)
        key = CacheKeys.record(name, metadata.id, metadata, include)

        value = self._decode(await self._get(key))
        if value is not _MISSING:
            logger.debug("Cache hit", extra={"record_type": name, "cache_key": key})
            record_cache_hit(name, "rec")
            return value  # type: ignore[no-any-return]

        logger.debug("Cache miss", extra={"record_type": name, "cache_key": key})
        record_cache_miss(name, "rec")
        payload = await self.loader.load_single(model, metadata.id, include)
        if payload is None:
            # Deleted between probe and load
            return None
        return await self._populate(key, payload)  # type: ignore[no-any-return]

    # -------------------------------------------------------------------------
    # Multi-record strategy
    # -------------------------------------------------------------------------

    async def fetch_all(self, model: type, descriptor: QueryDescriptor) -> tuple[FrozenRecord, ...]:
        """Fetch the ordered result of a query.

        The key covers the whole descriptor (order, limit and offset
        included) plus (max_version, count) over its filters. An empty result
        uses the fixed empty sentinel, so it is cached like any other.
        """
        name = record_type(model)
        metadata = await self.probe.probe_aggregate(model, descriptor)
        key = CacheKeys.build(name, descriptor, metadata)

        value = self._decode(await self._get(key))
        if value is not _MISSING:
            logger.debug("Cache hit", extra={"record_type": name, "cache_key": key})
            record_cache_hit(name, "set")
            return value  # type: ignore[no-any-return]

        logger.debug("Cache miss", extra={"record_type": name, "cache_key": key})
        record_cache_miss(name, "set")
        payloads = await self.loader.load_many(model, descriptor)
        return await self._populate(key, payloads)  # type: ignore[no-any-return]

    # -------------------------------------------------------------------------
    # Cache access with degrade policy
    # -------------------------------------------------------------------------

    def _degrade(self, operation: str, exc: CacheUnavailable) -> None:
        if not self.degrade_on_cache_error:
            raise exc
        logger.warning(
            "Cache %s failed, bypassing cache", operation,
            exc_info=exc,
            extra={"cache_store": self.store.name},
        )
        record_cache_degraded(operation)

    async def _get(self, key: str) -> bytes | None:
        try:
            return await self.store.get(key)
        except CacheUnavailable as exc:
            self._degrade("get", exc)
            return None

    async def _get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        if not keys:
            return []
        try:
            return await self.store.get_many(keys)
        except CacheUnavailable as exc:
            self._degrade("get", exc)
            return [None] * len(keys)

    def _decode(self, data: bytes | None) -> Any:
        """Frozen value of a cached entry, or _MISSING (absent or unreadable)."""
        if data is None:
            return _MISSING
        try:
            return freeze(decode_entry(data))
        except CacheUnavailable as exc:
            self._degrade("decode", exc)
            return _MISSING

    async def _populate(self, key: str, payload: RecordPayload | list[RecordPayload]) -> Any:
        """Write an entry and return exactly what a later hit would return."""
        try:
            data = encode_entry(payload)
        except CacheUnavailable as exc:
            self._degrade("encode", exc)
            return freeze(payload)

        try:
            await self.store.put(key, data, ttl=self.ttl)
        except CacheUnavailable as exc:
            self._degrade("put", exc)

        return freeze(decode_entry(data))
