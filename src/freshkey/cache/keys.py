"""Cache key schema for freshkey.

Key format: {prefix}:{record_type}:{kind}:{digest}

Where:
- prefix: "freshkey" by default (namespace for a shared Redis)
- record_type: table / record type name
- kind: "rec" (one record by id) or "set" (multi-record query)
- digest: SHA256 hex of the canonical encoding of
  (record_type, descriptor, version metadata)

The version metadata is part of the digest, so any version change visible to
the probe yields a new key. Stale entries are never deleted, only orphaned
until the store's TTL or eviction removes them. The digest also bounds key
length regardless of how large the predicate is.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from typing import Any, Literal

from freshkey.config import settings
from freshkey.core.canonicalize import canonical_bytes
from freshkey.core.descriptor import QueryDescriptor
from freshkey.core.metadata import VersionMetadata

KeyKind = Literal["rec", "set"]


class CacheKeys:
    """Cache key builder following a consistent naming convention."""

    PREFIX = settings.key_prefix

    @classmethod
    def _digest(cls, record_type: str, identity: Any, metadata: VersionMetadata) -> str:
        payload = canonical_bytes([record_type, identity, metadata.canonical()])
        return hashlib.sha256(payload).hexdigest()

    @classmethod
    def build(
        cls,
        record_type: str,
        descriptor: QueryDescriptor,
        metadata: VersionMetadata,
    ) -> str:
        """Key for a whole query (multi-record strategy)."""
        digest = cls._digest(record_type, descriptor.canonical(), metadata)
        return f"{cls.PREFIX}:{record_type}:set:{digest}"

    @classmethod
    def record(
        cls,
        record_type: str,
        record_id: Any,
        metadata: VersionMetadata,
        include: Iterable[str] = (),
    ) -> str:
        """Key for one record with a given set of eager associations.

        Shared by find-by-id and first-match lookups, so both reuse an entry
        for the same (id, version, include) triple.
        """
        identity = {"id": record_id, "include": sorted(set(include))}
        digest = cls._digest(record_type, identity, metadata)
        return f"{cls.PREFIX}:{record_type}:rec:{digest}"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Parse a cache key into its components.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(":")
        if len(parts) != 4 or parts[0] != cls.PREFIX or parts[2] not in ("rec", "set"):
            return None

        return {
            "prefix": parts[0],
            "record_type": parts[1],
            "kind": parts[2],
            "digest": parts[3],
        }

    @classmethod
    def record_type_pattern(cls, record_type: str) -> str:
        """Pattern matching every entry of a record type.

        Use with Redis SCAN + DEL for operational flushes.
        """
        return f"{cls.PREFIX}:{record_type}:*"
