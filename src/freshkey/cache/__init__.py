"""Cache layer for freshkey.

Entries are addressed by keys derived from the query identity plus the
current version metadata:
- A version change produces a new key; nothing is explicitly invalidated
- Superseded entries are orphaned and expire through TTL or eviction
- The store is pluggable (in-process memory or Redis)
"""

from freshkey.cache.keys import CacheKeys
from freshkey.cache.store import (
    CacheStore,
    MemoryCacheStore,
    get_default_store,
    set_default_store,
)

__all__ = [
    "CacheKeys",
    "CacheStore",
    "MemoryCacheStore",
    "get_default_store",
    "set_default_store",
]
