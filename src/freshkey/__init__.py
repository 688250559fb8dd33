"""freshkey: version-keyed cache-aside reads for SQLAlchemy models.

Cache keys are derived from each record's "last modified" version, so any
write that advances a version is visible on the next read without explicit
cache invalidation.

Example:
    from freshkey import CachedRepository, configure

    configure(Item, version_column="modified_at")

    repo = CachedRepository(session, Item)
    item = await repo.find_with_cache(1)
"""

from freshkey.associations import AssociationLoadPolicy
from freshkey.cache.keys import CacheKeys
from freshkey.cache.store import CacheStore, MemoryCacheStore, get_default_store
from freshkey.core.descriptor import Filter, Order, QueryDescriptor
from freshkey.core.metadata import ABSENT, EMPTY_AGGREGATE, AggregateVersion, RecordVersion
from freshkey.core.records import FrozenRecord
from freshkey.errors import CacheUnavailable, FreshkeyError, LoadFailure, ProbeFailure
from freshkey.fetcher import CacheAsideFetcher
from freshkey.persistence.versioning import bump_version, bump_version_by_id
from freshkey.registry import CacheConfig, configure
from freshkey.repository import CachedRepository
from freshkey.result import CachedQuery, CachedResult

__version__ = "0.1.0"

__all__ = [
    # Facade
    "CachedRepository",
    "CachedQuery",
    "CachedResult",
    "configure",
    "CacheConfig",
    # Core algorithm
    "CacheAsideFetcher",
    "CacheKeys",
    "AssociationLoadPolicy",
    "QueryDescriptor",
    "Filter",
    "Order",
    "RecordVersion",
    "AggregateVersion",
    "ABSENT",
    "EMPTY_AGGREGATE",
    "FrozenRecord",
    # Cache stores
    "CacheStore",
    "MemoryCacheStore",
    "get_default_store",
    # Manual invalidation
    "bump_version",
    "bump_version_by_id",
    # Errors
    "FreshkeyError",
    "ProbeFailure",
    "LoadFailure",
    "CacheUnavailable",
]
