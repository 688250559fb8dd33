"""Repository facade with cached finders.

Cached finders (``*_with_cache``) return deferred handles; see
freshkey.result. Their uncached counterparts (find, all) return live ORM
instances for write paths and raise the same error types, so switching a
call site between the two never changes its error handling.

Example:
    async with session_context() as session:
        repo = CachedRepository(session, Item)

        item = await repo.find_with_cache(1)
        books = await repo.all_with_cache(category="books", order=["-created_at"], limit=20)
        newest = await repo.first_with_cache(order=["-created_at"])

        # After changing an association the owner does not version itself
        await repo.bump_version(item.id)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from freshkey.associations import AssociationLoadPolicy
from freshkey.cache.store import CacheStore
from freshkey.core.descriptor import Filter, Order, QueryDescriptor
from freshkey.core.records import FrozenRecord
from freshkey.fetcher import CacheAsideFetcher
from freshkey.persistence.loader import SqlRecordLoader
from freshkey.persistence.probe import SqlVersionProbe
from freshkey.persistence.versioning import bump_version, bump_version_by_id
from freshkey.registry import cache_store_for, record_type, ttl_for
from freshkey.result import CachedQuery, CachedResult


class CachedRepository:
    """Cached and uncached finders for one mapped model."""

    def __init__(
        self,
        session: AsyncSession,
        model: type,
        cache_store: CacheStore | None = None,
        ttl: int | None = None,
        associations: AssociationLoadPolicy | None = None,
        degrade_on_cache_error: bool | None = None,
    ):
        self.session = session
        self.model = model
        self.associations = associations or AssociationLoadPolicy()
        self.loader = SqlRecordLoader(session, self.associations)
        self.fetcher = CacheAsideFetcher(
            probe=SqlVersionProbe(session),
            loader=self.loader,
            store=cache_store if cache_store is not None else cache_store_for(model),
            ttl=ttl if ttl is not None else ttl_for(model),
            degrade_on_cache_error=degrade_on_cache_error,
        )

    @property
    def record_type(self) -> str:
        return record_type(self.model)

    def descriptor(
        self,
        *filters: Filter,
        order: Iterable[str | Order] = (),
        limit: int | None = None,
        offset: int | None = None,
        include: Iterable[str] = (),
        **equals: Any,
    ) -> QueryDescriptor:
        """Canonical descriptor for keyword-style finder arguments."""
        include = tuple(include)
        self.associations.validate(self.model, include)
        base = QueryDescriptor.for_query(
            self.record_type, order=order, limit=limit, offset=offset, include=include
        )
        return base.where(*filters, **equals)

    # -------------------------------------------------------------------------
    # Cached finders
    # -------------------------------------------------------------------------

    def find_with_cache(
        self, id_or_ids: Any, include: Iterable[str] = ()
    ) -> CachedResult[Any]:
        """Deferred lookup by primary key.

        A single id resolves to a FrozenRecord or None; a list/tuple/set of
        ids resolves to a list aligned with the request (None for absent ids).
        """
        include = tuple(include)
        self.associations.validate(self.model, include)
        if isinstance(id_or_ids, (list, tuple, set, frozenset)):
            ids = list(id_or_ids)
            return CachedResult(lambda: self.fetcher.fetch_many_ids(self.model, ids, include))
        return CachedResult(lambda: self.fetcher.fetch_one(self.model, id_or_ids, include))

    def first_with_cache(
        self,
        *filters: Filter,
        order: Iterable[str | Order] = (),
        include: Iterable[str] = (),
        **equals: Any,
    ) -> CachedResult[FrozenRecord | None]:
        """Deferred first match (by ``order``, else by primary key)."""
        descriptor = self.descriptor(*filters, order=order, include=include, **equals)
        return CachedResult(lambda: self.fetcher.fetch_first(self.model, descriptor))

    def all_with_cache(
        self,
        *filters: Filter,
        order: Iterable[str | Order] = (),
        limit: int | None = None,
        offset: int | None = None,
        include: Iterable[str] = (),
        **equals: Any,
    ) -> CachedQuery:
        """Deferred multi-record query."""
        descriptor = self.descriptor(
            *filters, order=order, limit=limit, offset=offset, include=include, **equals
        )
        return CachedQuery(self, descriptor)

    def with_cache(self) -> CachedQuery:
        """Deferred query over every record, to be refined by chaining."""
        return CachedQuery(self, self.descriptor())

    # -------------------------------------------------------------------------
    # Uncached equivalents
    # -------------------------------------------------------------------------

    async def find(self, record_id: Any, include: Sequence[str] = ()) -> Any | None:
        """Load a live instance, bypassing the cache."""
        return await self.loader.instance(self.model, record_id, include)

    async def all(
        self,
        *filters: Filter,
        order: Iterable[str | Order] = (),
        limit: int | None = None,
        offset: int | None = None,
        include: Iterable[str] = (),
        **equals: Any,
    ) -> list[Any]:
        """Load live instances for a query, bypassing the cache."""
        descriptor = self.descriptor(
            *filters, order=order, limit=limit, offset=offset, include=include, **equals
        )
        return await self.loader.instances(self.model, descriptor)

    # -------------------------------------------------------------------------
    # Manual invalidation
    # -------------------------------------------------------------------------

    async def bump_version(self, instance_or_id: Any) -> Any | None:
        """Advance a record's version so its cached entries are superseded.

        Accepts a loaded instance or a primary key value. Returns the new
        version (None if the id does not exist).
        """
        if isinstance(instance_or_id, self.model):
            return await bump_version(self.session, instance_or_id)
        return await bump_version_by_id(self.session, self.model, instance_or_id)
