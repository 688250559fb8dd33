"""Full record loads against a SQLAlchemy store.

Loads run with ``populate_existing`` so instances already present in the
session's identity map are refreshed from the row; a cache entry must never
be built from identity-map state older than the probed version.

An include path that leads back to an already loaded record (for example
``books.author`` on an author) reloads that record mid-statement, which
resets collections populated earlier in the same load. Snapshots are
therefore taken through ``AsyncSession.run_sync``, where walking the include
tree may load such a collection again instead of failing outside the
greenlet. The walk also leaves the returned live instances fully loaded.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from freshkey.associations import AssociationLoadPolicy
from freshkey.core.descriptor import QueryDescriptor
from freshkey.errors import LoadFailure
from freshkey.observability.metrics import time_load
from freshkey.persistence.base import RecordPayload, RecordSource
from freshkey.persistence.query import apply_filters, apply_ordering
from freshkey.registry import primary_key_attribute, record_type


class SqlRecordLoader(RecordSource):
    """RecordSource that loads ORM instances and snapshots them."""

    def __init__(
        self,
        session: AsyncSession,
        associations: AssociationLoadPolicy | None = None,
    ):
        self.session = session
        self.associations = associations or AssociationLoadPolicy()

    def _select(self, model: type, include: Sequence[str]) -> Select[Any]:
        return (
            select(model)
            .options(*self.associations.options(model, include))
            .execution_options(populate_existing=True)
        )

    def _snapshots(
        self, _session: Session, instances: list[Any], include: Sequence[str]
    ) -> list[RecordPayload]:
        return [self.associations.snapshot(instance, include) for instance in instances]

    async def _load(
        self, model: type, stmt: Select[Any], include: Sequence[str]
    ) -> list[tuple[Any, RecordPayload]]:
        name = record_type(model)
        try:
            with time_load(name):
                result = await self.session.execute(stmt)
                instances = list(result.scalars().all())
                snapshots = await self.session.run_sync(self._snapshots, instances, include)
        except SQLAlchemyError as exc:
            raise LoadFailure(name, str(exc)) from exc
        return list(zip(instances, snapshots))

    def _by_id(self, model: type, record_id: Any, include: Sequence[str]) -> Select[Any]:
        pk = primary_key_attribute(model)
        return self._select(model, include).where(pk == record_id)

    def _by_descriptor(self, model: type, descriptor: QueryDescriptor) -> Select[Any]:
        stmt = apply_filters(self._select(model, descriptor.include), model, descriptor)
        return apply_ordering(stmt, model, descriptor)

    async def instance(
        self, model: type, record_id: Any, include: Sequence[str] = ()
    ) -> Any | None:
        """Live ORM instance by primary key, associations loaded."""
        loaded = await self._load(model, self._by_id(model, record_id, include), include)
        return loaded[0][0] if loaded else None

    async def instances(self, model: type, descriptor: QueryDescriptor) -> list[Any]:
        """Live ORM instances for a descriptor, ordered and paginated."""
        stmt = self._by_descriptor(model, descriptor)
        return [instance for instance, _ in await self._load(model, stmt, descriptor.include)]

    async def load_single(
        self, model: type, record_id: Any, include: Sequence[str] = ()
    ) -> RecordPayload | None:
        loaded = await self._load(model, self._by_id(model, record_id, include), include)
        return loaded[0][1] if loaded else None

    async def load_by_ids(
        self, model: type, ids: Sequence[Any], include: Sequence[str] = ()
    ) -> dict[Any, RecordPayload]:
        if not ids:
            return {}
        pk = primary_key_attribute(model)
        stmt = self._select(model, include).where(pk.in_(list(ids)))
        return {
            getattr(instance, pk.key): snapshot
            for instance, snapshot in await self._load(model, stmt, include)
        }

    async def load_many(self, model: type, descriptor: QueryDescriptor) -> list[RecordPayload]:
        stmt = self._by_descriptor(model, descriptor)
        return [snapshot for _, snapshot in await self._load(model, stmt, descriptor.include)]
