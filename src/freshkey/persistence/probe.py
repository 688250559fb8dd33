"""Version metadata probe against a SQLAlchemy store.

Each probe selects only the primary key and version column (or aggregates
over them); full rows are never materialized. The version column must be
indexed, otherwise the probe degrades to a table scan and caching no longer
pays for itself.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from freshkey.core.descriptor import QueryDescriptor
from freshkey.core.metadata import (
    ABSENT,
    EMPTY_AGGREGATE,
    Absent,
    AggregateVersion,
    RecordVersion,
)
from freshkey.errors import ProbeFailure
from freshkey.observability.metrics import time_probe
from freshkey.persistence.base import VersionSource
from freshkey.persistence.query import apply_filters, apply_ordering
from freshkey.registry import primary_key_attribute, record_type, version_attribute


def _coerce(model: type, record_id: Any) -> Any:
    """Convert an id to the primary key column's Python type, if possible."""
    try:
        python_type = inspect(model).primary_key[0].type.python_type
    except NotImplementedError:
        return record_id
    if isinstance(record_id, python_type):
        return record_id
    try:
        return python_type(record_id)
    except (TypeError, ValueError, AttributeError):
        return record_id


def single_statement(model: type, record_id: Any) -> Select[Any]:
    pk = primary_key_attribute(model)
    return select(pk, version_attribute(model)).where(pk == record_id)


def many_statement(model: type, ids: Sequence[Any]) -> Select[Any]:
    pk = primary_key_attribute(model)
    return select(pk, version_attribute(model)).where(pk.in_(list(ids)))


def first_statement(model: type, descriptor: QueryDescriptor) -> Select[Any]:
    pk = primary_key_attribute(model)
    stmt = apply_filters(select(pk, version_attribute(model)), model, descriptor)
    stmt = apply_ordering(stmt, model, descriptor.with_limit(1))
    if not descriptor.order:
        stmt = stmt.order_by(pk)
    return stmt


def aggregate_statement(model: type, descriptor: QueryDescriptor) -> Select[Any]:
    """SELECT MAX(version), COUNT(*) over the filters only."""
    stmt = select(func.max(version_attribute(model)), func.count()).select_from(model)
    return apply_filters(stmt, model, descriptor)


class SqlVersionProbe(VersionSource):
    """VersionSource that issues minimal reads through an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def probe_single(self, model: type, record_id: Any) -> RecordVersion | Absent:
        name = record_type(model)
        try:
            with time_probe(name, "single"):
                result = await self.session.execute(single_statement(model, record_id))
                row = result.first()
        except SQLAlchemyError as exc:
            raise ProbeFailure(name, str(exc)) from exc
        if row is None:
            return ABSENT
        return RecordVersion(id=row[0], version=row[1])

    async def probe_many(self, model: type, ids: Sequence[Any]) -> dict[Any, RecordVersion]:
        if not ids:
            return {}
        name = record_type(model)
        try:
            with time_probe(name, "many"):
                result = await self.session.execute(many_statement(model, ids))
                rows = result.all()
        except SQLAlchemyError as exc:
            raise ProbeFailure(name, str(exc)) from exc

        # Key results by the id as requested; the store may coerce it (e.g. "1" -> 1)
        requested = {_coerce(model, rid): rid for rid in ids}
        return {
            requested.get(row[0], row[0]): RecordVersion(id=row[0], version=row[1])
            for row in rows
        }

    async def probe_first(
        self, model: type, descriptor: QueryDescriptor
    ) -> RecordVersion | Absent:
        name = record_type(model)
        try:
            with time_probe(name, "first"):
                result = await self.session.execute(first_statement(model, descriptor))
                row = result.first()
        except SQLAlchemyError as exc:
            raise ProbeFailure(name, str(exc)) from exc
        if row is None:
            return ABSENT
        return RecordVersion(id=row[0], version=row[1])

    async def probe_aggregate(self, model: type, descriptor: QueryDescriptor) -> AggregateVersion:
        name = record_type(model)
        try:
            with time_probe(name, "aggregate"):
                result = await self.session.execute(aggregate_statement(model, descriptor))
                max_version, count = result.one()
        except SQLAlchemyError as exc:
            raise ProbeFailure(name, str(exc)) from exc
        if not count:
            return EMPTY_AGGREGATE
        return AggregateVersion(max_version=max_version, count=int(count))
