"""Translate QueryDescriptor filters and ordering into SQLAlchemy clauses."""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import ColumnElement, Select, inspect
from sqlalchemy.orm import InstrumentedAttribute

from freshkey.core.descriptor import Filter, Order, QueryDescriptor
from freshkey.registry import primary_key_attribute

SelectT = TypeVar("SelectT", bound=Select[Any])


def column(model: type, name: str) -> InstrumentedAttribute[Any]:
    """Mapped column attribute by name; unknown names are rejected."""
    if name not in inspect(model).column_attrs:
        raise ValueError(f"{model.__name__} has no mapped column {name!r}")
    return getattr(model, name)  # type: ignore[no-any-return]


def filter_clause(model: type, flt: Filter) -> ColumnElement[bool]:
    col = column(model, flt.field)
    op, value = flt.op, flt.value

    if op == "eq":
        return col.is_(None) if value is None else col == value
    if op == "ne":
        return col.is_not(None) if value is None else col != value
    if op == "lt":
        return col < value
    if op == "le":
        return col <= value
    if op == "gt":
        return col > value
    if op == "ge":
        return col >= value
    if op == "in":
        return col.in_(value)
    if op == "not_in":
        return col.not_in(value)
    if op == "is_null":
        # value=False flips the test to IS NOT NULL
        return col.is_not(None) if value is False else col.is_(None)
    if op == "like":
        return col.like(value)
    raise ValueError(f"Unsupported filter op {op!r}")


def order_clause(model: type, order: Order) -> ColumnElement[Any]:
    col = column(model, order.field)
    return col.desc() if order.descending else col.asc()


def apply_filters(stmt: SelectT, model: type, descriptor: QueryDescriptor) -> SelectT:
    """Restrict to the descriptor's ids (if any) and filters."""
    if descriptor.ids is not None:
        stmt = stmt.where(primary_key_attribute(model).in_(list(descriptor.ids)))
    for flt in descriptor.filters:
        stmt = stmt.where(filter_clause(model, flt))
    return stmt


def apply_ordering(stmt: SelectT, model: type, descriptor: QueryDescriptor) -> SelectT:
    """Apply order, offset and limit (the parts that pick a page)."""
    if descriptor.order:
        stmt = stmt.order_by(*(order_clause(model, o) for o in descriptor.order))
    if descriptor.offset is not None:
        stmt = stmt.offset(descriptor.offset)
    if descriptor.limit is not None:
        stmt = stmt.limit(descriptor.limit)
    return stmt
