"""Canonical query descriptors.

A QueryDescriptor is the identity of "what is being asked for", independent
of how the caller phrased it. It is immutable and hashable, and its
canonical() form feeds the cache key digest.

Example:
    descriptor = QueryDescriptor.for_query(
        "items",
        filters=[Filter("category", "eq", "books")],
        order=[Order("created_at", descending=True)],
        limit=20,
    )
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

FILTER_OPS = frozenset({"eq", "ne", "lt", "le", "gt", "ge", "in", "not_in", "is_null", "like"})


def _freeze(value: Any) -> Any:
    """Normalise list-like filter values to tuples so descriptors stay hashable."""
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_freeze(v) for v in value]
        if isinstance(value, (set, frozenset)):
            items.sort(key=repr)
        return tuple(items)
    return value


@dataclass(frozen=True, slots=True)
class Filter:
    """A single predicate clause: ``field <op> value``."""

    field: str
    op: str = "eq"
    value: Any = None

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter op {self.op!r}")
        object.__setattr__(self, "value", _freeze(self.value))

    def canonical(self) -> list[Any]:
        return [self.field, self.op, self.value]


@dataclass(frozen=True, slots=True)
class Order:
    """Sort clause."""

    field: str
    descending: bool = False

    @classmethod
    def parse(cls, spec: str | Order) -> Order:
        """Accept ``"name"``, ``"-name"`` (descending) or an Order."""
        if isinstance(spec, Order):
            return spec
        if spec.startswith("-"):
            return cls(spec[1:], descending=True)
        return cls(spec)

    def canonical(self) -> list[Any]:
        return [self.field, "desc" if self.descending else "asc"]


@dataclass(frozen=True, slots=True)
class QueryDescriptor:
    """Canonical, comparable identity for a cached query."""

    record_type: str
    ids: tuple[Any, ...] | None = None
    filters: tuple[Filter, ...] = ()
    order: tuple[Order, ...] = ()
    limit: int | None = None
    offset: int | None = None
    include: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")
        if self.offset is not None and self.offset < 0:
            raise ValueError("offset must be non-negative")
        # Eager-load markers form a set; order of declaration is irrelevant.
        object.__setattr__(self, "include", tuple(sorted(set(self.include))))

    @classmethod
    def for_ids(
        cls, record_type: str, ids: Iterable[Any], include: Iterable[str] = ()
    ) -> QueryDescriptor:
        return cls(record_type=record_type, ids=tuple(ids), include=tuple(include))

    @classmethod
    def for_query(
        cls,
        record_type: str,
        filters: Iterable[Filter] = (),
        order: Iterable[str | Order] = (),
        limit: int | None = None,
        offset: int | None = None,
        include: Iterable[str] = (),
    ) -> QueryDescriptor:
        return cls(
            record_type=record_type,
            filters=tuple(filters),
            order=tuple(Order.parse(o) for o in order),
            limit=limit,
            offset=offset,
            include=tuple(include),
        )

    @property
    def is_by_id(self) -> bool:
        return self.ids is not None

    def where(self, *filters: Filter, **equals: Any) -> QueryDescriptor:
        extra = tuple(filters) + tuple(Filter(k, "eq", v) for k, v in sorted(equals.items()))
        return replace(self, filters=self.filters + extra)

    def order_by(self, *specs: str | Order) -> QueryDescriptor:
        return replace(self, order=self.order + tuple(Order.parse(s) for s in specs))

    def with_limit(self, limit: int | None) -> QueryDescriptor:
        return replace(self, limit=limit)

    def with_offset(self, offset: int | None) -> QueryDescriptor:
        return replace(self, offset=offset)

    def with_include(self, *names: str) -> QueryDescriptor:
        return replace(self, include=self.include + names)

    def canonical(self) -> dict[str, Any]:
        """Plain structure for key derivation.

        Filters keep declaration order, so the same predicate written in a
        different order maps to a separate (equally valid) cache entry.
        """
        return {
            "type": self.record_type,
            "ids": list(self.ids) if self.ids is not None else None,
            "filters": [f.canonical() for f in self.filters],
            "order": [o.canonical() for o in self.order],
            "limit": self.limit,
            "offset": self.offset,
            "include": list(self.include),
        }
