"""Deferred result handles.

Cached finders return a handle instead of running the lookup. Nothing
touches the store or the cache until the handle is awaited, so a caller can
refine a query or drop the result without doing wasted work.

Example:
    recent = repo.with_cache().where(category="books").order_by("-created_at")
    page = recent.limit(20).offset(40)   # still no I/O
    items = await page                   # probe, cache check, load on miss

Once awaited, the handle keeps its value; awaiting again does not repeat
the lookup. The value is made of FrozenRecord snapshots and cannot be
mutated in place.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Generator, Iterator
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from freshkey.core.descriptor import Filter, Order, QueryDescriptor
from freshkey.core.records import FrozenRecord

if TYPE_CHECKING:
    from freshkey.repository import CachedRepository

T = TypeVar("T")

_PENDING: Any = object()


class CachedResult(Generic[T]):
    """Awaitable that runs a lookup on first await and memoizes the value.

    A failed lookup is not memoized; awaiting again retries it.
    """

    def __init__(self, thunk: Callable[[], Awaitable[T]]):
        self._thunk = thunk
        self._value: T = _PENDING
        self._lock: asyncio.Lock | None = None

    @property
    def loaded(self) -> bool:
        return self._value is not _PENDING

    @property
    def value(self) -> T:
        """The materialized value; raises if the handle was never awaited."""
        if self._value is _PENDING:
            raise RuntimeError("Result not loaded yet; await it first")
        return self._value

    async def load(self) -> T:
        if self._value is not _PENDING:
            return self._value
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._value is _PENDING:
                self._value = await self._thunk()
        return self._value

    def __await__(self) -> Generator[Any, None, T]:
        return self.load().__await__()

    def __iter__(self) -> Iterator[Any]:
        value = self.value
        if not isinstance(value, (tuple, list)):
            raise TypeError(f"{type(value).__name__} result is not iterable")
        return iter(value)

    def __len__(self) -> int:
        value = self.value
        if not isinstance(value, (tuple, list)):
            raise TypeError(f"{type(value).__name__} result has no length")
        return len(value)

    def __bool__(self) -> bool:
        """Truth of the materialized value (an absent record or empty result is False)."""
        return bool(self.value)

    async def __aiter__(self) -> AsyncIterator[Any]:
        value = await self.load()
        if not isinstance(value, (tuple, list)):
            raise TypeError(f"{type(value).__name__} result is not iterable")
        for item in value:
            yield item

    def __getattr__(self, name: str) -> Any:
        # Field access on a materialized single-record result
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.value, name)

    def __repr__(self) -> str:
        state = repr(self._value) if self.loaded else "pending"
        return f"<{type(self).__name__} {state}>"


class CachedQuery(CachedResult[tuple[FrozenRecord, ...]]):
    """Deferred multi-record query that can be refined before it runs."""

    def __init__(self, repository: CachedRepository, descriptor: QueryDescriptor):
        self._repository = repository
        self._descriptor = descriptor
        super().__init__(lambda: repository.fetcher.fetch_all(repository.model, descriptor))

    @property
    def descriptor(self) -> QueryDescriptor:
        return self._descriptor

    def _refine(self, descriptor: QueryDescriptor) -> CachedQuery:
        return CachedQuery(self._repository, descriptor)

    def where(self, *filters: Filter, **equals: Any) -> CachedQuery:
        return self._refine(self._descriptor.where(*filters, **equals))

    def order_by(self, *specs: str | Order) -> CachedQuery:
        return self._refine(self._descriptor.order_by(*specs))

    def limit(self, limit: int | None) -> CachedQuery:
        return self._refine(self._descriptor.with_limit(limit))

    def offset(self, offset: int | None) -> CachedQuery:
        return self._refine(self._descriptor.with_offset(offset))

    def include(self, *names: str) -> CachedQuery:
        self._repository.associations.validate(self._repository.model, names)
        return self._refine(self._descriptor.with_include(*names))

    def first_with_cache(self) -> CachedResult[FrozenRecord | None]:
        """Single-record handle for the first match of this query."""
        repository, descriptor = self._repository, self._descriptor
        return CachedResult(lambda: repository.fetcher.fetch_first(repository.model, descriptor))
