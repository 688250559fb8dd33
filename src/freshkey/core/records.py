"""Immutable record snapshots handed back to callers.

Cached records are shared between every reader of a cache entry, so the
values returned from the cache layer cannot be mutated in place. A caller
that needs to modify a record loads it outside the cache.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any


class FrozenRecord(Mapping[str, Any]):
    """Read-only mapping with attribute access.

    Nested dicts become FrozenRecord and lists become tuples, so the whole
    object graph (including eager associations) is immutable.

    Attribute access falls back to fields only for names the class does not
    define. A column named after a Mapping method (keys, values, items, get)
    or to_dict is read with item access: ``record["items"]``.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]):
        object.__setattr__(self, "_data", {k: freeze(v) for k, v in data.items()})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name == "_data":
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise TypeError(f"{type(self).__name__} is read-only; re-fetch without the cache to modify")

    def __delattr__(self, name: str) -> None:
        raise TypeError(f"{type(self).__name__} is read-only")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FrozenRecord):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted((k, _hashable(v)) for k, v in self._data.items())))

    def __repr__(self) -> str:
        return f"FrozenRecord({self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable deep copy."""
        return {k: _thaw(v) for k, v in self._data.items()}


def freeze(value: Any) -> Any:
    """Recursively convert dicts/lists into FrozenRecord/tuples."""
    if isinstance(value, FrozenRecord):
        return value
    if isinstance(value, Mapping):
        return FrozenRecord(value)
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, FrozenRecord):
        return value.to_dict()
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def _hashable(value: Any) -> Any:
    if isinstance(value, tuple):
        return tuple(_hashable(v) for v in value)
    return value
