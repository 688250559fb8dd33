"""Version metadata returned by the store probe.

RecordVersion describes one record, AggregateVersion a record set. Both
sentinels are fixed values: repeated empty results derive the same key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class RecordVersion:
    """(id, version) of a single record."""

    id: Any
    version: Any

    def canonical(self) -> list[Any]:
        return ["rec", self.id, self.version]


@dataclass(frozen=True, slots=True)
class AggregateVersion:
    """(max_version, count) over a filtered record set."""

    max_version: Any
    count: int

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def canonical(self) -> list[Any]:
        return ["agg", self.max_version, self.count]


class Absent:
    """Sentinel for a single-record probe that matched nothing."""

    _instance: Absent | None = None

    def __new__(cls) -> Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def canonical(self) -> list[Any]:
        return ["absent"]


ABSENT = Absent()
EMPTY_AGGREGATE = AggregateVersion(max_version=None, count=0)

VersionMetadata = RecordVersion | AggregateVersion | Absent
