"""Store read primitives consumed by the cache-aside fetcher.

Defines the abstract interfaces for the two kinds of reads the fetcher issues
against the persistent store: cheap version probes and full record loads.
Both must reflect committed state at call time (read-committed or better).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from freshkey.core.descriptor import QueryDescriptor
from freshkey.core.metadata import Absent, AggregateVersion, RecordVersion

# A loaded record as a plain structure (columns plus attached associations)
RecordPayload = dict[str, Any]


class VersionSource(ABC):
    """Reads version metadata without materializing records.

    Implementations raise ProbeFailure when the store read fails.
    """

    @abstractmethod
    async def probe_single(self, model: type, record_id: Any) -> RecordVersion | Absent:
        """Return (id, version) for one record, or ABSENT."""
        pass

    @abstractmethod
    async def probe_many(self, model: type, ids: Sequence[Any]) -> dict[Any, RecordVersion]:
        """Map each existing requested id to its (stored id, version).

        Missing ids are omitted. Keys are the ids as passed in, even where the
        store converted them to match the key column.
        """
        pass

    @abstractmethod
    async def probe_first(
        self, model: type, descriptor: QueryDescriptor
    ) -> RecordVersion | Absent:
        """Return (id, version) of the first row under the descriptor's filters and order."""
        pass

    @abstractmethod
    async def probe_aggregate(self, model: type, descriptor: QueryDescriptor) -> AggregateVersion:
        """Return (max_version, count) over the descriptor's filters.

        Order, limit and offset never enter the computation. A predicate that
        matches nothing returns EMPTY_AGGREGATE.
        """
        pass


class RecordSource(ABC):
    """Loads full records, with eager associations attached.

    Implementations raise LoadFailure when the store read fails.
    """

    @abstractmethod
    async def load_single(
        self, model: type, record_id: Any, include: Sequence[str] = ()
    ) -> RecordPayload | None:
        pass

    @abstractmethod
    async def load_by_ids(
        self, model: type, ids: Sequence[Any], include: Sequence[str] = ()
    ) -> dict[Any, RecordPayload]:
        pass

    @abstractmethod
    async def load_many(self, model: type, descriptor: QueryDescriptor) -> list[RecordPayload]:
        """Load the ordered, paginated result of a descriptor."""
        pass
