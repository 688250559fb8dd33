"""Core value types: descriptors, version metadata and frozen records."""

from freshkey.core.descriptor import Filter, Order, QueryDescriptor
from freshkey.core.metadata import (
    ABSENT,
    Absent,
    EMPTY_AGGREGATE,
    AggregateVersion,
    RecordVersion,
    VersionMetadata,
)
from freshkey.core.records import FrozenRecord, freeze

__all__ = [
    "ABSENT",
    "Absent",
    "EMPTY_AGGREGATE",
    "AggregateVersion",
    "Filter",
    "FrozenRecord",
    "Order",
    "QueryDescriptor",
    "RecordVersion",
    "VersionMetadata",
    "freeze",
]
