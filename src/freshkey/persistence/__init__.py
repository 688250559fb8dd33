"""Persistence layer for freshkey.

This module provides:
- Async engine and session factory
- The declarative Base and the VersionedMixin version column
- SQLAlchemy implementations of the version probe and record loader
- Manual version bumps for association-driven invalidation
"""

from freshkey.persistence.base import RecordSource, VersionSource
from freshkey.persistence.db import (
    close_db,
    get_engine,
    health_check,
    init_db,
    session_context,
)
from freshkey.persistence.loader import SqlRecordLoader
from freshkey.persistence.probe import SqlVersionProbe
from freshkey.persistence.tables import Base, VersionedMixin
from freshkey.persistence.versioning import bump_version, bump_version_by_id

__all__ = [
    # DB
    "get_engine",
    "close_db",
    "health_check",
    "init_db",
    "session_context",
    # Tables
    "Base",
    "VersionedMixin",
    # Store primitives
    "RecordSource",
    "VersionSource",
    "SqlRecordLoader",
    "SqlVersionProbe",
    # Manual invalidation
    "bump_version",
    "bump_version_by_id",
]
