"""SQLAlchemy declarative base and the versioned-record mixin.

A cached record type needs one totally ordered, non-decreasing version
column. VersionedMixin provides the conventional ``updated_at`` timestamp,
indexed so the version probe stays an index read rather than a table scan.

Models that use a different column (e.g. ``modified_at`` or an integer
counter) declare it themselves, index it, and register the name with
freshkey.registry.configure().
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utcnow() -> datetime:
    """Timezone-aware current time with microsecond resolution."""
    return datetime.now(UTC)


class VersionedMixin:
    """Adds created_at / updated_at timestamps; updated_at is the version."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        index=True,
    )
