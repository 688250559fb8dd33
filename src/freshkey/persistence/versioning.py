"""Manual version bumps.

This is the escape hatch for changes the owner's own version does not
capture, most notably writes to eagerly loaded associations. Bumping moves
the owner's version strictly forward, which changes every cache key derived
from it; nothing is deleted from the cache.

The new version is always strictly greater than the stored one, even when
the clock has not advanced past it (same microsecond, clock skew between
writers), so a bump can never collide with the key it means to replace.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from freshkey.persistence.tables import utcnow
from freshkey.registry import primary_key_attribute, record_type, version_attribute

logger = logging.getLogger(__name__)

RESOLUTION = timedelta(microseconds=1)


def next_version(current: Any, python_type: type | None = None) -> Any:
    """Smallest acceptable successor of a version value.

    Timestamps advance to max(now, current + 1µs); integer counters to
    current + 1. ``python_type`` decides the kind when current is None.
    """
    if current is None:
        if python_type is int:
            return 1
        return utcnow()
    if isinstance(current, datetime):
        now = utcnow()
        if current.tzinfo is None:
            now = now.replace(tzinfo=None)
        return max(now, current + RESOLUTION)
    if isinstance(current, int) and not isinstance(current, bool):
        return current + 1
    raise TypeError(f"Cannot advance version of type {type(current).__name__}")


def _python_type(model: type) -> type | None:
    attr = version_attribute(model)
    try:
        return inspect(model).columns[attr.key].type.python_type  # type: ignore[no-any-return]
    except NotImplementedError:
        return None


async def bump_version(session: AsyncSession, instance: Any) -> Any:
    """Advance a loaded instance's version and flush.

    Returns the new version value.
    """
    model = type(instance)
    attr = version_attribute(model)
    new_version = next_version(getattr(instance, attr.key), _python_type(model))
    setattr(instance, attr.key, new_version)
    await session.flush()
    logger.debug(
        "Bumped version",
        extra={"record_type": record_type(model), "version": str(new_version)},
    )
    return new_version


async def bump_version_by_id(session: AsyncSession, model: type, record_id: Any) -> Any | None:
    """Advance a record's version without loading the full row.

    Returns the new version, or None if the record does not exist.
    """
    pk = primary_key_attribute(model)
    attr = version_attribute(model)

    result = await session.execute(select(attr).where(pk == record_id))
    row = result.first()
    if row is None:
        return None

    new_version = next_version(row[0], _python_type(model))
    await session.execute(update(model).where(pk == record_id).values({attr.key: new_version}))
    await session.flush()
    logger.debug(
        "Bumped version",
        extra={"record_type": record_type(model), "version": str(new_version)},
    )
    return new_version
