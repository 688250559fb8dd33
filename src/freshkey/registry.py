"""Per-record-type cache configuration.

Each mapped model may configure its version column, cache store and TTL,
either with configure() or a ``__cache_config__`` class attribute. Anything
left unset falls back to settings and the process-wide default store.

Example:
    configure(Item, version_column="modified_at", ttl=600)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import InstrumentedAttribute

from freshkey.cache.store import CacheStore, get_default_store
from freshkey.config import settings


@dataclass(frozen=True)
class CacheConfig:
    """Cache settings for one record type."""

    version_column: str | None = None
    cache_store: CacheStore | None = None
    ttl: int | None = None


_configs: dict[type, CacheConfig] = {}


def configure(
    model: type,
    *,
    version_column: str | None = None,
    cache_store: CacheStore | None = None,
    ttl: int | None = None,
) -> CacheConfig:
    """Register cache settings for a model."""
    config = CacheConfig(version_column=version_column, cache_store=cache_store, ttl=ttl)
    if version_column is not None:
        _require_column(model, version_column)
    _configs[model] = config
    return config


def get_config(model: type) -> CacheConfig:
    config = _configs.get(model)
    if config is None:
        config = getattr(model, "__cache_config__", None) or CacheConfig()
    return config


def record_type(model: type) -> str:
    """Stable name of a record type (its table name)."""
    return str(getattr(model, "__tablename__", None) or model.__name__)


def version_column_name(model: type) -> str:
    return get_config(model).version_column or settings.version_column


def version_attribute(model: type) -> InstrumentedAttribute[Any]:
    """Mapped attribute holding a model's version."""
    name = version_column_name(model)
    return _require_column(model, name)


def primary_key_attribute(model: type) -> InstrumentedAttribute[Any]:
    """Mapped attribute of the model's single-column primary key."""
    mapper = inspect(model)
    if len(mapper.primary_key) != 1:
        raise ValueError(f"{model.__name__} must have a single-column primary key")
    prop = mapper.get_property_by_column(mapper.primary_key[0])
    return getattr(model, prop.key)  # type: ignore[no-any-return]


def cache_store_for(model: type) -> CacheStore:
    store = get_config(model).cache_store
    return store if store is not None else get_default_store()


def ttl_for(model: type) -> int | None:
    ttl = get_config(model).ttl
    if ttl is None:
        ttl = settings.cache_ttl
    return ttl or None


def reset() -> None:
    """Drop all registered configuration."""
    _configs.clear()


def _require_column(model: type, name: str) -> InstrumentedAttribute[Any]:
    mapper = inspect(model)
    if name not in mapper.column_attrs:
        raise ValueError(f"{model.__name__} has no mapped column {name!r}")
    return getattr(model, name)  # type: ignore[no-any-return]
