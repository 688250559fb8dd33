"""Global pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from freshkey import registry
from freshkey.cache.store import MemoryCacheStore, set_default_store


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: requires Docker (PostgreSQL and Redis containers)"
    )


@pytest.fixture(autouse=True)
def _isolated_cache_config() -> Iterator[None]:
    """Each test starts with no registered config and a fresh default store."""
    registry.reset()
    set_default_store(None)
    yield
    registry.reset()
    set_default_store(None)


@pytest.fixture
def cache_store() -> MemoryCacheStore:
    """Empty in-process cache store."""
    return MemoryCacheStore()
