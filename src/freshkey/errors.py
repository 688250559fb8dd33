"""Error taxonomy for the cache layer.

Store failures (probe and load) always propagate to the caller. Cache
failures are raised as CacheUnavailable and are normally absorbed by the
fetcher, which falls back to a direct load.
"""

from __future__ import annotations


class FreshkeyError(Exception):
    """Base class for freshkey errors."""


class ProbeFailure(FreshkeyError):
    """The version metadata read against the store failed."""

    def __init__(self, record_type: str, detail: str):
        self.record_type = record_type
        self.detail = detail
        super().__init__(f"Version probe failed for {record_type}: {detail}")


class LoadFailure(FreshkeyError):
    """Loading full records from the store failed."""

    def __init__(self, record_type: str, detail: str):
        self.record_type = record_type
        self.detail = detail
        super().__init__(f"Record load failed for {record_type}: {detail}")


class CacheUnavailable(FreshkeyError):
    """The cache store could not serve a get or put, or an entry was unreadable."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Cache {operation} failed: {detail}")
