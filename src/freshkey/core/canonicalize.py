from __future__ import annotations

import base64
from collections.abc import Callable, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

import orjson

from freshkey.errors import CacheUnavailable

ORJSON_OPTIONS = orjson.OPT_UTC_Z | orjson.OPT_SORT_KEYS

# Marker key for scalars JSON cannot carry natively
TYPE_TAG = "__type__"


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def canonical_bytes(data: Any) -> bytes:
    """Return canonical JSON bytes (sorted keys) for key digests."""
    return orjson.dumps(data, default=_default, option=ORJSON_OPTIONS)


def _tagged(kind: str, value: Any) -> dict[str, Any]:
    return {TYPE_TAG: kind, "value": value}


def _tag(value: Any) -> Any:
    """Replace scalars that JSON would flatten to strings with tagged dicts."""
    if isinstance(value, Mapping):
        data = {key: _tag(item) for key, item in value.items()}
        return _tagged("dict", data) if TYPE_TAG in data else data
    if isinstance(value, (list, tuple)):
        return [_tag(item) for item in value]
    # datetime before date: a datetime is also a date
    if isinstance(value, datetime):
        return _tagged("datetime", value.isoformat())
    if isinstance(value, date):
        return _tagged("date", value.isoformat())
    if isinstance(value, time):
        return _tagged("time", value.isoformat())
    if isinstance(value, Decimal):
        return _tagged("decimal", str(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _tagged("bytes", base64.b64encode(bytes(value)).decode("ascii"))
    if isinstance(value, UUID):
        return _tagged("uuid", str(value))
    return value


_UNTAG: dict[str, Callable[[Any], Any]] = {
    "datetime": datetime.fromisoformat,
    "date": date.fromisoformat,
    "time": time.fromisoformat,
    "decimal": Decimal,
    "bytes": base64.b64decode,
    "uuid": UUID,
}


def _untag(value: Any) -> Any:
    if isinstance(value, dict):
        kind = value.get(TYPE_TAG)
        if kind == "dict":
            return {key: _untag(item) for key, item in value["value"].items()}
        if kind is not None:
            return _UNTAG[kind](value["value"])
        return {key: _untag(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_untag(item) for item in value]
    return value


def encode_entry(payload: Any) -> bytes:
    """Encode a cache entry, raising CacheUnavailable if it cannot be serialized.

    Datetimes, dates, times, Decimals, bytes and UUIDs are tagged so that
    decode_entry() returns the same types a direct load produces.
    """
    try:
        return orjson.dumps(_tag(payload), default=_default, option=orjson.OPT_SORT_KEYS)
    except TypeError as exc:
        raise CacheUnavailable("encode", str(exc)) from exc


def decode_entry(data: bytes) -> Any:
    """Decode a cache entry, raising CacheUnavailable on corrupt bytes."""
    try:
        return _untag(orjson.loads(data))
    except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise CacheUnavailable("decode", str(exc)) from exc
