"""Logging setup for freshkey.

Library modules log through ``logging.getLogger(__name__)`` and attach cache
context as ``extra`` fields (record_type, cache_key, cache_store). Nothing is
configured on import; applications call configure_logging() once, or leave
the freshkey logger propagating to their own root handlers.

The correlation ID comes from a context variable that the calling
application sets per request, directly or through LogContext.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

from freshkey.config import settings

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "freshkey_correlation_id", default=""
)

# Attributes every LogRecord carries; anything else was passed as ``extra``
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per line, extra fields inlined.

    {"timestamp": "2026-01-10T12:34:56.789000Z", "level": "WARNING",
     "logger": "freshkey.fetcher", "message": "Cache get failed, bypassing cache",
     "location": "fetcher:_degrade:203", "cache_store": "redis", "exception": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        entry.update(_extra_fields(record))

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["exception"] = {
                "type": type(exc).__name__,
                "message": str(exc),
                "traceback": self.formatException(record.exc_info),
            }

        # Unserializable extras fall back to str()
        return orjson.dumps(entry, default=str, option=orjson.OPT_UTC_Z).decode()


class ConsoleFormatter(logging.Formatter):
    """Single-line output for development.

    12:34:56.789 DEBUG    freshkey.fetcher Cache miss [items] cid=abc-1234
    """

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        color = self.LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            level = f"\033[{color}m{level}\033[0m"

        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        line = f"{stamp} {level} {record.name} {record.getMessage()}"

        record_type = getattr(record, "record_type", None)
        if record_type:
            line += f" [{record_type}]"

        correlation_id = correlation_id_var.get()
        if correlation_id:
            line += f" cid={correlation_id[:8]}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    json_format: bool | None = None,
    level: str | None = None,
    use_colors: bool = True,
) -> None:
    """Install a single stderr handler on the freshkey logger.

    Args:
        json_format: JSON lines instead of console output (default: settings.log_json)
        level: Level name for the freshkey logger (default: settings.log_level)
        use_colors: ANSI colors for console output on a TTY
    """
    if json_format is None:
        json_format = settings.log_json
    if level is None:
        level = settings.log_level

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors))

    package_logger = logging.getLogger("freshkey")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(level.upper())
    package_logger.propagate = False


class LogContext:
    """Set a correlation ID for the duration of a block.

    Usage:
        with LogContext(correlation_id="req-123"):
            await repo.find_with_cache(1)
    """

    def __init__(self, correlation_id: str) -> None:
        self.correlation_id = correlation_id
        self._token: contextvars.Token[str] | None = None

    def __enter__(self) -> LogContext:
        self._token = correlation_id_var.set(self.correlation_id)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            correlation_id_var.reset(self._token)
            self._token = None
