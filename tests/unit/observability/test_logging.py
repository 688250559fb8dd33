"""Tests for structured logging."""

from __future__ import annotations

import orjson
import logging
import sys
from collections.abc import Iterator

import pytest

from freshkey.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    correlation_id_var,
)


def make_record(message: str = "Cache hit", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="freshkey.fetcher",
        level=logging.DEBUG,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger() -> Iterator[logging.Logger]:
    """The freshkey logger, restored after the test."""
    logger = logging.getLogger("freshkey")
    handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self) -> None:
        data = orjson.loads(JsonFormatter().format(make_record()))

        assert data["level"] == "DEBUG"
        assert data["timestamp"].endswith("Z")
        assert data["logger"] == "freshkey.fetcher"
        assert data["message"] == "Cache hit"
        assert "correlation_id" not in data

    def test_extra_fields(self) -> None:
        data = orjson.loads(JsonFormatter().format(make_record(record_type="items", size=3)))

        assert data["record_type"] == "items"
        assert data["size"] == 3

    def test_unserializable_extra_is_stringified(self) -> None:
        data = orjson.loads(JsonFormatter().format(make_record(store={1, 2})))

        assert data["store"] == "{1, 2}"

    def test_correlation_id(self) -> None:
        with LogContext(correlation_id="req-123"):
            data = orjson.loads(JsonFormatter().format(make_record()))

        assert data["correlation_id"] == "req-123"
        assert correlation_id_var.get() == ""

    def test_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record()
            record.exc_info = sys.exc_info()

        data = orjson.loads(JsonFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_format(self) -> None:
        line = ConsoleFormatter(use_colors=False).format(make_record("Cache miss"))

        assert " DEBUG " in line
        assert "freshkey.fetcher Cache miss" in line
        assert "\033[" not in line

    def test_correlation_id_is_shortened(self) -> None:
        with LogContext(correlation_id="abcdef123456"):
            line = ConsoleFormatter(use_colors=False).format(make_record())

        assert line.endswith(" cid=abcdef12")

    def test_record_type_context(self) -> None:
        line = ConsoleFormatter(use_colors=False).format(make_record(record_type="items"))

        assert line.endswith("Cache hit [items]")


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_json_handler(self, package_logger: logging.Logger) -> None:
        configure_logging(json_format=True, level="DEBUG")

        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, JsonFormatter)
        assert package_logger.propagate is False

    def test_console_handler_replaces_previous(self, package_logger: logging.Logger) -> None:
        configure_logging(json_format=True)
        configure_logging(json_format=False, level="warning")

        assert package_logger.level == logging.WARNING
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, ConsoleFormatter)

    def test_defaults_from_settings(
        self, package_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from freshkey.config import settings

        monkeypatch.setattr(settings, "log_json", False)
        monkeypatch.setattr(settings, "log_level", "ERROR")

        configure_logging()

        assert package_logger.level == logging.ERROR
        assert isinstance(package_logger.handlers[0].formatter, ConsoleFormatter)
