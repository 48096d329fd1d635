"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import sys

from mediastore.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    object_key_var,
    provider_var,
)


def _record(message: str = "Upload verified", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="mediastore.storage.uploader",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
        func="upload",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    """Tests for LogContext."""

    def test_sets_and_restores(self) -> None:
        with LogContext(provider="r2", object_key="assets/a.png"):
            assert provider_var.get() == "r2"
            assert object_key_var.get() == "assets/a.png"
        assert provider_var.get() == ""
        assert object_key_var.get() == ""

    def test_nested_contexts_restore_outer(self) -> None:
        with LogContext(provider="r2"):
            with LogContext(provider="drive"):
                assert provider_var.get() == "drive"
            assert provider_var.get() == "r2"

    def test_unknown_names_ignored(self) -> None:
        with LogContext(tenant="acme"):
            assert provider_var.get() == ""


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_includes_context_and_extras(self) -> None:
        with LogContext(provider="firebase", object_key="assets/b.jpg", operation="upload"):
            output = JsonFormatter().format(_record(size_bytes=42))

        data = json.loads(output)
        assert data["message"] == "Upload verified"
        assert data["level"] == "INFO"
        assert data["logger"] == "mediastore.storage.uploader"
        assert data["provider"] == "firebase"
        assert data["object_key"] == "assets/b.jpg"
        assert data["operation"] == "upload"
        assert data["size_bytes"] == 42

    def test_includes_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))
        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"

    def test_unserializable_extra_is_stringified(self) -> None:
        data = json.loads(JsonFormatter().format(_record(locator=object())))
        assert data["locator"].startswith("<object object")


def test_console_formatter_appends_context() -> None:
    with LogContext(provider="drive"):
        line = ConsoleFormatter(use_colors=False).format(_record())

    assert "| INFO" in line
    assert line.endswith("Upload verified | provider=drive")
