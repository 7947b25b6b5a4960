"""
Tests for structured logging configuration.

These tests verify:
1. JSONFormatter emits the core fields and the current session id
2. Exceptions and extra fields are included
3. configure_logging installs one handler with the requested format
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator

import pytest

from probe_agents.logging_config import JSONFormatter, configure_logging, session_id_var


def _record(msg: str = "Step %s passed", args: tuple[object, ...] = ("Save",)) -> logging.LogRecord:
    return logging.LogRecord(
        name="probe_agents.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=args,
        exc_info=None,
    )


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Test the JSON log formatter."""

    def test_core_fields(self) -> None:
        """Test the fields of a plain record."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "probe_agents.test"
        assert data["message"] == "Step Save passed"
        assert "session_id" not in data

    def test_session_id_included(self) -> None:
        """Test that the current session id is attached."""
        token = session_id_var.set("20250101-120000-abc123")
        try:
            data = json.loads(JSONFormatter().format(_record()))
        finally:
            session_id_var.reset(token)

        assert data["session_id"] == "20250101-120000-abc123"

    def test_exception_and_extra_fields(self) -> None:
        """Test exception text and extra_fields merging."""
        record = _record("boom", ())
        try:
            raise ValueError("bad selector")
        except ValueError:
            record.exc_info = sys.exc_info()
        record.extra_fields = {"step": "Save"}

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad selector" in data["exception"]
        assert data["step"] == "Save"


class TestConfigureLogging:
    """Test root logger configuration."""

    def test_json_format(
        self, monkeypatch: pytest.MonkeyPatch, restore_root_logger: None
    ) -> None:
        """Test a single JSON handler at the requested level."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("LOG_FORMAT", raising=False)

        configure_logging(level="debug", fmt="json")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("litellm").level == logging.WARNING

    def test_environment_overrides_arguments(
        self, monkeypatch: pytest.MonkeyPatch, restore_root_logger: None
    ) -> None:
        """Test LOG_LEVEL and LOG_FORMAT precedence."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LOG_FORMAT", "text")

        configure_logging(level="DEBUG", fmt="json")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
