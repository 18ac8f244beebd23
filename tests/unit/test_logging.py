"""Unit tests for structured logging setup."""
import json
import logging

import pytest
import structlog

from ebbtide.core.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    structlog.reset_defaults()
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


class TestSetupLogging:
    """Tests for renderer, level and stream selection."""

    def test_json_events_on_stderr(self, capsys):
        setup_logging("INFO", json_output=True)

        structlog.get_logger("ebbtide.test").bind(component="maker").info("fill_detected", count=1)

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "fill_detected"
        assert event["component"] == "maker"
        assert event["count"] == 1
        assert event["level"] == "info"

    def test_level_filters_events(self, capsys):
        setup_logging("WARNING", json_output=True)

        structlog.get_logger("ebbtide.test").info("cycle_started")

        assert "cycle_started" not in capsys.readouterr().err

    def test_http_stack_quieted(self):
        setup_logging("DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
