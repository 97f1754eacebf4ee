"""Tests for structured logging and correlation IDs."""

import io
import json
import logging
import sys

import pytest

from incidentio_mcp.core.config import Settings
from incidentio_mcp.core.logging import (
    StructuredLogFormatter,
    configure_logging,
    correlation_id,
    get_logger,
    set_correlation_id,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def make_record(message: str, **attrs) -> logging.LogRecord:
    record = logging.LogRecord("incidentio_mcp.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestStructuredLogFormatter:
    """Test JSON log formatting."""

    def test_formats_as_json_with_correlation_id(self):
        token = correlation_id.set("corr-1")
        try:
            line = StructuredLogFormatter().format(make_record("Cached reference data"))
        finally:
            correlation_id.reset(token)

        entry = json.loads(line)
        assert entry["message"] == "Cached reference data"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "incidentio_mcp.test"
        assert entry["correlation_id"] == "corr-1"

    def test_extra_data_is_merged(self):
        record = make_record("Cached reference data", data={"severities": ["critical"]})

        entry = json.loads(StructuredLogFormatter().format(record))

        assert entry["severities"] == ["critical"]

    def test_exception_info_is_included(self):
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = make_record("Failed", exc_info=sys.exc_info())

        entry = json.loads(StructuredLogFormatter().format(record))

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad payload"


class TestConfigureLogging:
    """Test handler setup."""

    def test_structured_output_goes_to_given_stream(self, restore_root_logger):
        stream = io.StringIO()
        configure_logging(Settings(API_KEY="secret", LOG_LEVEL="DEBUG"), stream=stream)

        get_logger("incidentio_mcp.tools").debug("Tool called")

        entry = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert entry["message"] == "Tool called"

    def test_plain_output_includes_correlation_id(self, restore_root_logger):
        stream = io.StringIO()
        configure_logging(Settings(API_KEY="secret", ENABLE_STRUCTURED_LOGGING=False), stream=stream)
        set_correlation_id("req-42")

        get_logger("incidentio_mcp.api").info("Request completed")

        assert "[req-42] - Request completed" in stream.getvalue()

    def test_set_correlation_id_generates_one(self):
        generated = set_correlation_id()
        assert generated
        assert correlation_id.get() == generated

    def test_get_logger_attaches_no_filters(self):
        logger = get_logger("incidentio_mcp.services")

        assert logger is logging.getLogger("incidentio_mcp.services")
        assert get_logger("incidentio_mcp.services").filters == []
