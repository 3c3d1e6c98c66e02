"""Tests for structured logging."""

import json
import logging
import sys

from turnrelay.logging_config import JSONFormatter


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_format_with_context(self):
        """Test that records are JSON with their context attached."""
        record = logging.LogRecord(
            "turnrelay.test", logging.WARNING, __file__, 10, "queue %s", ("full",), None
        )
        record.context = {"turn_id": "t-1"}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "turnrelay.test"
        assert data["message"] == "queue full"
        assert data["context"] == {"turn_id": "t-1"}

    def test_format_exception(self):
        """Test that exceptions are included."""
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad" in data["exception"]
        assert "context" not in data
