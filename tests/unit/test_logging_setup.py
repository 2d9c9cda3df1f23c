"""Unit tests for logging configuration."""

import json
import logging
import sys

from app.core.logging import JsonFormatter, configure_logging


class TestConfigureLogging:
    """Test cases for configure_logging."""

    def teardown_method(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            if handler.get_name() == "shadowquill":
                root.removeHandler(handler)

    def _installed(self):
        return [h for h in logging.getLogger().handlers if h.get_name() == "shadowquill"]

    def test_installs_single_handler(self):
        configure_logging("DEBUG", "simple")
        configure_logging("INFO", "simple")

        assert len(self._installed()) == 1
        assert logging.getLogger().level == logging.INFO

    def test_json_format(self):
        configure_logging("WARNING", "json")
        assert isinstance(self._installed()[0].formatter, JsonFormatter)


class TestJsonFormatter:
    """Test cases for JsonFormatter."""

    def test_renders_record(self):
        record = logging.LogRecord("app.storage", logging.ERROR, __file__, 1, "failed %s", ("write",), None)
        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "ERROR"
        assert payload["logger"] == "app.storage"
        assert payload["message"] == "failed write"
        assert "timestamp" in payload

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "oops", None, sys.exc_info())
        payload = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["error"]
