"""
Unit Tests - Logging Configuration
"""
import io
import json
import logging

import pytest
import structlog
from pydantic import ValidationError

from checkout_analytics.config import get_settings
from checkout_analytics.config.logging import SQL_LOGGER, configure_logging
from checkout_analytics.config.settings import MonitoringSettings


@pytest.fixture
def log_stream():
    """Capture log output, restoring default logging afterwards"""
    stream = io.StringIO()
    yield stream
    logging.getLogger().handlers = []
    structlog.reset_defaults()


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestConfigureLogging:
    """Tests for structured log output"""

    def test_json_lines_carry_service_context(self, log_stream):
        configure_logging(log_level="INFO", log_format="json", stream=log_stream)

        structlog.get_logger("checkout_analytics.reports").info("report computed", customers=3)

        record = next(r for r in _records(log_stream) if r["event"] == "report computed")
        settings = get_settings()
        assert record["service"] == settings.app_name
        assert record["version"] == settings.version
        assert record["environment"] == settings.app_env
        assert record["customers"] == 3
        assert record["level"] == "info"

    def test_stdlib_records_share_format(self, log_stream):
        """Test uvicorn records go through the same renderer"""
        configure_logging(log_level="INFO", log_format="json", stream=log_stream)

        logging.getLogger("uvicorn.error").warning("worker timeout")

        record = next(r for r in _records(log_stream) if r["event"] == "worker timeout")
        assert record["service"] == get_settings().app_name
        assert record["level"] == "warning"

    def test_level_filters(self, log_stream):
        configure_logging(log_level="WARNING", log_format="json", stream=log_stream)

        structlog.get_logger("checkout_analytics.reports").info("hidden")

        assert all(r["event"] != "hidden" for r in _records(log_stream))

    def test_text_format(self, log_stream):
        configure_logging(log_level="INFO", log_format="text", stream=log_stream)

        structlog.get_logger("checkout_analytics.reports").info("report computed")

        output = log_stream.getvalue()
        assert "report computed" in output
        assert not output.lstrip().startswith("{")

    def test_sql_logger_quiet_without_echo(self, log_stream):
        configure_logging(log_format="json", stream=log_stream)
        assert logging.getLogger(SQL_LOGGER).level == logging.WARNING


class TestMonitoringSettings:
    """Tests for logging settings validation"""

    def test_log_format_normalized(self):
        assert MonitoringSettings(LOG_FORMAT="TEXT").log_format == "text"

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            MonitoringSettings(LOG_FORMAT="xml")
