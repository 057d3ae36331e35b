"""
Tests for structured logging
"""
import json
import logging

from helpdesk.shared.infrastructure.logging import CustomJsonFormatter


def _format(**extra):
    formatter = CustomJsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        environment="staging",
    )
    record = logging.LogRecord("helpdesk.test", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(formatter.format(record))


class TestCustomJsonFormatter:
    """Test JSON log records"""

    def test_standard_fields(self):
        data = _format()
        assert data["message"] == "hello"
        assert data["environment"] == "staging"
        assert "timestamp" in data

    def test_correlation_id(self):
        assert _format(correlation_id="req-1")["correlation_id"] == "req-1"

    def test_secrets_redacted(self):
        data = _format(
            api_key="sk-123",
            database_url="postgresql+asyncpg://user:pw@db/helpdesk",
            tickets=3,
        )
        assert data["api_key"] == "***REDACTED***"
        assert data["database_url"] == "***REDACTED***"
        assert data["tickets"] == 3
