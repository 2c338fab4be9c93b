"""
Unit Tests for Logging Processors.
"""

from unittest.mock import MagicMock

import structlog

from storebench.observability.logging import (
    LogContext,
    add_log_context,
    add_timestamp,
    censor_sensitive_data,
    configure_logging,
    current_log_context,
)


class TestLogContext:
    """Test cases for LogContext."""

    def test_context_is_scoped(self) -> None:
        with LogContext(benchmark="cache-hot-keys"):
            with LogContext(store="mongodb"):
                assert current_log_context() == {"benchmark": "cache-hot-keys", "store": "mongodb"}
            assert current_log_context() == {"benchmark": "cache-hot-keys"}
        assert current_log_context() == {}

    def test_context_added_to_events(self) -> None:
        with LogContext(benchmark="batch-insertion", store="postgresql"):
            event = add_log_context(MagicMock(), "info", {"event": "x", "store": "explicit"})

        assert event["benchmark"] == "batch-insertion"
        assert event["store"] == "explicit"


class TestProcessors:
    """Test cases for structlog processors."""

    def test_timestamp_is_utc(self) -> None:
        event = add_timestamp(MagicMock(), "info", {"event": "x"})

        assert event["timestamp"].endswith("Z")

    def test_censors_secrets(self) -> None:
        event = censor_sensitive_data(
            MagicMock(),
            "info",
            {
                "event": "connecting",
                "mongodb_uri": "mongodb://user:pw@host",
                "settings": {"password": "hunter2", "host": "localhost"},
                "iterations": 5,
            },
        )

        assert event["mongodb_uri"] == "***REDACTED***"
        assert event["settings"]["password"] == "***REDACTED***"
        assert event["settings"]["host"] == "localhost"
        assert event["iterations"] == 5

    def test_configure_logging_json(self) -> None:
        configure_logging(level="DEBUG", format="json", service_name="storebench-test")

        assert structlog.is_configured()
        structlog.reset_defaults()
