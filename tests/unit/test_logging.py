"""Unit tests for timeline logging and observability.

This module tests the JSON log format, operation timings, the logging
helpers, and the event hooks.
"""

import json
import logging
import pytest
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch, MagicMock

from timeline_engine.timeline_logging import (
    setup_logging,
    JsonFormatter,
    OperationTimings,
    log_performance,
    log_operation,
    ObservabilityHooks,
    log_error_with_context,
)


@pytest.fixture
def timings(monkeypatch):
    fresh = OperationTimings()
    monkeypatch.setattr("timeline_engine.timeline_logging.operation_timings", fresh)
    return fresh


class TestJsonFormatter:
    """Test cases for JsonFormatter."""

    def test_json_formatter_basic(self):
        """Test basic JSON formatting."""
        formatter = JsonFormatter()
        record = logging.getLogger("test").makeRecord(
            "test", logging.INFO, "fn", 1, "Test message", (), None
        )

        data = json.loads(formatter.format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "location" in data

    def test_json_formatter_with_exception(self):
        """Test JSON formatting with exception info."""
        formatter = JsonFormatter()
        try:
            raise ValueError("Test exception")
        except ValueError:
            record = logging.getLogger("test").makeRecord(
                "test", logging.ERROR, "fn", 1, "Failed", (), sys.exc_info()
            )

        data = json.loads(formatter.format(record))

        assert data["level"] == "ERROR"
        assert "ValueError" in data["exception"]

    def test_json_formatter_with_extra_fields(self):
        """Test that extra fields are merged and odd values stringified."""
        formatter = JsonFormatter()
        record = logging.getLogger("test").makeRecord(
            "test", logging.INFO, "fn", 1, "Test message", (), None
        )
        record.extra_fields = {"operation": "compute_timeline", "log_file": Path("/tmp")}

        data = json.loads(formatter.format(record))

        assert data["operation"] == "compute_timeline"
        assert data["log_file"] == "/tmp"


class TestOperationTimings:
    """Test cases for OperationTimings."""

    def test_summary(self):
        timings = OperationTimings()

        timings.record("compute_timeline", 0.5)
        timings.record("compute_timeline", 1.5, failed=True)
        timings.record("check_overlap", 0.25)

        summary = timings.summary()
        assert list(summary) == ["check_overlap", "compute_timeline"]
        assert summary["compute_timeline"] == {"count": 2, "failures": 1, "last": 1.5, "mean": 1.0}

    def test_window_bounds_samples(self):
        timings = OperationTimings(window=3)

        for seconds in (1, 2, 3, 4):
            timings.record("compute_timeline", seconds)

        summary = timings.summary()["compute_timeline"]
        assert summary["count"] == 3
        assert summary["mean"] == 3

    def test_empty(self):
        assert OperationTimings().summary() == {}


class TestLogPerformance:
    """Test cases for log_performance decorator."""

    def test_log_performance_decorator(self, timings):
        @log_performance("test_operation")
        def test_function():
            return "test_result"

        assert test_function() == "test_result"

        summary = timings.summary()["test_operation"]
        assert summary["count"] == 1
        assert summary["failures"] == 0
        assert summary["last"] >= 0

    def test_log_performance_decorator_with_exception(self, timings):
        @log_performance("test_operation")
        def test_function():
            raise ValueError("Test error")

        with pytest.raises(ValueError):
            test_function()

        assert timings.summary()["test_operation"]["failures"] == 1


class TestLogOperation:
    """Test cases for log_operation context manager."""

    def test_log_operation_success(self):
        with patch("timeline_engine.timeline_logging.std_logging.getLogger") as mock_logger:
            with log_operation("test_operation", item_count=3):
                pass

            assert mock_logger.return_value.debug.call_count == 2
            assert not mock_logger.return_value.error.called

    def test_log_operation_with_exception(self):
        with patch("timeline_engine.timeline_logging.std_logging.getLogger") as mock_logger:
            with pytest.raises(ValueError):
                with log_operation("test_operation"):
                    raise ValueError("Test error")

            assert mock_logger.return_value.error.called
            assert "Test error" in str(mock_logger.return_value.error.call_args)


class TestObservabilityHooks:
    """Test cases for ObservabilityHooks."""

    def test_hooks_receive_payload(self):
        hooks = ObservabilityHooks()
        callback = MagicMock()
        hooks.register_hook("cycle_broken", callback)

        hooks.log_timeline_event("cycle_broken", edges=[["A", "A"]])

        kwargs = callback.call_args.kwargs
        assert kwargs["edges"] == [["A", "A"]]
        assert "timestamp" in kwargs
        assert "event_type" not in kwargs

    def test_hooks_are_per_event(self):
        hooks = ObservabilityHooks()
        callback = MagicMock()
        hooks.register_hook("timeline_computed", callback)

        hooks.log_timeline_event("cycle_broken", edges=[])

        callback.assert_not_called()

    def test_hook_failure_handling(self):
        """Test that hook failures don't propagate."""
        hooks = ObservabilityHooks()
        after = MagicMock()

        hooks.register_hook("timeline_computed", MagicMock(side_effect=ValueError("Hook failed")))
        hooks.register_hook("timeline_computed", after)
        hooks.log_timeline_event("timeline_computed", item_count=1)

        after.assert_called_once()


class TestLoggingFunctions:
    """Test cases for logging convenience functions."""

    def test_log_error_with_context(self):
        with patch("timeline_engine.timeline_logging.std_logging.getLogger") as mock_logger:
            error = ValueError("Test error")
            context = {"operation": "compute_timeline", "record_count": 2}

            log_error_with_context(error, context, extra_param="extra_value")

            call_args = mock_logger.return_value.error.call_args
            assert "Test error" in call_args.args[0]
            fields = call_args.kwargs["extra"]["extra_fields"]
            assert fields["context"]["operation"] == "compute_timeline"
            assert fields["extra_param"] == "extra_value"
            assert fields["error_type"] == "ValueError"


class TestLoggingIntegration:
    """Integration tests for logging functionality."""

    def test_setup_logging(self):
        """Test that the file handler writes one JSON object per line."""
        logger = logging.getLogger("timeline")
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "timeline.log"
            try:
                setup_logging(log_level=logging.DEBUG, log_file=log_file)
                logging.getLogger("timeline.test").info("Test message", extra={"extra_fields": {"k": 1}})

                for handler in logger.handlers:
                    handler.flush()
                content = log_file.read_text()
                assert "Test message" in content
                entries = [json.loads(line) for line in content.strip().split("\n")]
                assert entries[-1]["k"] == 1
            finally:
                for handler in list(logger.handlers):
                    handler.close()
                logger.handlers.clear()
                logger.setLevel(logging.NOTSET)
