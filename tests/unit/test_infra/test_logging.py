"""Unit tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
import sys
import uuid

import pytest

from reminder_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    remove_from_log_context,
    set_log_context,
)


def _record(msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="reminders.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


class TestLogContext:
    """Tests for contextvars log context."""

    def test_set_get_remove(self):
        set_log_context(sweep_id="abc", trigger="cli")
        assert get_log_context() == {"sweep_id": "abc", "trigger": "cli"}

        remove_from_log_context("trigger")
        assert get_log_context() == {"sweep_id": "abc"}

    def test_filter_injects_without_overwriting(self):
        set_log_context(sweep_id="abc", operation="from-context")
        record = _record(operation="explicit")

        assert ContextInjectingFilter().filter(record) is True
        assert record.sweep_id == "abc"
        assert record.operation == "explicit"


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_single_line_json_with_extras(self):
        formatter = JSONFormatter(static={"service": "reminder-service"})
        output = formatter.format(_record(reminder_id="r-1"))

        assert "\n" not in output
        data = json.loads(output)
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "reminders.test"
        assert data["service"] == "reminder-service"
        assert data["reminder_id"] == "r-1"
        assert data["timestamp"].endswith("Z")
        assert "trace_id" not in data

    def test_exception_kept_on_one_line(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(msg="failed", args=())
            record.exc_info = sys.exc_info()

        data = json.loads(formatter.format(record))
        assert "ValueError: boom" in data["exception"]

    def test_non_json_values_are_stringified(self):
        value = uuid.uuid4()
        data = json.loads(JSONFormatter().format(_record(task_id=value)))
        assert data["task_id"] == str(value)


class TestLazyLogger:
    """Tests for LazyLoggerAdapter."""

    def test_callable_not_evaluated_when_disabled(self):
        logger = get_lazy_logger("reminders.lazy.disabled")
        logger.logger.setLevel(logging.INFO)
        calls = []

        logger.debug(lambda: calls.append("evaluated") or "message")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog: pytest.LogCaptureFixture):
        logger = get_lazy_logger("reminders.lazy.enabled")
        with caplog.at_level(logging.DEBUG, logger="reminders.lazy.enabled"):
            logger.debug(lambda: "computed message")

        assert "computed message" in caplog.messages
