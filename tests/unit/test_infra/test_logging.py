"""Tests for the structured logging helpers."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from notification_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    get_logger,
    remove_from_log_context,
    set_log_context,
)
from tests.helpers import make_payload


class _Collector(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []
        self.addFilter(ContextInjectingFilter())

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


class TestLogContext:
    def test_set_and_remove(self) -> None:
        set_log_context(user_id="u-1", notification_type="goal-reached")
        remove_from_log_context("notification_type")

        assert get_log_context() == {"user_id": "u-1"}

    def test_filter_injects_without_overwriting(self) -> None:
        set_log_context(user_id="u-1", channel="push")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)
        record.channel = "email"

        ContextInjectingFilter().filter(record)

        assert record.user_id == "u-1"
        assert record.channel == "email"


class TestBoundLogger:
    def test_bind_adds_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="tests.bound")
        logger = get_logger("tests.bound", channel="push").bind(subscription_id="s-1")

        logger.info("Push endpoint gone", extra={"status_code": 410})

        record = caplog.records[-1]
        assert record.channel == "push"
        assert record.subscription_id == "s-1"
        assert record.status_code == 410


class TestJSONFormatter:
    def test_one_json_object_per_record(self) -> None:
        formatter = JSONFormatter(static={"service": "notification-service"})
        record = logging.LogRecord("dispatch", logging.INFO, __file__, 1, "sent %s", ("ok",), None)
        record.user_id = "u-1"

        data = json.loads(formatter.format(record))

        assert data["message"] == "sent ok"
        assert data["level"] == "INFO"
        assert data["logger"] == "dispatch"
        assert data["service"] == "notification-service"
        assert data["user_id"] == "u-1"
        assert data["timestamp"].endswith("Z")
        assert "trace_id" not in data

    def test_exception_stays_on_one_line(self) -> None:
        formatter = JSONFormatter()
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = logging.LogRecord("dispatch", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        output = formatter.format(record)

        assert "\n" not in output
        assert "ValueError: bad payload" in json.loads(output)["exception"]


class TestLazyLogger:
    def test_callable_not_evaluated_when_disabled(self) -> None:
        calls: list[int] = []
        logger = get_lazy_logger("tests.lazy.disabled")
        logger.logger.setLevel(logging.INFO)

        logger.debug(lambda: calls.append(1) or "expensive")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="tests.lazy.enabled")

        get_lazy_logger("tests.lazy.enabled").debug(lambda: "built on demand")

        assert "built on demand" in caplog.text


async def test_dispatch_records_carry_user_context(context, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="DispatchRouter")
    collector = _Collector()
    logging.getLogger("DispatchRouter").addHandler(collector)
    try:
        await context.router.send("u-42", "goal-reached", make_payload("goal-reached"))
    finally:
        logging.getLogger("DispatchRouter").removeHandler(collector)

    dispatched = [r for r in collector.records if r.getMessage() == "Notification dispatched"]
    assert len(dispatched) == 1
    assert dispatched[0].user_id == "u-42"
    assert dispatched[0].notification_type == "goal-reached"
    assert dispatched[0].email_outcome == "sent"
