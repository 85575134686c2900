"""Tests for the structured logging system (payroll_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from payroll_kernel.domain.records import DayType
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "payroll_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("deduction_applied", extra={"source_id": "CA1", "status_after": "Unpaid"})

        record = _parse_log(stream)
        assert record["source_id"] == "CA1"
        assert record["status_after"] == "Unpaid"

    def test_decimal_date_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info(
            "values",
            extra={
                "amount": Decimal("1000.50"),
                "day": date(2024, 1, 15),
                "day_type": DayType.REST_DAY,
            },
        )

        record = _parse_log(stream)
        assert record["amount"] == "1000.50"
        assert record["day"] == "2024-01-15"
        assert record["day_type"] == "Rest Day"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(employee_id="E1", payroll_id="E1_1_2")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["employee_id"] == "E1"
        assert record["payroll_id"] == "E1_1_2"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_payroll_exception_code_extracted(self):
        """Payroll kernel exceptions carry .code and structured attributes."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        from payroll_kernel.exceptions import SourceNotFoundError

        try:
            raise SourceNotFoundError("cash_advance", "CA9", "E1")
        except SourceNotFoundError:
            logger.warning("reversal_skipped", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "SOURCE_NOT_FOUND"
        assert record["exc_type"] == "SourceNotFoundError"
        assert record["exc_source_id"] == "CA9"
        assert record["exc_employee_id"] == "E1"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", employee_id="E1")
        assert LogContext.get_all() == {"correlation_id": "x", "employee_id": "E1"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(event_id="nope")
        with pytest.raises(TypeError):
            LogContext.bind(event_id="nope")

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(partition="2024-01")
        with LogContext.bind(partition="2024-02"):
            assert LogContext.get_all()["partition"] == "2024-02"
        assert LogContext.get_all()["partition"] == "2024-01"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "payroll_id" not in LogContext.get_all()
        with LogContext.bind(payroll_id="temp"):
            assert LogContext.get_all()["payroll_id"] == "temp"
        assert "payroll_id" not in LogContext.get_all()

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            employee_id="e",
            payroll_id="p",
            actor_id="a",
            partition="2024-01",
        )
        assert len(LogContext.get_all()) == 5


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        root = logging.getLogger("payroll_kernel")
        assert len(root.handlers) == 1

    def test_level_by_name(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler, level="debug")
        assert logging.getLogger("payroll_kernel").level == logging.DEBUG

    def test_get_logger_returns_child(self):
        logger = get_logger("services.payroll_summarizer")
        assert logger.name == "payroll_kernel.services.payroll_summarizer"

    def test_logger_hierarchy(self):
        """Child loggers inherit the payroll_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("deep.nested.module")
        child.debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "payroll_kernel.deep.nested.module"


class TestPayrollLogFields:
    """Payroll-shaped payloads."""

    def test_nested_bind_keeps_outer_employee(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("services.deduction_ledger")
        with LogContext.bind(employee_id="E1", partition="2024-01"):
            with LogContext.bind(partition="2023-12"):
                logger.info("deduction_reversed")
            logger.info("deduction_applied")

        inner, outer = _parse_all_logs(stream)
        assert inner["employee_id"] == outer["employee_id"] == "E1"
        assert inner["partition"] == "2023-12"
        assert outer["partition"] == "2024-01"

    def test_bind_ignores_none(self):
        with LogContext.bind(employee_id="E1", payroll_id=None):
            assert LogContext.get_all() == {"employee_id": "E1"}

    def test_collections_become_lists(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "payroll_generated",
            extra={"cash_advance_ids": ("CA1", "CA2"), "partitions": {"2024-01"}},
        )

        record = _parse_log(stream)
        assert record["cash_advance_ids"] == ["CA1", "CA2"]
        assert record["partitions"] == ["2024-01"]

    def test_context_does_not_override_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(partition="2024-01"):
            get_logger("test").info("x", extra={"source_id": "S1"})

        record = _parse_log(stream)
        assert record["partition"] == "2024-01"
        assert record["source_id"] == "S1"
