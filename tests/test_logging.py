"""Tests for the structured logging system (billing_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from billing_kernel.exceptions import MalformedPeriodError
from billing_kernel.logging_config import (
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
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "billing_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("priced", extra={"total_active": 42, "note": "x"})

        record = _parse_log(stream)
        assert record["total_active"] == 42
        assert record["note"] == "x"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(customer_id="acme", billing_period="2025-03")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["customer_id"] == "acme"
        assert record["billing_period"] == "2025-03"

    def test_decimal_and_date_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("values", extra={
            "charge": Decimal("7.74"),
            "activation": date(2025, 3, 16),
        })

        record = _parse_log(stream)
        assert record["charge"] == "7.74"
        assert record["activation"] == "2025-03-16"

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

    def test_billing_exception_code_extracted(self):
        """Billing kernel exceptions carry a .code attribute."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise MalformedPeriodError("2025-13")
        except MalformedPeriodError:
            logger.error("period_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "MALFORMED_PERIOD"
        assert record["exc_type"] == "MalformedPeriodError"
        assert record["exc_token"] == "2025-13"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "customer_id" not in record
        assert "run_id" not in record

    def test_debug_filtered_at_default_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(run_id="r1", customer_id="c1")
        assert LogContext.get_all() == {"run_id": "r1", "customer_id": "c1"}

    def test_clear(self):
        LogContext.set(run_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(customer_id="outer")
        with LogContext.bind(customer_id="inner"):
            assert LogContext.get_all()["customer_id"] == "inner"
        assert LogContext.get_all()["customer_id"] == "outer"

    def test_bind_restores_none(self):
        assert "customer_id" not in LogContext.get_all()
        with LogContext.bind(customer_id="temp"):
            assert LogContext.get_all()["customer_id"] == "temp"
        assert "customer_id" not in LogContext.get_all()

    def test_bind_rejects_unknown_field(self):
        with pytest.raises(ValueError, match="Unknown log context"):
            LogContext.bind(tenant="x")

    def test_correlation_id_not_a_field(self):
        with pytest.raises(ValueError, match="Unknown log context"):
            LogContext.bind(correlation_id="x")

    def test_all_fields(self):
        LogContext.set(
            run_id="r",
            customer_id="u",
            billing_period="2025-03",
        )
        assert len(LogContext.get_all()) == 3


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("billing_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        logger = get_logger("engines.pricing")
        assert logger.name == "billing_kernel.engines.pricing"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "billing_kernel.deep.nested.module"
