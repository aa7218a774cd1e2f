"""Tests for the structured logging system (rental_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from rental_kernel.exceptions import LeaseAccountNotFoundError
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start from unconfigured logging; restore the suite's config after."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "rental_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("auto_invoice_created", extra={"created": 3, "invoice_number": "RINV-202403-0001"})

        record = _parse_log(stream)
        assert record["created"] == 3
        assert record["invoice_number"] == "RINV-202403-0001"

    def test_money_dates_and_ids_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        lease_id = uuid4()
        get_logger("test").info(
            "advance_rent_applied",
            extra={"amount": Decimal("2500.50"), "invoice_date": date(2024, 3, 1), "lease_id": lease_id},
        )

        record = _parse_log(stream)
        assert record["amount"] == "2500.50"
        assert record["invoice_date"] == "2024-03-01"
        assert record["lease_id"] == str(lease_id)

    def test_kernel_exception_code_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise LeaseAccountNotFoundError("la-1")
        except LeaseAccountNotFoundError:
            get_logger("test").error("lookup_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "LeaseAccountNotFoundError"
        assert record["exc_code"] == "LEASE_ACCOUNT_NOT_FOUND"
        assert "traceback" in record
        assert record["exc_lease_account_id"] == "la-1"

    def test_debug_hidden_at_default_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.debug("second")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first"]


class TestLogContext:

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="run-1", landlord_id="ll-1")
        get_logger("test").info("msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "run-1"
        assert record["landlord_id"] == "ll-1"
        assert "lease_account_id" not in record

    def test_bind_restores_previous(self):
        LogContext.set(landlord_id="outer")
        with LogContext.bind(landlord_id="inner", lease_account_id="la-9"):
            assert LogContext.get_all() == {"landlord_id": "inner", "lease_account_id": "la-9"}
        assert LogContext.get_all() == {"landlord_id": "outer"}

    def test_nested_binds_per_lease_account(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        landlord_id, first, second = uuid4(), uuid4(), uuid4()
        logger = get_logger("test")

        with LogContext.bind(landlord_id=landlord_id):
            for lease_account_id in (first, second):
                with LogContext.bind(lease_account_id=lease_account_id):
                    logger.info("auto_invoice_created")
            logger.info("auto_invoice_generation_completed")

        records = _parse_all_logs(stream)
        assert [r.get("lease_account_id") for r in records] == [str(first), str(second), None]
        assert {r["landlord_id"] for r in records} == {str(landlord_id)}

    def test_bind_skips_none_values(self):
        with LogContext.bind(landlord_id="ll-1", actor_id=None):
            assert LogContext.get_all() == {"landlord_id": "ll-1"}

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(correlation_id="c", not_a_field="x"):
            assert LogContext.get_all() == {"correlation_id": "c"}

    def test_clear(self):
        LogContext.set(actor_id="a")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("rental_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("batch.generator").name == "rental_kernel.batch.generator"

    def test_does_not_propagate_to_root(self):
        configure_logging(handler=_make_handler()[0])
        assert logging.getLogger("rental_kernel").propagate is False
