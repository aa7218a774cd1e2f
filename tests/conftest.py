"""
Pytest fixtures for the rent ledger test suite.

Provides:
- A fresh in-memory SQLite database per test (real ORM models, real
  SAVEPOINT semantics through the kernel's SQLite hooks)
- A DeterministicClock pinned to 2024-03-01 09:00 UTC
- Test data builders for landlords, lease accounts and invoices
- A captured_logs fixture returning the JSON log records emitted
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from itertools import count
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from rental_config import get_system_config
from rental_kernel.db.engine import build_engine, create_tables
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from rental_kernel.models import (
    InvoiceStatus,
    Landlord,
    LandlordSettings,
    LeaseAccount,
    LeaseAccountStatus,
    RentInvoice,
)

TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture
def captured_logs():
    """Attach a JSON handler to the rental_kernel logger; yields a reader."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("rental_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    LogContext.clear()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with every table created."""
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def system_config():
    return get_system_config()


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


# =============================================================================
# Test data builders
# =============================================================================


@pytest.fixture
def make_landlord(session):
    """Create a landlord, optionally with a stored settings document."""

    def _make(name: str = "Harbour Estates", settings: dict[str, Any] | None = None) -> Landlord:
        landlord = Landlord(name=name)
        session.add(landlord)
        session.flush()
        if settings is not None:
            session.add(LandlordSettings(landlord_id=landlord.id, values=settings))
            session.flush()
        return landlord

    return _make


@pytest.fixture
def make_lease_account(session):
    """Create an active lease account with sensible defaults."""
    units = count(101)

    def _make(landlord: Landlord, **overrides: Any) -> LeaseAccount:
        values: dict[str, Any] = {
            "landlord_id": landlord.id,
            "tenant_id": uuid4(),
            "unit_id": uuid4(),
            "tenant_name": "Aisha Ibrahim",
            "unit_number": f"A{next(units)}",
            "lease_start": date(2024, 1, 1),
            "status": LeaseAccountStatus.ACTIVE.value,
            "monthly_rent": Decimal("5000.00"),
            "currency": "MVR",
            "advance_rent_months": 0,
            "advance_rent_amount": Decimal("0"),
            "advance_rent_used": Decimal("0"),
        }
        values.update(overrides)
        lease_account = LeaseAccount(**values)
        session.add(lease_account)
        session.flush()
        return lease_account

    return _make


@pytest.fixture
def make_invoice(session):
    """Create a rent invoice for a lease account."""
    numbers = count(1)

    def _make(
        lease_account: LeaseAccount,
        invoice_date: date,
        rent_amount: Decimal | str = Decimal("5000.00"),
        **overrides: Any,
    ) -> RentInvoice:
        values: dict[str, Any] = {
            "lease_account_id": lease_account.id,
            "landlord_id": lease_account.landlord_id,
            "invoice_number": f"TEST-{next(numbers):04d}",
            "invoice_date": invoice_date,
            "due_date": invoice_date,
            "rent_amount": Decimal(str(rent_amount)),
            "late_fee": Decimal("0"),
            "status": InvoiceStatus.GENERATED.value,
            "advance_rent_applied": Decimal("0"),
            "is_advance_covered": False,
        }
        values.update(overrides)
        invoice = RentInvoice(**values)
        session.add(invoice)
        session.flush()
        return invoice

    return _make
