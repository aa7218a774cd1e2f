"""
rental_kernel.domain.types -- Frozen result objects returned by kernel services.

ZERO I/O.  Every DTO is a frozen dataclass with tuples for collections and a
``to_dict()`` that renders Decimal as str, UUID as str and dates as ISO
strings, ready for an API layer or a structured log line.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from rental_kernel.db.types import ZERO


def render_to_dict(obj: object) -> Any:
    """
    Convert a result dataclass to plain JSON-compatible values.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - date/datetime -> ISO format string
    - Enum -> .value
    - Nested dataclasses -> nested dicts
    - Tuples -> lists
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)


class ResultDTO:
    def to_dict(self) -> dict[str, Any]:
        return render_to_dict(self)


# =============================================================================
# Advance rent
# =============================================================================


@dataclass(frozen=True)
class AdvanceRentApplication(ResultDTO):
    """Outcome of applying advance rent to one invoice."""

    applied: Decimal = ZERO
    fully_covered: bool = False


NOT_APPLIED = AdvanceRentApplication()


@dataclass(frozen=True)
class AppliedInvoiceDetail(ResultDTO):
    """One invoice touched by a retroactive allocation."""

    invoice_id: UUID
    invoice_number: str
    invoice_date: date
    amount_applied: Decimal
    total_applied: Decimal
    fully_covered: bool


@dataclass(frozen=True)
class RetroactiveApplicationResult(ResultDTO):
    """Aggregate outcome of a retroactive allocation run."""

    processed_count: int = 0
    total_applied: Decimal = ZERO
    invoices: tuple[AppliedInvoiceDetail, ...] = ()


@dataclass(frozen=True)
class AdvanceRentCollection:
    """
    Outcome of collecting advance rent.

    Holds the updated ORM rows; ``to_dict()`` renders their identifying and
    monetary fields only.
    """

    lease_account: Any
    ledger_entry: Any

    def to_dict(self) -> dict[str, Any]:
        lease = self.lease_account
        entry = self.ledger_entry
        return render_to_dict({
            "lease_account": {
                "id": lease.id,
                "advance_rent_months": lease.advance_rent_months,
                "advance_rent_amount": lease.advance_rent_amount,
                "advance_rent_used": lease.advance_rent_used,
                "advance_rent_remaining": lease.advance_rent_remaining,
                "advance_rent_collected_date": lease.advance_rent_collected_date,
                "currency": lease.currency,
            },
            "ledger_entry": {
                "id": entry.id,
                "amount": entry.amount,
                "currency": entry.currency,
                "description": entry.description,
                "transaction_date": entry.transaction_date,
                "payment_method": entry.payment_method,
                "status": entry.status,
            },
        })


# =============================================================================
# Landlord settings
# =============================================================================


@dataclass(frozen=True)
class LandlordAutoInvoiceConfig(ResultDTO):
    """
    Parsed auto-invoice settings for one landlord.

    ``last_run_*`` are written by the scheduler after each run and never
    read by it.
    """

    landlord_id: UUID
    enabled: bool = False
    day_of_month: int = 1
    default_due_days: int = 30
    last_run_at: datetime | None = None
    last_run_status: str | None = None
    last_run_message: str | None = None
    warnings: tuple[str, ...] = field(default=(), compare=False)
