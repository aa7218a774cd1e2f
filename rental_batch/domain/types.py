"""
rental_batch.domain.types -- Frozen result objects for invoice generation.

ZERO I/O.  Tuples for collections; ``to_dict()`` renders Decimal, UUID and
dates as strings for the CLI, API layer and logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from rental_kernel.db.types import ZERO
from rental_kernel.domain.types import ResultDTO

NO_ACTIVE_LEASE_ACCOUNTS = "No active lease accounts found."
INVOICE_ALREADY_EXISTS = "Invoice already exists for this date"
NO_LANDLORDS_DUE = "No landlords with auto-invoice enabled for this date."
UNKNOWN = "Unknown"


class LastRunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class GeneratedInvoice(ResultDTO):
    """Snapshot of an invoice created by a generation run."""

    invoice_id: UUID
    invoice_number: str
    lease_account_id: UUID
    tenant_name: str
    unit_number: str
    invoice_date: date
    due_date: date
    rent_amount: Decimal
    status: str
    advance_rent_applied: Decimal = ZERO


@dataclass(frozen=True)
class UnitOutcome(ResultDTO):
    """A lease account that was skipped or failed, with the reason."""

    lease_account_id: UUID
    tenant_name: str
    unit_number: str
    reason: str


@dataclass(frozen=True)
class LandlordGenerationResult(ResultDTO):
    """Outcome of generating one landlord's invoices for one date."""

    landlord_id: UUID
    success: bool
    message: str
    created: int = 0
    skipped: int = 0
    failed: int = 0
    invoice_date: date | None = None
    due_date: date | None = None
    invoices: tuple[GeneratedInvoice, ...] = ()
    skipped_details: tuple[UnitOutcome, ...] = ()
    failed_details: tuple[UnitOutcome, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def last_run_status(self) -> LastRunStatus:
        return LastRunStatus.SUCCESS if self.success else LastRunStatus.FAILED

    @classmethod
    def failure(cls, landlord_id: UUID, message: str) -> LandlordGenerationResult:
        return cls(
            landlord_id=landlord_id,
            success=False,
            message=message,
            errors=(message,),
        )


@dataclass(frozen=True)
class LandlordRunResult(ResultDTO):
    landlord_id: UUID
    landlord_name: str
    result: LandlordGenerationResult


@dataclass(frozen=True)
class SchedulerRunResult(ResultDTO):
    """Aggregate outcome of one scheduler run over all due landlords."""

    run_date: date
    invoice_date: date
    total_landlords: int = 0
    processed: int = 0
    success: int = 0
    failed: int = 0
    results: tuple[LandlordRunResult, ...] = ()
    message: str = NO_LANDLORDS_DUE

    @property
    def invoices_created(self) -> int:
        return sum(r.result.created for r in self.results)
