"""
Module: rental_kernel.models.invoice
Responsibility: ORM persistence for rent invoices, one billing period's rent
    obligation for a lease account, including how much of it was settled
    from advance rent.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - 0 <= advance_rent_applied <= rent_amount + late_fee.  Both allocation
      paths compute the amount to apply from what the invoice still needs,
      so the cap is structural rather than checked after the fact.
    - is_advance_covered is True iff advance_rent_applied covers
      rent_amount + late_fee within one cent.
    - invoice_number is unique per landlord (uq_rent_invoice_number).
    - At most one invoice per lease account and invoice date
      (uq_rent_invoice_lease_date).  The generator checks first; the
      constraint decides when two runs race past the check.

Failure modes:
    - IntegrityError on a duplicate invoice number for the same landlord,
      or on a second invoice for the same lease account and date.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import TrackedBase, UUIDString
from rental_kernel.db.types import ZERO, to_decimal
from rental_kernel.models.lease_account import LeaseAccount


class InvoiceStatus(str, Enum):
    """Rent invoice payment state."""

    GENERATED = "generated"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class RentInvoice(TrackedBase):
    """A periodic rent obligation tied to a lease account."""

    __tablename__ = "rent_invoices"

    __table_args__ = (
        UniqueConstraint("landlord_id", "invoice_number", name="uq_rent_invoice_number"),
        UniqueConstraint("lease_account_id", "invoice_date", name="uq_rent_invoice_lease_date"),
        Index("idx_rent_invoice_landlord_date", "landlord_id", "invoice_date"),
        Index("idx_rent_invoice_status", "status"),
    )

    lease_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("lease_accounts.id"),
        nullable=False,
    )
    landlord_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("landlords.id"),
        nullable=False,
    )
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False)

    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    rent_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    late_fee: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.GENERATED.value,
    )
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    advance_rent_applied: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    is_advance_covered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    lease_account: Mapped["LeaseAccount"] = relationship("LeaseAccount")

    @property
    def total_due(self) -> Decimal:
        """rent_amount + late_fee."""
        return to_decimal(self.rent_amount) + to_decimal(self.late_fee)

    @property
    def outstanding_after_advance(self) -> Decimal:
        return max(ZERO, self.total_due - to_decimal(self.advance_rent_applied))

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID.value

    @property
    def is_cancelled(self) -> bool:
        return self.status == InvoiceStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<RentInvoice {self.invoice_number} {self.invoice_date} {self.status}>"
