"""
Module: rental_kernel.models.ledger_entry
Responsibility: Append-only record of monetary events (advance rent
    collected, ...) for landlord reporting.  The allocation engine writes
    ledger entries and never reads them.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Immutable from creation: db/immutability.py rejects UPDATE and DELETE
      through the ORM.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TrackedBase, UUIDString


class LedgerEntryType(str, Enum):
    RENT = "rent"
    EXPENSE = "expense"
    SECURITY_DEPOSIT = "security_deposit"
    REFUND = "refund"
    FEE = "fee"


class LedgerEntryCategory(str, Enum):
    MONTHLY_RENT = "monthly_rent"
    LATE_FEE = "late_fee"
    PROCESSING_FEE = "processing_fee"
    OTHER = "other"


class LedgerEntryStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LedgerEntry(TrackedBase):
    """One monetary event, written once."""

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_landlord", "landlord_id"),
        Index("idx_ledger_lease_account", "lease_account_id"),
        Index("idx_ledger_transaction_date", "transaction_date"),
    )

    landlord_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("landlords.id"),
        nullable=False,
    )
    lease_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("lease_accounts.id"),
        nullable=True,
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False, default="cash")
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LedgerEntryStatus.COMPLETED.value,
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.type}/{self.category} {self.amount} {self.currency}>"
