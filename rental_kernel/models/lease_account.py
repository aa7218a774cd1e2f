"""
Module: rental_kernel.models.lease_account
Responsibility: ORM persistence for lease accounts: one tenant's assignment
    to one unit, with its rent terms and advance-rent state.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - advance_rent_remaining is DERIVED: max(0, amount - used).  It is a
      Python property and is never stored, so it cannot drift from the two
      columns it is computed from.
    - advance_rent_used only grows within an epoch.  A collection resets it
      to zero and starts a new epoch (AdvanceRentService.collect).
    - Lease accounts are never hard-deleted while invoices reference them
      (FK from rent_invoices without cascade).

Audit relevance:
    advance_rent_amount / advance_rent_used together with the
    advance_rent_applied column on each invoice explain every unit of
    prepaid rent: collected, consumed by which invoice, still available.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TrackedBase, UUIDString
from rental_kernel.db.types import ZERO, to_decimal


class LeaseAccountStatus(str, Enum):
    """Lease account lifecycle."""

    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


class LeaseAccount(TrackedBase):
    """
    A tenant's active or historical occupancy of a unit.

    Guarantees:
        - monthly_rent, advance_rent_amount and advance_rent_used are Decimal.
        - currency is an opaque 3-letter tag; no conversion is performed.
    """

    __tablename__ = "lease_accounts"

    __table_args__ = (
        Index("idx_lease_account_landlord_status", "landlord_id", "status"),
        Index("idx_lease_account_tenant", "tenant_id"),
        Index("idx_lease_account_unit", "unit_id"),
    )

    landlord_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("landlords.id"),
        nullable=False,
    )
    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    unit_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Display fields carried into generation reports
    tenant_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    unit_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    lease_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    lease_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LeaseAccountStatus.ACTIVE.value,
    )

    monthly_rent: Mapped[Decimal | None] = mapped_column(nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MVR")

    advance_rent_months: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    advance_rent_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    advance_rent_used: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    advance_rent_collected_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    @property
    def advance_rent_remaining(self) -> Decimal:
        """Unconsumed advance rent in the current epoch, never negative."""
        remaining = to_decimal(self.advance_rent_amount) - to_decimal(self.advance_rent_used)
        return max(ZERO, remaining)

    @property
    def is_advance_rent_fully_used(self) -> bool:
        return self.advance_rent_remaining <= ZERO

    def __repr__(self) -> str:
        return f"<LeaseAccount {self.id} unit={self.unit_number} status={self.status}>"
