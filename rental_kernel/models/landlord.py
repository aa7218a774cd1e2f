"""
Module: rental_kernel.models.landlord
Responsibility: ORM persistence for landlords and their settings document.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One LandlordSettings row per landlord (uq_landlord_settings_landlord).
    - The settings document is a JSON object keyed by category
      (auto_invoice, payment_terms, invoice_numbering, currency).  Missing
      categories and keys fall back to the YAML defaults in rental_config.

Failure modes:
    - IntegrityError on a second settings row for the same landlord.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import TrackedBase, UUIDString


class Landlord(TrackedBase):
    """A property owner whose lease accounts are billed."""

    __tablename__ = "landlords"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    settings: Mapped["LandlordSettings | None"] = relationship(
        "LandlordSettings",
        back_populates="landlord",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Landlord {self.name}>"


class LandlordSettings(TrackedBase):
    """
    Per-landlord configuration document.

    Written by landlords through the (external) settings API and by the
    auto-invoice scheduler, which records auto_invoice.last_run_* after
    each run.  Always replace ``values`` with a new dict; in-place edits of
    the JSON value are not tracked by the ORM.
    """

    __tablename__ = "landlord_settings"

    __table_args__ = (
        UniqueConstraint("landlord_id", name="uq_landlord_settings_landlord"),
    )

    landlord_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("landlords.id", ondelete="CASCADE"),
        nullable=False,
    )
    values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    landlord: Mapped["Landlord"] = relationship(
        "Landlord",
        back_populates="settings",
    )
