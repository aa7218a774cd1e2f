"""ORM models for the rental kernel."""

from rental_kernel.models.invoice import InvoiceStatus, RentInvoice
from rental_kernel.models.landlord import Landlord, LandlordSettings
from rental_kernel.models.lease_account import LeaseAccount, LeaseAccountStatus
from rental_kernel.models.ledger_entry import (
    LedgerEntry,
    LedgerEntryCategory,
    LedgerEntryStatus,
    LedgerEntryType,
)

__all__ = [
    "Landlord",
    "LandlordSettings",
    "LeaseAccount",
    "LeaseAccountStatus",
    "RentInvoice",
    "InvoiceStatus",
    "LedgerEntry",
    "LedgerEntryType",
    "LedgerEntryCategory",
    "LedgerEntryStatus",
]
