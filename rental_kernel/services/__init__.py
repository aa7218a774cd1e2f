"""Kernel services: advance rent, landlord settings, invoice numbering."""

from rental_kernel.services.advance_rent_service import AdvanceRentService
from rental_kernel.services.invoice_numbering import InvoiceNumberingService
from rental_kernel.services.sequence_service import SequenceCounter, SequenceService
from rental_kernel.services.settings_service import LandlordSettingsService

__all__ = [
    "AdvanceRentService",
    "InvoiceNumberingService",
    "LandlordSettingsService",
    "SequenceCounter",
    "SequenceService",
]
