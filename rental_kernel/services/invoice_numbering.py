"""
Rent invoice numbering.

Numbers have the form ``<prefix>-<YYYYMM>-<seq>``, e.g. ``RINV-202403-0007``.
The prefix is the landlord's ``invoice_numbering.rent_invoice_prefix``
setting; the sequence restarts every month per landlord and is allocated
from a locked counter row, so numbers stay unique per landlord under
concurrent generation.
"""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from rental_kernel.logging_config import get_logger
from rental_kernel.services.sequence_service import SequenceService
from rental_kernel.services.settings_service import LandlordSettingsService

logger = get_logger("services.invoice_numbering")

DEFAULT_PREFIX = "RINV"


class InvoiceNumberingService:

    def __init__(
        self,
        session: Session,
        settings_service: LandlordSettingsService | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._settings = settings_service or LandlordSettingsService(session)
        self._sequences = sequence_service or SequenceService(session)

    @staticmethod
    def sequence_name(landlord_id: UUID, invoice_date: date) -> str:
        return f"rent_invoice:{landlord_id}:{invoice_date:%Y%m}"

    def prefix_for(self, landlord_id: UUID) -> str:
        prefix = self._settings.get_setting(
            landlord_id, "invoice_numbering.rent_invoice_prefix", DEFAULT_PREFIX,
        )
        if not isinstance(prefix, str) or not prefix.strip():
            return DEFAULT_PREFIX
        return prefix.strip()

    def next_rent_invoice_number(self, landlord_id: UUID, invoice_date: date) -> str:
        seq = self._sequences.next_value(self.sequence_name(landlord_id, invoice_date))
        number = f"{self.prefix_for(landlord_id)}-{invoice_date:%Y%m}-{seq:04d}"
        logger.debug(
            "rent_invoice_number_allocated",
            extra={"landlord_id": str(landlord_id), "invoice_number": number},
        )
        return number
