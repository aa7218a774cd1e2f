"""Rent invoice queries."""

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select

from rental_kernel.models.invoice import InvoiceStatus, RentInvoice
from rental_kernel.selectors.base import BaseSelector


class InvoiceSelector(BaseSelector[RentInvoice]):

    def in_coverage_period(
        self,
        lease_account_id: UUID,
        start: date,
        end: date,
    ) -> Sequence[RentInvoice]:
        """
        Non-cancelled invoices of a lease account dated within [start, end].

        Ordered by (invoice_date, id) in SQL: allocation consumes the
        balance in exactly this order.
        """
        return self.session.execute(
            select(RentInvoice)
            .where(RentInvoice.lease_account_id == lease_account_id)
            .where(RentInvoice.status != InvoiceStatus.CANCELLED.value)
            .where(RentInvoice.invoice_date >= start)
            .where(RentInvoice.invoice_date <= end)
            .order_by(RentInvoice.invoice_date, RentInvoice.id)
        ).scalars().all()

    def exists_for(
        self,
        landlord_id: UUID,
        lease_account_id: UUID,
        invoice_date: date,
    ) -> bool:
        """
        Idempotency guard: any invoice, whatever its status, for this
        landlord, lease account and date.
        """
        found = self.session.execute(
            select(RentInvoice.id)
            .where(RentInvoice.landlord_id == landlord_id)
            .where(RentInvoice.lease_account_id == lease_account_id)
            .where(RentInvoice.invoice_date == invoice_date)
            .limit(1)
        ).scalar_one_or_none()
        return found is not None
