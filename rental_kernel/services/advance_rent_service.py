"""
AdvanceRentService -- allocation of prepaid rent to rent invoices.

Responsibility:
    Collects advance rent for a lease account and allocates the prepaid
    balance to invoices dated inside the coverage period, either one
    invoice at a time (as invoices are generated) or retroactively across
    all existing invoices in chronological order.

Architecture position:
    Kernel > Services.  Coverage arithmetic lives in
    ``rental_kernel.domain.coverage``; this service adds persistence,
    locking and transaction boundaries.

Invariants enforced:
    - advance_rent_remaining never goes negative: every application is
      capped at the remaining balance.
    - No over-application: an invoice never receives more than
      rent_amount + late_fee minus what it already holds.
    - Locked balance: both allocation paths read the coverage period and
      the remaining balance from the lease account as re-read under a row
      lock, never from the caller's possibly stale copy.
    - Chronological allocation: the retroactive path consumes the balance
      in (invoice_date, id) order.
    - Atomicity: each operation is one transaction (auto_commit) or part
      of the caller's transaction (auto_commit=False).  A failure leaves
      both the invoices and the lease account unchanged.

Failure modes:
    - InvalidAdvanceRentError from collect() on negative months or amount.
    - LeaseAccountNotFoundError if the lease account vanished before the
      locked re-read.
    - sqlalchemy errors propagate after rollback.

Audit relevance:
    Every application logs ``advance_rent_applied`` with the invoice, the
    amount and the lease balance after the change; every collection writes
    an immutable ledger entry and logs ``advance_rent_collected``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from rental_config import SystemConfig, get_system_config
from rental_kernel.db.types import ZERO, covers, normalize_currency, to_decimal
from rental_kernel.domain.clock import Clock
from rental_kernel.domain.coverage import (
    CoverageCheck,
    CoveragePeriod,
    check_coverage,
    compute_coverage_period,
)
from rental_kernel.domain.payment_methods import PaymentMethod, normalize_payment_method
from rental_kernel.domain.types import (
    NOT_APPLIED,
    AdvanceRentApplication,
    AdvanceRentCollection,
    AppliedInvoiceDetail,
    RetroactiveApplicationResult,
)
from rental_kernel.exceptions import InvalidAdvanceRentError
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.models.invoice import InvoiceStatus, RentInvoice
from rental_kernel.models.lease_account import LeaseAccount
from rental_kernel.models.ledger_entry import (
    LedgerEntry,
    LedgerEntryCategory,
    LedgerEntryStatus,
    LedgerEntryType,
)
from rental_kernel.selectors.invoice_selector import InvoiceSelector
from rental_kernel.selectors.lease_account_selector import LeaseAccountSelector
from rental_kernel.services.base import BaseService

logger = get_logger("services.advance_rent")


class AdvanceRentService(BaseService[LeaseAccount]):
    """
    Advance rent coverage, allocation and collection.

    Contract:
        With ``auto_commit=True`` (default) apply_to_invoice,
        retroactively_apply and collect each commit on success and roll
        back on failure.  The invoice generator constructs it with
        ``auto_commit=False`` so the application joins its per-unit
        SAVEPOINT.

    Usage:
        service = AdvanceRentService(session)
        service.collect(lease, months=3, amount=Decimal("15000"),
                        transaction_date=date(2024, 1, 1))
        result = service.retroactively_apply(lease)
    """

    def __init__(
        self,
        session: Session,
        config: SystemConfig | None = None,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock=clock, actor_id=actor_id, auto_commit=auto_commit)
        self._config = config or get_system_config()
        self._invoices = InvoiceSelector(session)
        self._lease_accounts = LeaseAccountSelector(session)

    # ------------------------------------------------------------------
    # Coverage
    # ------------------------------------------------------------------

    def check_coverage(self, lease_account: LeaseAccount, invoice_date: date) -> CoverageCheck:
        return check_coverage(lease_account, invoice_date)

    def compute_coverage_period(self, lease_account: LeaseAccount) -> CoveragePeriod | None:
        return compute_coverage_period(lease_account)

    # ------------------------------------------------------------------
    # Single-invoice path
    # ------------------------------------------------------------------

    def apply_to_invoice(
        self,
        invoice: RentInvoice,
        lease_account: LeaseAccount,
    ) -> AdvanceRentApplication:
        """
        Apply as much of the remaining advance rent to ``invoice`` as it
        needs.

        The lease account is re-read under a row lock before the balance is
        looked at, so two sessions applying the same balance to different
        invoices serialize instead of both spending it.

        Returns (0, False) without touching either row when the invoice is
        cancelled, its date is outside the coverage period, or no balance
        remains.  A fully covered invoice is marked paid on its invoice
        date with payment method ``advance_rent``.
        """
        if invoice.is_cancelled:
            return NOT_APPLIED

        with LogContext.bind(lease_account_id=lease_account.id):
            with self._unit_of_work():
                locked = self._lease_accounts.get_for_update(lease_account.id)
                application = self._apply_from_locked(invoice, locked)

            if application.applied > ZERO:
                logger.info(
                    "advance_rent_applied",
                    extra={
                        "invoice_id": str(invoice.id),
                        "amount_applied": str(application.applied),
                        "fully_covered": application.fully_covered,
                        "advance_rent_remaining": str(locked.advance_rent_remaining),
                    },
                )
        return application

    def _apply_from_locked(
        self,
        invoice: RentInvoice,
        locked: LeaseAccount,
    ) -> AdvanceRentApplication:
        coverage = check_coverage(locked, invoice.invoice_date)
        if not coverage.covered or coverage.remaining <= ZERO:
            return NOT_APPLIED

        already_applied = to_decimal(invoice.advance_rent_applied)
        still_needed = max(ZERO, invoice.total_due - already_applied)
        if still_needed <= ZERO:
            return AdvanceRentApplication(applied=ZERO, fully_covered=bool(invoice.is_advance_covered))

        amount_to_apply = min(still_needed, coverage.remaining)
        fully_covered = self._apply(invoice, locked, already_applied, amount_to_apply)
        return AdvanceRentApplication(applied=amount_to_apply, fully_covered=fully_covered)

    def _apply(
        self,
        invoice: RentInvoice,
        lease_account: LeaseAccount,
        already_applied: Decimal,
        amount_to_apply: Decimal,
    ) -> bool:
        """Mutate both rows for one application; returns fully_covered."""
        total_applied = already_applied + amount_to_apply
        fully_covered = covers(total_applied, invoice.total_due)

        invoice.advance_rent_applied = total_applied
        invoice.is_advance_covered = fully_covered
        if fully_covered and not invoice.is_paid:
            invoice.status = InvoiceStatus.PAID.value
            invoice.paid_date = invoice.invoice_date
            invoice.payment_method = PaymentMethod.ADVANCE_RENT.value
        invoice.updated_by_id = self._actor_id

        lease_account.advance_rent_used = (
            to_decimal(lease_account.advance_rent_used) + amount_to_apply
        )
        lease_account.updated_by_id = self._actor_id
        return fully_covered

    # ------------------------------------------------------------------
    # Retroactive batch path
    # ------------------------------------------------------------------

    def retroactively_apply(self, lease_account: LeaseAccount) -> RetroactiveApplicationResult:
        """
        Allocate the remaining balance across existing invoices in the
        coverage period, oldest first.

        The coverage period and the balance both come from the lease
        account as re-read under a row lock, never from the caller's copy.
        Safe to re-run: invoices already holding their full amount are
        skipped without consuming balance, and the loop stops as soon as
        the balance is exhausted.
        """
        details: list[AppliedInvoiceDetail] = []
        total_applied = ZERO

        with LogContext.bind(lease_account_id=lease_account.id):
            with self._unit_of_work():
                locked = self._lease_accounts.get_for_update(lease_account.id)
                period = compute_coverage_period(locked)
                invoices = (
                    self._invoices.in_coverage_period(locked.id, period.start, period.end)
                    if period is not None else ()
                )

                for invoice in invoices:
                    remaining = locked.advance_rent_remaining
                    if remaining <= ZERO:
                        break

                    already_applied = to_decimal(invoice.advance_rent_applied)
                    still_needed = max(ZERO, invoice.total_due - already_applied)
                    if still_needed <= ZERO:
                        continue

                    amount_to_apply = min(still_needed, remaining)
                    fully_covered = self._apply(invoice, locked, already_applied, amount_to_apply)
                    self.session.flush()

                    total_applied += amount_to_apply
                    details.append(
                        AppliedInvoiceDetail(
                            invoice_id=invoice.id,
                            invoice_number=invoice.invoice_number,
                            invoice_date=invoice.invoice_date,
                            amount_applied=amount_to_apply,
                            total_applied=already_applied + amount_to_apply,
                            fully_covered=fully_covered,
                        )
                    )
                    locked = self._lease_accounts.get_for_update(lease_account.id)

            if period is None:
                return RetroactiveApplicationResult()

            result = RetroactiveApplicationResult(
                processed_count=len(details),
                total_applied=total_applied,
                invoices=tuple(details),
            )
            logger.info(
                "advance_rent_retroactively_applied",
                extra={
                    "processed_count": result.processed_count,
                    "total_applied": str(result.total_applied),
                    "coverage_start": period.start.isoformat(),
                    "coverage_end": period.end.isoformat(),
                },
            )
        return result

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def collect(
        self,
        lease_account: LeaseAccount,
        months: int,
        amount: Decimal | str | int,
        transaction_date: date,
        currency: str | None = None,
        payment_method: str | None = None,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> AdvanceRentCollection:
        """
        Record a new advance rent payment and start a new epoch.

        Overwrites months, amount and currency, resets the used balance to
        zero and anchors the coverage period on ``transaction_date``.
        Amounts applied to invoices in earlier epochs stay on those
        invoices.

        Raises:
            InvalidAdvanceRentError: If months or amount is negative.
        """
        amount = to_decimal(amount)
        if months is None or months < 0 or amount < ZERO:
            raise InvalidAdvanceRentError(str(lease_account.id), months, str(amount))

        currency = normalize_currency(
            currency or lease_account.currency,
            self._config.supported_currencies,
            self._config.default_currency,
        )
        method = normalize_payment_method(payment_method, self._config.default_payment_method)
        description = notes or (
            f"Advance rent for {months} month(s) - {lease_account.unit_number or 'Unit'}"
        )
        previous = _epoch_snapshot(lease_account)

        with LogContext.bind(lease_account_id=lease_account.id):
            with self._unit_of_work():
                lease_account.advance_rent_months = months
                lease_account.advance_rent_amount = amount
                lease_account.advance_rent_used = ZERO
                lease_account.currency = currency
                lease_account.advance_rent_collected_date = transaction_date
                lease_account.updated_by_id = self._actor_id

                entry = LedgerEntry(
                    landlord_id=lease_account.landlord_id,
                    lease_account_id=lease_account.id,
                    type=LedgerEntryType.RENT.value,
                    category=LedgerEntryCategory.MONTHLY_RENT.value,
                    amount=amount,
                    currency=currency,
                    description=description,
                    transaction_date=transaction_date,
                    paid_date=transaction_date,
                    payment_method=method,
                    reference_number=reference_number,
                    status=LedgerEntryStatus.COMPLETED.value,
                    created_by_id=self._actor_id,
                )
                self.session.add(entry)

            logger.info(
                "advance_rent_collected",
                extra={
                    "ledger_entry_id": str(entry.id),
                    "months": months,
                    "amount": str(amount),
                    "currency": currency,
                    "payment_method": method,
                    "previous_epoch": previous,
                },
            )
        return AdvanceRentCollection(lease_account=lease_account, ledger_entry=entry)


def _epoch_snapshot(lease_account: LeaseAccount) -> dict[str, Any]:
    return {
        "months": lease_account.advance_rent_months,
        "amount": str(to_decimal(lease_account.advance_rent_amount)),
        "used": str(to_decimal(lease_account.advance_rent_used)),
        "collected_date": (
            lease_account.advance_rent_collected_date.isoformat()
            if lease_account.advance_rent_collected_date else None
        ),
    }
