"""
AutoInvoiceGenerator -- SAVEPOINT-per-lease-account invoice generation.

Contract:
    ``generate_for_landlord()`` creates one rent invoice per active lease
    account of a landlord for a given invoice date, applies advance rent to
    each new invoice, and reports created / skipped / failed lease accounts.

Architecture: rental_batch/services.  Uses kernel selectors and services;
    owns the landlord-run transaction when ``auto_commit`` is set.

Invariants enforced:
    - Idempotency: a lease account that already has an invoice (any
      status) for the landlord and date is skipped, so re-running for the
      same date creates nothing new.  Two runs racing past that check
      collide on uq_rent_invoice_lease_date; the loser skips the lease
      account the same way.
    - Fault isolation: each lease account runs in its own SAVEPOINT.  A
      failing lease account is rolled back to the savepoint (its invoice,
      its invoice number and its advance-rent change vanish together) and
      the run continues.
    - Atomicity: the landlord run is one transaction.  An exception that
      escapes per-unit handling (including store connectivity errors, which
      are never treated as a per-unit failure) rolls back every invoice of
      the run.
"""

from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from rental_config import SystemConfig, get_system_config
from rental_kernel.db.base import SYSTEM_ACTOR_ID
from rental_kernel.db.types import ZERO, to_decimal
from rental_kernel.domain.calendar import first_of_month
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.exceptions import MonthlyRentNotSetError, RentalKernelError
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.models.invoice import InvoiceStatus, RentInvoice
from rental_kernel.models.lease_account import LeaseAccount
from rental_kernel.selectors.invoice_selector import InvoiceSelector
from rental_kernel.selectors.lease_account_selector import LeaseAccountSelector
from rental_kernel.services.advance_rent_service import AdvanceRentService
from rental_kernel.services.invoice_numbering import InvoiceNumberingService
from rental_kernel.services.settings_service import LandlordSettingsService

from rental_batch.domain.types import (
    INVOICE_ALREADY_EXISTS,
    NO_ACTIVE_LEASE_ACCOUNTS,
    UNKNOWN,
    GeneratedInvoice,
    LandlordGenerationResult,
    UnitOutcome,
)

logger = get_logger("batch.generator")


class _AlreadyInvoiced(Exception):
    """Internal signal: roll back the unit's savepoint and record a skip."""


class AutoInvoiceGenerator:
    """Rent invoice generation for one landlord.

    Contract:
        - With ``auto_commit=True`` (default) the run commits on success and
          rolls back when an exception escapes per-unit handling.
        - With ``auto_commit=False`` it only flushes; the caller commits.
        - Never raises for data problems; the result carries them.

    Non-goals:
        - Does NOT decide whether a landlord is due today -- that is the
          scheduler's job.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: SystemConfig | None = None,
        actor_id: UUID | None = None,
        auto_commit: bool = True,
        settings_service: LandlordSettingsService | None = None,
        numbering_service: InvoiceNumberingService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_system_config()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._auto_commit = auto_commit
        self._settings = settings_service or LandlordSettingsService(session, self._config)
        self._numbering = numbering_service or InvoiceNumberingService(
            session, settings_service=self._settings,
        )
        self._advance_rent = AdvanceRentService(
            session,
            config=self._config,
            clock=self._clock,
            actor_id=self._actor_id,
            auto_commit=False,
        )
        self._lease_accounts = LeaseAccountSelector(session)
        self._invoices = InvoiceSelector(session)

    def generate_for_landlord(
        self,
        landlord_id: UUID,
        invoice_date: date | None = None,
    ) -> LandlordGenerationResult:
        """Generate invoices for every active lease account of a landlord.

        ``invoice_date`` defaults to the first day of the current month;
        the due date is ``invoice_date + payment_terms.default_due_days``.
        """
        invoice_date = invoice_date or first_of_month(self._clock.today())

        with LogContext.bind(
            correlation_id=str(uuid4()),
            landlord_id=str(landlord_id),
            actor_id=str(self._actor_id),
        ):
            return self._generate(landlord_id, invoice_date)

    def _generate(self, landlord_id: UUID, invoice_date: date) -> LandlordGenerationResult:
        created: list[GeneratedInvoice] = []
        skipped: list[UnitOutcome] = []
        failed: list[UnitOutcome] = []
        errors: list[str] = []
        lease_accounts: list[LeaseAccount] = []
        due_date: date | None = None

        try:
            due_days = self._settings.get_auto_invoice_config(landlord_id).default_due_days
            due_date = invoice_date + timedelta(days=due_days)

            lease_accounts = list(self._lease_accounts.active_for_landlord(landlord_id))
            if not lease_accounts:
                self._finish()
                logger.info("auto_invoice_no_active_lease_accounts")
                return LandlordGenerationResult(
                    landlord_id=landlord_id,
                    success=True,
                    message=NO_ACTIVE_LEASE_ACCOUNTS,
                    invoice_date=invoice_date,
                    due_date=due_date,
                )

            logger.info(
                "auto_invoice_generation_started",
                extra={
                    "invoice_date": invoice_date.isoformat(),
                    "lease_account_count": len(lease_accounts),
                },
            )

            for lease_account in lease_accounts:
                tenant_name = lease_account.tenant_name or UNKNOWN
                unit_number = lease_account.unit_number or UNKNOWN
                lease_account_id = lease_account.id
                already_invoiced = UnitOutcome(
                    lease_account_id=lease_account_id,
                    tenant_name=tenant_name,
                    unit_number=unit_number,
                    reason=INVOICE_ALREADY_EXISTS,
                )

                with LogContext.bind(lease_account_id=lease_account_id):
                    savepoint = self._session.begin_nested()
                    try:
                        generated = self._generate_one(
                            lease_account, landlord_id, invoice_date, due_date,
                        )
                        savepoint.commit()
                    except _AlreadyInvoiced:
                        savepoint.rollback()
                        skipped.append(already_invoiced)
                        continue
                    except IntegrityError as exc:
                        savepoint.rollback()
                        # A concurrent run inserted this lease account's invoice
                        # between the check and the flush.
                        if self._invoices.exists_for(landlord_id, lease_account_id, invoice_date):
                            logger.info("auto_invoice_unit_invoiced_concurrently")
                            skipped.append(already_invoiced)
                        else:
                            failed.append(self._unit_failed(exc, lease_account))
                            errors.append(f"Unit {unit_number}: {exc}")
                        continue
                    except OperationalError:
                        savepoint.rollback()
                        raise
                    except Exception as exc:
                        savepoint.rollback()
                        failed.append(self._unit_failed(exc, lease_account))
                        errors.append(f"Unit {unit_number}: {exc}")
                        continue

                created.append(generated)

            self._finish()

        except Exception as exc:
            if self._auto_commit:
                self._session.rollback()
            unprocessed = len(lease_accounts) - len(created) - len(skipped) - len(failed)
            logger.error(
                "auto_invoice_generation_failed",
                extra={
                    "created": len(created),
                    "skipped": len(skipped),
                    "failed": len(failed),
                    "unprocessed": unprocessed,
                },
                exc_info=True,
            )
            return LandlordGenerationResult(
                landlord_id=landlord_id,
                success=False,
                message=f"Auto-invoice generation failed: {exc}",
                created=len(created),
                skipped=len(skipped),
                failed=len(failed) + unprocessed,
                invoice_date=invoice_date,
                due_date=due_date,
                invoices=tuple(created),
                skipped_details=tuple(skipped),
                failed_details=tuple(failed),
                errors=(*errors, str(exc)),
            )

        message = (
            f"Auto-invoice generation completed. Created: {len(created)}, "
            f"Skipped: {len(skipped)}, Failed: {len(failed)}"
        )
        logger.info(
            "auto_invoice_generation_completed",
            extra={
                "invoice_date": invoice_date.isoformat(),
                "created": len(created),
                "skipped": len(skipped),
                "failed": len(failed),
            },
        )
        return LandlordGenerationResult(
            landlord_id=landlord_id,
            success=True,
            message=message,
            created=len(created),
            skipped=len(skipped),
            failed=len(failed),
            invoice_date=invoice_date,
            due_date=due_date,
            invoices=tuple(created),
            skipped_details=tuple(skipped),
            failed_details=tuple(failed),
            errors=tuple(errors),
        )

    def _generate_one(
        self,
        lease_account: LeaseAccount,
        landlord_id: UUID,
        invoice_date: date,
        due_date: date,
    ) -> GeneratedInvoice:
        """Create and settle one invoice inside the caller's savepoint."""
        if self._invoices.exists_for(landlord_id, lease_account.id, invoice_date):
            raise _AlreadyInvoiced()

        rent_amount = to_decimal(lease_account.monthly_rent)
        if rent_amount <= ZERO:
            raise MonthlyRentNotSetError(str(lease_account.id))

        invoice = RentInvoice(
            lease_account_id=lease_account.id,
            landlord_id=landlord_id,
            invoice_number=self._numbering.next_rent_invoice_number(landlord_id, invoice_date),
            invoice_date=invoice_date,
            due_date=due_date,
            rent_amount=rent_amount,
            late_fee=ZERO,
            status=InvoiceStatus.GENERATED.value,
            advance_rent_applied=ZERO,
            is_advance_covered=False,
            created_by_id=self._actor_id,
        )
        self._session.add(invoice)
        self._session.flush()

        application = self._advance_rent.apply_to_invoice(invoice, lease_account)

        logger.info(
            "auto_invoice_created",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "rent_amount": str(rent_amount),
                "advance_rent_applied": str(application.applied),
                "fully_covered": application.fully_covered,
            },
        )
        return GeneratedInvoice(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            lease_account_id=lease_account.id,
            tenant_name=lease_account.tenant_name or UNKNOWN,
            unit_number=lease_account.unit_number or UNKNOWN,
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
            rent_amount=rent_amount,
            status=invoice.status,
            advance_rent_applied=to_decimal(invoice.advance_rent_applied),
        )

    def _unit_failed(self, exc: Exception, lease_account: LeaseAccount) -> UnitOutcome:
        if isinstance(exc, RentalKernelError):
            logger.warning(
                "auto_invoice_unit_rejected",
                extra={"error_code": exc.code, "reason": str(exc)},
            )
        else:
            logger.error("auto_invoice_unit_failed", exc_info=exc)
        return UnitOutcome(
            lease_account_id=lease_account.id,
            tenant_name=lease_account.tenant_name or UNKNOWN,
            unit_number=lease_account.unit_number or UNKNOWN,
            reason=str(exc),
        )

    def _finish(self) -> None:
        if self._auto_commit:
            self._session.commit()
        else:
            self._session.flush()
