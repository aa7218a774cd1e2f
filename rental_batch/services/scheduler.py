"""
AutoInvoiceScheduler -- run invoice generation for every landlord due today.

Contract:
    ``generate_for_all_enabled()`` loads every landlord's auto-invoice
    settings, keeps those for which ``should_generate_today()`` (pure) is
    true, and runs ``AutoInvoiceGenerator`` for each in its own session.

Architecture: rental_batch/services.  Uses rental_batch.domain.schedule for
    pure evaluation and rental_batch.services.generator for execution.

Invariants enforced:
    - One landlord's failure never affects another landlord: each runs in
      its own session and transaction, and unexpected exceptions become a
      failed result.
    - last_run_* bookkeeping is best effort: it is written in a separate
      transaction after the landlord run, and a failure there is logged
      without changing the run's result.
    - All dates and timestamps come from the injected Clock.
"""

from __future__ import annotations

from datetime import date
from typing import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from rental_config import SystemConfig, get_system_config
from rental_kernel.db.base import SYSTEM_ACTOR_ID
from rental_kernel.db.engine import session_scope
from rental_kernel.domain.calendar import first_of_month
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.types import LandlordAutoInvoiceConfig
from rental_kernel.logging_config import get_logger
from rental_kernel.models.landlord import Landlord
from rental_kernel.services.settings_service import LandlordSettingsService

from rental_batch.domain.schedule import should_generate_today
from rental_batch.domain.types import (
    NO_LANDLORDS_DUE,
    LandlordGenerationResult,
    LandlordRunResult,
    SchedulerRunResult,
)
from rental_batch.services.generator import AutoInvoiceGenerator

logger = get_logger("batch.scheduler")


class AutoInvoiceScheduler:
    """Runs auto-invoice generation for all landlords due today.

    Non-goals:
        - NOT a background poller; an external cron (or the
          rent-generate-invoices command) calls it once a day.
        - Does NOT handle timezones beyond the injected clock's date.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        config: SystemConfig | None = None,
        actor_id: UUID | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or get_system_config()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def due_landlords(self, today: date) -> list[tuple[UUID, str, LandlordAutoInvoiceConfig]]:
        """Landlords whose auto-invoice schedule fires on ``today``."""
        with session_scope(self._session_factory) as session:
            settings = LandlordSettingsService(session, self._config)
            landlords = session.execute(
                select(Landlord).order_by(Landlord.name, Landlord.id)
            ).scalars().all()

            due: list[tuple[UUID, str, LandlordAutoInvoiceConfig]] = []
            for landlord in landlords:
                config = settings.get_auto_invoice_config(landlord.id)
                if should_generate_today(config, today):
                    due.append((landlord.id, landlord.name, config))
            return due

    def generate_for_all_enabled(self, invoice_date: date | None = None) -> SchedulerRunResult:
        """Generate invoices for every landlord due today.

        ``invoice_date`` defaults to the first day of the current month.
        """
        today = self._clock.today()
        invoice_date = invoice_date or first_of_month(today)

        due = self.due_landlords(today)
        if not due:
            logger.info(
                "auto_invoice_no_landlords_due",
                extra={"run_date": today.isoformat()},
            )
            return SchedulerRunResult(
                run_date=today,
                invoice_date=invoice_date,
                message=NO_LANDLORDS_DUE,
            )

        logger.info(
            "auto_invoice_scheduler_started",
            extra={
                "run_date": today.isoformat(),
                "invoice_date": invoice_date.isoformat(),
                "landlord_count": len(due),
            },
        )

        results: list[LandlordRunResult] = []
        succeeded = 0
        failed = 0

        for landlord_id, landlord_name, _config in due:
            result = self.run_landlord(landlord_id, invoice_date)
            if result.success:
                succeeded += 1
            else:
                failed += 1
            self._record_last_run(landlord_id, result)
            results.append(LandlordRunResult(
                landlord_id=landlord_id,
                landlord_name=landlord_name or f"Landlord {landlord_id}",
                result=result,
            ))

        processed = len(results)
        message = f"Processed {processed} landlord(s). Success: {succeeded}, Failed: {failed}"
        logger.info(
            "auto_invoice_scheduler_completed",
            extra={"processed": processed, "succeeded": succeeded, "failed": failed},
        )
        return SchedulerRunResult(
            run_date=today,
            invoice_date=invoice_date,
            total_landlords=len(due),
            processed=processed,
            success=succeeded,
            failed=failed,
            results=tuple(results),
            message=message,
        )

    def run_landlord(self, landlord_id: UUID, invoice_date: date) -> LandlordGenerationResult:
        """Run the generator for one landlord in a fresh session."""
        session = self._session_factory()
        try:
            generator = AutoInvoiceGenerator(
                session,
                clock=self._clock,
                config=self._config,
                actor_id=self._actor_id,
            )
            return generator.generate_for_landlord(landlord_id, invoice_date)
        except Exception as exc:
            session.rollback()
            logger.error(
                "auto_invoice_landlord_failed",
                extra={"landlord_id": str(landlord_id)},
                exc_info=True,
            )
            return LandlordGenerationResult.failure(landlord_id, str(exc))
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _record_last_run(self, landlord_id: UUID, result: LandlordGenerationResult) -> None:
        try:
            with session_scope(self._session_factory) as session:
                LandlordSettingsService(session, self._config).set_settings(
                    landlord_id,
                    {
                        "auto_invoice.last_run_at": self._clock.now().isoformat(),
                        "auto_invoice.last_run_status": result.last_run_status.value,
                        "auto_invoice.last_run_message": result.message,
                    },
                )
        except Exception:
            logger.error(
                "auto_invoice_last_run_update_failed",
                extra={"landlord_id": str(landlord_id)},
                exc_info=True,
            )
