"""
Tests for rental_batch.services.scheduler -- daily run over due landlords.

The scheduler opens its own sessions from the factory, so seed data is
committed first and assertions read back through a fresh session.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from rental_batch.domain.types import NO_LANDLORDS_DUE
from rental_batch.services.generator import AutoInvoiceGenerator
from rental_batch.services.scheduler import AutoInvoiceScheduler
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.services.settings_service import LandlordSettingsService


def _auto(day_of_month=1, enabled=True):
    return {"auto_invoice": {"enabled": enabled, "day_of_month": day_of_month}}


@pytest.fixture
def scheduler(session_factory, clock, system_config, test_actor_id):
    return AutoInvoiceScheduler(
        session_factory, clock=clock, config=system_config, actor_id=test_actor_id,
    )


def _auto_invoice_config(session_factory, system_config, landlord_id):
    session = session_factory()
    try:
        return LandlordSettingsService(session, system_config).get_auto_invoice_config(landlord_id)
    finally:
        session.close()


class TestDueLandlords:
    def test_only_enabled_landlords_due_today(
        self, session, scheduler, make_landlord,
    ):
        due = make_landlord("Alpha", settings=_auto(1))
        make_landlord("Bravo", settings=_auto(15))
        make_landlord("Charlie", settings=_auto(1, enabled=False))
        make_landlord("Delta")
        session.commit()

        result = scheduler.due_landlords(date(2024, 3, 1))

        assert [landlord_id for landlord_id, _, _ in result] == [due.id]

    def test_day_31_is_due_on_last_day_of_february(
        self, session, session_factory, system_config, make_landlord,
    ):
        landlord = make_landlord("Alpha", settings=_auto(31))
        session.commit()
        scheduler = AutoInvoiceScheduler(
            session_factory,
            clock=DeterministicClock(datetime(2024, 2, 29, 9, 0, tzinfo=timezone.utc)),
            config=system_config,
        )

        assert [d[0] for d in scheduler.due_landlords(date(2024, 2, 29))] == [landlord.id]


class TestGenerateForAllEnabled:
    def test_no_landlords_due(self, session, scheduler, make_landlord):
        make_landlord("Alpha", settings=_auto(20))
        session.commit()

        result = scheduler.generate_for_all_enabled()

        assert result.message == NO_LANDLORDS_DUE
        assert (result.total_landlords, result.processed) == (0, 0)
        assert result.invoice_date == date(2024, 3, 1)

    def test_processes_due_landlords(
        self, session, scheduler, make_landlord, make_lease_account,
    ):
        alpha = make_landlord("Alpha", settings=_auto(1))
        bravo = make_landlord("Bravo", settings=_auto(1))
        make_lease_account(alpha)
        make_lease_account(alpha)
        make_lease_account(bravo)
        session.commit()

        result = scheduler.generate_for_all_enabled(date(2024, 3, 1))

        assert result.message == "Processed 2 landlord(s). Success: 2, Failed: 0"
        assert (result.total_landlords, result.processed, result.success) == (2, 2, 2)
        assert [r.landlord_name for r in result.results] == ["Alpha", "Bravo"]
        assert result.invoices_created == 3

    def test_records_last_run(
        self, session, session_factory, system_config, scheduler, clock,
        make_landlord, make_lease_account,
    ):
        landlord = make_landlord("Alpha", settings=_auto(1))
        make_lease_account(landlord)
        session.commit()

        scheduler.generate_for_all_enabled()

        config = _auto_invoice_config(session_factory, system_config, landlord.id)
        assert config.last_run_status == "success"
        assert config.last_run_at == clock.now()
        assert config.last_run_message.startswith("Auto-invoice generation completed.")
        assert config.enabled is True
        assert config.day_of_month == 1

    def test_one_landlord_failure_does_not_stop_others(
        self, session, session_factory, system_config, scheduler,
        make_landlord, make_lease_account, monkeypatch,
    ):
        alpha = make_landlord("Alpha", settings=_auto(1))
        bravo = make_landlord("Bravo", settings=_auto(1))
        make_lease_account(alpha)
        make_lease_account(bravo)
        session.commit()

        original = AutoInvoiceGenerator.generate_for_landlord

        def exploding(self, landlord_id, invoice_date=None):
            if landlord_id == alpha.id:
                raise RuntimeError("landlord exploded")
            return original(self, landlord_id, invoice_date)

        monkeypatch.setattr(AutoInvoiceGenerator, "generate_for_landlord", exploding)

        result = scheduler.generate_for_all_enabled()

        assert result.message == "Processed 2 landlord(s). Success: 1, Failed: 1"
        failed = result.results[0].result
        assert failed.success is False
        assert failed.errors == ("landlord exploded",)
        assert result.results[1].result.created == 1

        alpha_config = _auto_invoice_config(session_factory, system_config, alpha.id)
        assert alpha_config.last_run_status == "failed"
        assert alpha_config.last_run_message == "landlord exploded"

    def test_last_run_write_failure_is_logged_only(
        self, session, scheduler, make_landlord, make_lease_account,
        monkeypatch, captured_logs,
    ):
        landlord = make_landlord("Alpha", settings=_auto(1))
        make_lease_account(landlord)
        session.commit()

        def refuse(self, landlord_id, values):
            raise RuntimeError("settings store unavailable")

        monkeypatch.setattr(LandlordSettingsService, "set_settings", refuse)

        result = scheduler.generate_for_all_enabled()

        assert result.success == 1
        assert any(
            r["message"] == "auto_invoice_last_run_update_failed" for r in captured_logs()
        )

    def test_to_dict(self, session, scheduler, make_landlord, make_lease_account):
        landlord = make_landlord("Alpha", settings=_auto(1))
        make_lease_account(landlord)
        session.commit()

        data = scheduler.generate_for_all_enabled().to_dict()

        assert data["run_date"] == "2024-03-01"
        assert data["results"][0]["landlord_id"] == str(landlord.id)
        rent_amount = data["results"][0]["result"]["invoices"][0]["rent_amount"]
        assert Decimal(rent_amount) == Decimal("5000")
