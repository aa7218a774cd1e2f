"""
Tests for AdvanceRentService.retroactively_apply -- chronological allocation
across existing invoices.
"""

from datetime import date
from decimal import Decimal

import pytest

from rental_kernel.models import LeaseAccount
from rental_kernel.models.invoice import InvoiceStatus
from rental_kernel.services.advance_rent_service import AdvanceRentService


@pytest.fixture
def landlord(make_landlord):
    return make_landlord()


@pytest.fixture
def service(session, clock, system_config):
    return AdvanceRentService(session, config=system_config, clock=clock)


@pytest.fixture
def lease(make_lease_account, landlord):
    return make_lease_account(
        landlord,
        lease_start=date(2024, 1, 1),
        advance_rent_months=3,
        advance_rent_amount=Decimal("12000.00"),
        advance_rent_used=Decimal("0"),
    )


class TestChronologicalAllocation:
    def test_oldest_invoices_paid_first(self, service, lease, make_invoice):
        # Created out of order; allocation must follow invoice_date
        march = make_invoice(lease, date(2024, 3, 1))
        january = make_invoice(lease, date(2024, 1, 1))
        february = make_invoice(lease, date(2024, 2, 1))

        result = service.retroactively_apply(lease)

        assert result.processed_count == 3
        assert result.total_applied == Decimal("12000.00")
        assert [d.invoice_date for d in result.invoices] == [
            date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1),
        ]
        assert january.status == InvoiceStatus.PAID.value
        assert february.status == InvoiceStatus.PAID.value
        assert march.status == InvoiceStatus.GENERATED.value
        assert march.advance_rent_applied == Decimal("2000.00")
        assert march.is_advance_covered is False
        assert lease.advance_rent_remaining == Decimal("0")

    def test_fully_covered_invoices_use_advance_rent_payment_method(
        self, service, lease, make_invoice,
    ):
        invoice = make_invoice(lease, date(2024, 1, 1))

        service.retroactively_apply(lease)

        assert invoice.payment_method == "advance_rent"
        assert invoice.paid_date == date(2024, 1, 1)

    def test_invoices_outside_period_untouched(self, service, lease, make_invoice):
        before = make_invoice(lease, date(2023, 12, 1))
        after = make_invoice(lease, date(2024, 4, 1))

        result = service.retroactively_apply(lease)

        assert result.processed_count == 0
        assert before.advance_rent_applied == Decimal("0")
        assert after.advance_rent_applied == Decimal("0")

    def test_cancelled_invoices_skipped(self, service, lease, make_invoice):
        cancelled = make_invoice(lease, date(2024, 1, 1), status=InvoiceStatus.CANCELLED.value)
        live = make_invoice(lease, date(2024, 2, 1))

        result = service.retroactively_apply(lease)

        assert result.processed_count == 1
        assert result.invoices[0].invoice_id == live.id
        assert cancelled.advance_rent_applied == Decimal("0")

    def test_two_months_collected_against_three_invoices(
        self, service, make_lease_account, landlord, make_invoice,
    ):
        lease = make_lease_account(
            landlord,
            lease_start=date(2024, 1, 1),
            advance_rent_months=2,
            advance_rent_amount=Decimal("300.00"),
        )
        invoices = [
            make_invoice(lease, date(2024, month, 1), rent_amount="100.00")
            for month in (1, 2, 3)
        ]

        result = service.retroactively_apply(lease)

        assert result.processed_count == 2
        assert result.total_applied == Decimal("200.00")
        assert [inv.status for inv in invoices[:2]] == [InvoiceStatus.PAID.value] * 2
        assert lease.advance_rent_used == Decimal("200.00")
        assert lease.advance_rent_remaining == Decimal("100.00")
        # March 1 is past the two-month period that ends on February 29.
        assert invoices[2].advance_rent_applied == Decimal("0")
        assert invoices[2].status == InvoiceStatus.GENERATED.value


class TestPartialAndRepeat:
    def test_balance_smaller_than_two_invoices(
        self, service, make_lease_account, landlord, make_invoice,
    ):
        lease = make_lease_account(
            landlord,
            lease_start=date(2024, 1, 1),
            advance_rent_months=2,
            advance_rent_amount=Decimal("150.00"),
        )
        january = make_invoice(lease, date(2024, 1, 1), rent_amount="100.00")
        february = make_invoice(lease, date(2024, 2, 1), rent_amount="100.00")

        result = service.retroactively_apply(lease)

        assert [d.amount_applied for d in result.invoices] == [Decimal("100.00"), Decimal("50.00")]
        assert january.status == InvoiceStatus.PAID.value
        assert january.is_advance_covered is True
        assert february.advance_rent_applied == Decimal("50.00")
        assert february.is_advance_covered is False
        assert february.status == InvoiceStatus.GENERATED.value
        assert lease.advance_rent_remaining == Decimal("0")

    def test_partially_covered_invoice_topped_up(self, service, lease, make_invoice):
        invoice = make_invoice(
            lease, date(2024, 1, 1), advance_rent_applied=Decimal("1500.00"),
        )

        result = service.retroactively_apply(lease)

        detail = result.invoices[0]
        assert detail.amount_applied == Decimal("3500.00")
        assert detail.total_applied == Decimal("5000.00")
        assert detail.fully_covered is True
        assert invoice.status == InvoiceStatus.PAID.value

    def test_already_covered_invoice_consumes_nothing(self, service, lease, make_invoice):
        make_invoice(
            lease, date(2024, 1, 1),
            advance_rent_applied=Decimal("5000.00"),
            is_advance_covered=True,
            status=InvoiceStatus.PAID.value,
        )
        february = make_invoice(lease, date(2024, 2, 1))

        result = service.retroactively_apply(lease)

        assert result.processed_count == 1
        assert result.invoices[0].invoice_id == february.id
        assert lease.advance_rent_used == Decimal("5000.00")

    def test_rerun_is_a_no_op(self, service, lease, make_invoice):
        make_invoice(lease, date(2024, 1, 1))
        make_invoice(lease, date(2024, 2, 1))

        first = service.retroactively_apply(lease)
        second = service.retroactively_apply(lease)

        assert first.total_applied == Decimal("10000.00")
        assert second.processed_count == 0
        assert second.total_applied == Decimal("0")
        assert lease.advance_rent_used == Decimal("10000.00")

    def test_stops_when_balance_exhausted(self, service, lease, make_invoice):
        for month in (1, 2, 3):
            make_invoice(lease, date(2024, month, 1), rent_amount="6000.00")

        result = service.retroactively_apply(lease)

        assert result.processed_count == 2
        assert result.total_applied == Decimal("12000.00")

    def test_sum_applied_never_exceeds_collected(self, service, session, lease, make_invoice):
        invoices = [
            make_invoice(lease, date(2024, 1, d), rent_amount="1999.99")
            for d in (1, 5, 9, 13, 17, 21, 25, 29)
        ]

        service.retroactively_apply(lease)

        total = sum((inv.advance_rent_applied for inv in invoices), Decimal("0"))
        assert total <= Decimal("12000.00")
        assert lease.advance_rent_remaining >= Decimal("0")
        for inv in invoices:
            assert inv.advance_rent_applied <= inv.total_due


class TestGuards:
    def test_no_months_returns_empty_result(self, service, make_lease_account, landlord, make_invoice):
        lease = make_lease_account(landlord, advance_rent_months=0)
        make_invoice(lease, date(2024, 1, 1))

        result = service.retroactively_apply(lease)

        assert result.processed_count == 0
        assert result.invoices == ()

    def test_period_comes_from_committed_collection(
        self, session, session_factory, system_config, make_lease_account, landlord, make_invoice,
    ):
        lease = make_lease_account(landlord, advance_rent_months=0)
        january = make_invoice(lease, date(2024, 1, 1))
        february = make_invoice(lease, date(2024, 2, 1))
        session.commit()

        session_a = session_factory()
        stale_lease = session_a.get(LeaseAccount, lease.id)
        session_a.commit()

        session_b = session_factory()
        try:
            AdvanceRentService(session_b, config=system_config).collect(
                session_b.get(LeaseAccount, lease.id),
                months=2,
                amount="10000.00",
                transaction_date=date(2024, 1, 1),
            )
        finally:
            session_b.close()

        try:
            result = AdvanceRentService(session_a, config=system_config).retroactively_apply(
                stale_lease,
            )
        finally:
            session_a.close()

        assert result.processed_count == 2
        assert result.total_applied == Decimal("10000.00")
        session.refresh(january)
        session.refresh(february)
        assert (january.status, february.status) == (InvoiceStatus.PAID.value,) * 2

    def test_failure_rolls_back_whole_batch(
        self, service, session, lease, make_invoice, monkeypatch,
    ):
        january = make_invoice(lease, date(2024, 1, 1))
        make_invoice(lease, date(2024, 2, 1))
        session.commit()

        calls = {"n": 0}
        original = service._lease_accounts.get_for_update

        def _fail_on_second_reread(lease_account_id):
            calls["n"] += 1
            if calls["n"] == 3:
                raise RuntimeError("lost connection")
            return original(lease_account_id)

        monkeypatch.setattr(service._lease_accounts, "get_for_update", _fail_on_second_reread)

        with pytest.raises(RuntimeError):
            service.retroactively_apply(lease)

        session.refresh(january)
        session.refresh(lease)
        assert january.advance_rent_applied == Decimal("0")
        assert january.status == InvoiceStatus.GENERATED.value
        assert lease.advance_rent_used == Decimal("0")
