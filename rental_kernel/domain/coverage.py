"""
Coverage Calculator -- which invoice dates a lease's advance rent pays for.

Responsibility:
    Pure functions deriving the coverage period and a coverage check for a
    lease account at a given invoice date.  Reads lease attributes only,
    never mutates them, performs no I/O.

Coverage period:
    start = advance_rent_collected_date, or lease_start when no collection
            date is recorded
    end   = add_months(start, advance_rent_months) - 1 day
    Both bounds are inclusive.  Jan 31 + 1 month clamps to Feb 28/29, so a
    one-month period from Jan 31 ends on Feb 27/28.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from rental_kernel.db.types import ZERO, to_decimal
from rental_kernel.domain.calendar import add_months, whole_months_between
from rental_kernel.domain.types import ResultDTO


@dataclass(frozen=True)
class CoveragePeriod(ResultDTO):
    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


@dataclass(frozen=True)
class CoverageCheck(ResultDTO):
    """Coverage state for one lease account at one invoice date."""

    covered: bool = False
    remaining: Decimal = ZERO
    months_remaining: int = 0
    can_fully_cover: bool = False


NOT_COVERED = CoverageCheck()


def coverage_anchor(lease_account: Any) -> date | None:
    return lease_account.advance_rent_collected_date or lease_account.lease_start


def compute_coverage_period(lease_account: Any) -> CoveragePeriod | None:
    """
    Coverage period for the lease's current advance-rent epoch.

    Returns None when no advance rent months are recorded or there is no
    anchor date.
    """
    months = lease_account.advance_rent_months or 0
    if months <= 0:
        return None
    start = coverage_anchor(lease_account)
    if start is None:
        return None
    end = add_months(start, months) - timedelta(days=1)
    return CoveragePeriod(start=start, end=end)


def months_remaining(lease_account: Any, reference_date: date) -> int:
    """
    Whole months of coverage left at ``reference_date``.

    0 once ``reference_date`` reaches start + months; otherwise months minus
    the complete months elapsed since start.
    """
    months = lease_account.advance_rent_months or 0
    if months <= 0:
        return 0
    start = coverage_anchor(lease_account)
    if start is None:
        return 0
    if reference_date >= add_months(start, months):
        return 0
    return max(0, months - whole_months_between(start, reference_date))


def check_coverage(lease_account: Any, invoice_date: date) -> CoverageCheck:
    """
    Whether ``invoice_date`` falls in the coverage period, with the balance
    available to pay it.

    A lease with advance_rent_months == 0 is never covered, whatever its
    stored amounts say.
    """
    period = compute_coverage_period(lease_account)
    if period is None:
        return NOT_COVERED

    covered = period.contains(invoice_date)
    remaining = to_decimal(lease_account.advance_rent_remaining)
    return CoverageCheck(
        covered=covered,
        remaining=remaining,
        months_remaining=months_remaining(lease_account, invoice_date),
        can_fully_cover=covered and remaining > ZERO,
    )
