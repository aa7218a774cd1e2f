"""
Pure auto-invoice schedule evaluation.

Contract:
    ``should_generate_today(config, today)`` is PURE -- no I/O, no clock.
    The scheduler supplies today's date from its injected Clock.

Short months:
    A landlord configured for day 29, 30 or 31 is due on the last day of
    any month that has fewer days, so no month is silently skipped.
"""

from __future__ import annotations

from datetime import date

from rental_kernel.domain.calendar import last_day_of_month
from rental_kernel.domain.types import LandlordAutoInvoiceConfig


def effective_run_day(day_of_month: int, on: date) -> int:
    """Configured day clamped to the last day of ``on``'s month."""
    return min(day_of_month, last_day_of_month(on))


def should_generate_today(config: LandlordAutoInvoiceConfig, today: date) -> bool:
    if config.enabled is not True:
        return False
    return today.day == effective_run_day(config.day_of_month, today)
