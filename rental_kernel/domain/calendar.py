"""
Calendar-month arithmetic for rent periods.

Month addition follows ``dateutil.relativedelta``: the day of month is kept
and clamped to the last day of a shorter target month (Jan 31 + 1 month is
Feb 28/29).
"""

import calendar
from datetime import date

from dateutil.relativedelta import relativedelta


def add_months(value: date, months: int) -> date:
    return value + relativedelta(months=months)


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def last_day_of_month(value: date) -> int:
    return calendar.monthrange(value.year, value.month)[1]


def whole_months_between(start: date, end: date) -> int:
    """
    Number of complete calendar months from ``start`` to ``end``.

    Returns 0 when ``end`` is before ``start``.
    """
    if end < start:
        return 0
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months
