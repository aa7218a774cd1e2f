"""
Module: rental_kernel.db.types
Responsibility: Money helpers shared by models, domain code and services.
    Centralizes Decimal coercion and the comparison tolerance so allocation
    decisions are made identically everywhere.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats in monetary arithmetic.  Inputs are coerced through
      to_decimal(), which goes via str() for non-Decimal values.
    - MONEY_TOLERANCE (one cent) is the only sanctioned equality slack for
      "fully covered" decisions.
"""

from decimal import Decimal
from typing import Any

ZERO = Decimal("0")
MONEY_TOLERANCE = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a stored or user-supplied amount to Decimal.

    None becomes ZERO.  Floats are converted through their string form so
    that 0.1 stays 0.1.

    Raises:
        decimal.InvalidOperation: If value is not numeric.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def covers(applied: Decimal, required: Decimal) -> bool:
    """True when ``applied`` meets ``required`` within MONEY_TOLERANCE."""
    return to_decimal(applied) >= to_decimal(required) - MONEY_TOLERANCE


def normalize_currency(
    currency: str | None,
    supported: frozenset[str],
    default: str,
) -> str:
    """
    Upper-case a currency code and replace unsupported codes with ``default``.

    Empty input returns ``default``.  Currency is otherwise an opaque tag:
    no conversion is ever applied.
    """
    if not currency or not isinstance(currency, str):
        return default
    normalized = currency.strip().upper()
    if normalized not in supported:
        return default
    return normalized
