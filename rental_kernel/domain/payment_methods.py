"""
Payment-method normalization.

Maps the free-form payment method strings that arrive from forms, imports
and mobile clients onto the fixed set stored in ``payment_method`` columns.
"""

from enum import Enum

from rental_kernel.logging_config import get_logger

logger = get_logger("domain.payment_methods")


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    UPI = "upi"
    CARD = "card"
    CHEQUE = "cheque"
    ADVANCE_RENT = "advance_rent"


VALID_PAYMENT_METHODS = frozenset(m.value for m in PaymentMethod)

# Keys are lower-cased with spaces, underscores and hyphens removed.
_ALIASES: dict[str, PaymentMethod] = {
    "cash": PaymentMethod.CASH,
    "cashpayment": PaymentMethod.CASH,
    "banktransfer": PaymentMethod.BANK_TRANSFER,
    "banktransferpayment": PaymentMethod.BANK_TRANSFER,
    "wiretransfer": PaymentMethod.BANK_TRANSFER,
    "upi": PaymentMethod.UPI,
    "upipayment": PaymentMethod.UPI,
    "card": PaymentMethod.CARD,
    "cardpayment": PaymentMethod.CARD,
    "creditcard": PaymentMethod.CARD,
    "debitcard": PaymentMethod.CARD,
    "cheque": PaymentMethod.CHEQUE,
    "chequepayment": PaymentMethod.CHEQUE,
    "check": PaymentMethod.CHEQUE,
    "checkpayment": PaymentMethod.CHEQUE,
    "advancerent": PaymentMethod.ADVANCE_RENT,
}

_PREFIXES: tuple[tuple[str, PaymentMethod], ...] = (
    ("cash", PaymentMethod.CASH),
    ("bank", PaymentMethod.BANK_TRANSFER),
    ("wire", PaymentMethod.BANK_TRANSFER),
    ("card", PaymentMethod.CARD),
    ("credit", PaymentMethod.CARD),
    ("debit", PaymentMethod.CARD),
    ("cheque", PaymentMethod.CHEQUE),
    ("check", PaymentMethod.CHEQUE),
    ("upi", PaymentMethod.UPI),
)


def _compact(value: str) -> str:
    return value.strip().lower().replace(" ", "").replace("_", "").replace("-", "")


def normalize_payment_method(
    payment_method: str | None,
    default: str = PaymentMethod.CASH.value,
) -> str:
    """
    Return the canonical payment method for ``payment_method``.

    Canonical values pass through unchanged.  Known spellings ("Bank
    Transfer", "credit-card", "Check") are mapped, then known prefixes
    ("Cash Payment Received").  Anything else returns ``default``.
    """
    if not payment_method:
        return default
    if payment_method in VALID_PAYMENT_METHODS:
        return payment_method

    compact = _compact(payment_method)
    if compact in _ALIASES:
        return _ALIASES[compact].value

    for prefix, method in _PREFIXES:
        if compact.startswith(prefix):
            return method.value

    logger.warning(
        "payment_method_not_normalized",
        extra={"payment_method": payment_method, "default": default},
    )
    return default


def is_valid_payment_method(payment_method: str | None) -> bool:
    return bool(payment_method) and payment_method in VALID_PAYMENT_METHODS
