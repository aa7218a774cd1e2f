"""
Typed exception hierarchy for the rental kernel.

Every error has a typed class (catch by type, not by message), a ``code``
class attribute that is safe to hand to an API layer, and structured
attributes instead of data buried in the message string.

    RentalKernelError (base)
    |
    +-- LeaseAccountError
    |   +-- LeaseAccountNotFoundError
    |   +-- InvalidAdvanceRentError
    |
    +-- InvoiceError
    |   +-- MonthlyRentNotSetError
    |
    +-- LandlordError
    |   +-- LandlordNotFoundError
    |   +-- InvalidSettingError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Validation errors raised inside a batch (MonthlyRentNotSetError for one
lease account) are converted to per-item data by the caller; they never
abort the batch.  Store errors (sqlalchemy.exc.*) are not wrapped here.
"""


class RentalKernelError(Exception):
    """
    Base exception for all rental kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "RENTAL_KERNEL_ERROR"


# Lease account exceptions


class LeaseAccountError(RentalKernelError):
    """Base exception for lease account errors."""

    code: str = "LEASE_ACCOUNT_ERROR"


class LeaseAccountNotFoundError(LeaseAccountError):
    """Lease account with the given ID does not exist."""

    code: str = "LEASE_ACCOUNT_NOT_FOUND"

    def __init__(self, lease_account_id: str):
        self.lease_account_id = lease_account_id
        super().__init__(f"Lease account not found: {lease_account_id}")


class InvalidAdvanceRentError(LeaseAccountError):
    """Advance rent collection was given negative months or amount."""

    code: str = "INVALID_ADVANCE_RENT"

    def __init__(self, lease_account_id: str, months: int, amount: str):
        self.lease_account_id = lease_account_id
        self.months = months
        self.amount = amount
        super().__init__(
            f"Invalid advance rent for lease account {lease_account_id}: "
            f"months={months}, amount={amount}"
        )


# Invoice exceptions


class InvoiceError(RentalKernelError):
    """Base exception for rent invoice errors."""

    code: str = "INVOICE_ERROR"


class MonthlyRentNotSetError(InvoiceError):
    """An invoice cannot be generated for a lease account without rent."""

    code: str = "MONTHLY_RENT_NOT_SET"

    def __init__(self, lease_account_id: str):
        self.lease_account_id = lease_account_id
        super().__init__("Monthly rent is not set or is zero")


# Landlord exceptions


class LandlordError(RentalKernelError):
    """Base exception for landlord errors."""

    code: str = "LANDLORD_ERROR"


class LandlordNotFoundError(LandlordError):
    """Landlord with the given ID does not exist."""

    code: str = "LANDLORD_NOT_FOUND"

    def __init__(self, landlord_id: str):
        self.landlord_id = landlord_id
        super().__init__(f"Landlord not found: {landlord_id}")


class InvalidSettingError(LandlordError):
    """A settings key could not be written."""

    code: str = "INVALID_SETTING"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid setting '{key}': {reason}")


# Immutability exceptions


class ImmutabilityError(RentalKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Ledger entries are immutable from creation.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
