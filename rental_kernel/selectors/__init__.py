"""Read-only query selectors."""

from rental_kernel.selectors.invoice_selector import InvoiceSelector
from rental_kernel.selectors.lease_account_selector import LeaseAccountSelector

__all__ = ["InvoiceSelector", "LeaseAccountSelector"]
