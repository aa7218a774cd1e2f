from rental_batch.services.generator import AutoInvoiceGenerator
from rental_batch.services.scheduler import AutoInvoiceScheduler

__all__ = ["AutoInvoiceGenerator", "AutoInvoiceScheduler"]
