"""
Automated rent invoice generation.

    domain/    pure schedule evaluation and frozen result types
    services/  AutoInvoiceGenerator (one landlord) and
               AutoInvoiceScheduler (every landlord due today)
"""
