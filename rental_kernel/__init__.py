"""
Rental Kernel

Financial reconciliation core for landlord rent management:
- Advance rent coverage and allocation
- Append-only ledger of collections
- Per-landlord settings and invoice numbering
- Transactional, auditable mutations
"""

__version__ = "0.1.0"
