"""
ORM-level enforcement of the append-only ledger.

LedgerEntry rows are written once per monetary event (an advance rent
collection) and are never changed afterwards.  Corrections are new entries.

    Entity       | Immutable when     | Reason
    -------------|--------------------|-----------------------------------
    LedgerEntry  | ALWAYS             | Reporting reads a stable history

Only updated_at / updated_by_id may change; they are audit metadata.

Usage (done by init_engine_from_url() and create_tables()):

    from rental_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()
"""

from sqlalchemy import event, inspect

from rental_kernel.exceptions import ImmutabilityViolationError
from rental_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _check_ledger_entry_immutability(mapper, connection, target):
    """Block any UPDATE of a LedgerEntry that touches a financial field."""
    state = inspect(target)
    changed = [
        attr.key
        for attr in state.attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]
    if not changed:
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "LedgerEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "fields": changed,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerEntry",
        entity_id=str(target.id),
        reason=f"ledger entries are append-only (attempted to change {', '.join(changed)})",
    )


def _check_ledger_entry_delete(mapper, connection, target):
    """Block DELETE of a LedgerEntry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "LedgerEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerEntry",
        entity_id=str(target.id),
        reason="ledger entries cannot be deleted",
    )


def register_immutability_listeners() -> None:
    """Register ledger immutability listeners (idempotent)."""
    from rental_kernel.models.ledger_entry import LedgerEntry

    if not event.contains(LedgerEntry, "before_update", _check_ledger_entry_immutability):
        event.listen(LedgerEntry, "before_update", _check_ledger_entry_immutability)
    if not event.contains(LedgerEntry, "before_delete", _check_ledger_entry_delete):
        event.listen(LedgerEntry, "before_delete", _check_ledger_entry_delete)
