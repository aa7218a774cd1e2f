"""
Module: rental_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      call session.add(), session.delete(), session.commit() or
      session.flush().
    - Session ownership: the caller owns the session and its transaction.
      Row locks taken by *_for_update queries last until the caller's
      transaction ends.

Unlike DTO-returning selectors elsewhere, lease account and invoice
selectors return ORM rows: the allocation engine mutates exactly the rows
it selected.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from rental_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Selectors accept a Session from the caller and perform read-only queries."""

    def __init__(self, session: Session):
        self.session = session
