"""
BaseService -- common constructor and transaction contract for kernel services.

Responsibility:
    Every rental kernel service receives a SQLAlchemy ``Session`` from its
    caller.  Services that implement a user-facing operation (applying or
    collecting advance rent) own the commit when constructed with
    ``auto_commit=True``; with ``auto_commit=False`` they only flush and
    leave commit/rollback to the enclosing unit of work (the invoice
    generator's per-landlord transaction).

Invariants enforced:
    - A failed operation never leaves a half-applied change behind: with
      auto_commit the session is rolled back before the exception
      propagates; without it the caller's rollback covers the flush.
"""

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from rental_kernel.db.base import SYSTEM_ACTOR_ID, Base
from rental_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a ``Session`` from the caller, persists with
        ``session.flush()`` and commits only inside ``_unit_of_work()``
        when ``auto_commit`` is set.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or SYSTEM_ACTOR_ID
        self._auto_commit = auto_commit

    @property
    def auto_commit(self) -> bool:
        return self._auto_commit

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        """Flush on exit; commit or roll back when auto_commit is set."""
        try:
            yield
            self.session.flush()
            if self._auto_commit:
                self.session.commit()
        except Exception:
            if self._auto_commit:
                self.session.rollback()
            raise
