"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing numbers for named sequences (one per
    landlord and month for rent invoice numbers).  Uses a dedicated counter
    table with row-level locking (``SELECT ... FOR UPDATE``) so two
    concurrent generator runs never hand out the same number.

Architecture position:
    Kernel > Services.  Called by InvoiceNumberingService.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of truth for
      the next value.  MAX(invoice_number) + 1 is never used.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  A rollback (including a SAVEPOINT rollback in
      the generator) returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from rental_kernel.db.base import Base
from rental_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    # e.g. "rent_invoice:<landlord uuid>:202403"
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Does not commit; the caller controls transaction boundaries.

    Usage:
        seq = SequenceService(session).next_value("rent_invoice:...")
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        # populate_existing refreshes an identity-map copy without
        # expiring unrelated pending changes in the session.
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the sequence row (creating it on first use), increment it and
        return the new value (always > 0).
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # Another transaction may create the same counter concurrently.
            # The savepoint keeps a lost race from rolling back other work.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
