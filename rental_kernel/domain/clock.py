"""
Clock -- Injectable time source.

Responsibility:
    Lets services, the invoice generator and the scheduler ask "what day is
    it" without calling ``datetime.now()`` or ``date.today()`` directly, so
    schedules and default invoice dates can be pinned in tests.

Architecture position:
    Kernel > Domain -- pure code, zero I/O (except SystemClock, which is the
    one sanctioned I/O boundary for time).

Failure modes:
    (none)
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Every component that needs the current time receives a Clock via
        constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` is ``now().date()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def now_utc(self) -> datetime:
        """Get the current UTC time."""
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        """Get the current calendar date in the clock's timezone."""
        return self.now().date()


class SystemClock(Clock):
    """Production clock returning the real UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()`` or
    ``set_time()`` is called.  A naive ``fixed_time`` is taken to be UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        fixed_time = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        if fixed_time.tzinfo is None:
            fixed_time = fixed_time.replace(tzinfo=timezone.utc)
        self._fixed_time = fixed_time
        self._advance_seconds = 0

    @classmethod
    def on(cls, day: date, hour: int = 9) -> "DeterministicClock":
        """Clock pinned to ``hour``:00 UTC on ``day``."""
        return cls(datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        if time.tzinfo is None:
            time = time.replace(tzinfo=timezone.utc)
        self._fixed_time = time
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._advance_seconds += seconds

    def advance_days(self, days: int) -> None:
        self.advance(days * 86400)
