"""
Clock -- Injectable time source.

Responsibility:
    Provides a clock interface so that value-object factories and services
    never call ``datetime.now()`` or ``date.today()`` directly. Deadlines,
    review dates and identifiers stamped with dates all flow from here.

Architecture position:
    Kernel -- pure core. ``SystemClock`` is the one sanctioned I/O boundary
    for time.

Failure modes:
    - ``DeterministicClock`` rejects naive datetimes.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Services that need the current time receive a Clock through their
        constructor.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``now_utc()`` returns a UTC-normalized ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    @abstractmethod
    def now_utc(self) -> datetime:
        """Get the current UTC time."""
        ...

    def today(self) -> date:
        """Calendar date of ``now()`` in the clock's own timezone."""
        return self.now().date()


class SystemClock(Clock):
    """Production clock that returns actual system time (UTC)."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def now_utc(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
        - ``tick()`` advances by exactly 1 second and returns the new time.
    """

    def __init__(self, fixed_time: datetime | None = None):
        fixed_time = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        self._require_aware(fixed_time)
        self._fixed_time = fixed_time
        self._advance = timedelta(0)

    @staticmethod
    def _require_aware(value: datetime) -> None:
        if value.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")

    def now(self) -> datetime:
        return self._fixed_time + self._advance

    def now_utc(self) -> datetime:
        return self.now().astimezone(UTC)

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._require_aware(time)
        self._fixed_time = time
        self._advance = timedelta(0)

    def advance(self, seconds: int = 0, *, days: int = 0, hours: int = 0, minutes: int = 0) -> None:
        """Move the clock forward."""
        self._advance += timedelta(days=days, hours=hours, minutes=minutes, seconds=seconds)

    def tick(self) -> datetime:
        """Advance by 1 second and return new time."""
        self.advance(1)
        return self.now()
