"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock interface so that the ledger never calls
    ``datetime.now()`` directly.  Overdue selection and successor due dates
    are computed from the injected clock only.

Architecture position:
    Domain -- pure functional core, zero I/O (except SystemClock, which is
    the one sanctioned I/O boundary for time).

Failure modes:
    - DeterministicClock rejects naive datetimes with ValueError.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time must receive a Clock instance
        via constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """
    Production clock that returns actual system time in UTC.

    Non-goals:
        Not suitable for deterministic testing.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        """
        Initialize with optional fixed time.

        Args:
            fixed_time: If provided, clock starts at this time.
                        If None, uses a default epoch time.
        """
        fixed_time = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        _require_aware(fixed_time)
        self._fixed_time = fixed_time
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        _require_aware(time)
        self._fixed_time = time
        self._offset = timedelta(0)

    def advance(self, seconds: int = 0, *, days: int = 0) -> datetime:
        """Advance the clock and return the new time."""
        self._offset += timedelta(days=days, seconds=seconds)
        return self.now()


def _require_aware(value: datetime) -> None:
    if value.tzinfo is None:
        raise ValueError("Clock times must be timezone-aware")
