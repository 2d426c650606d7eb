"""
Clock -- injectable time source for batch hosts.

Responsibility:
    Wall-clock timestamps (``now``) for run and item results, and a
    monotonic reading (``monotonic``) for durations.  Hosts never read the
    system clock directly, so results are reproducible in tests.
"""

import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """
    Abstract time source.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``monotonic()`` never goes backwards.
    """

    @abstractmethod
    def now(self) -> datetime: ...

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds from an arbitrary fixed origin, for measuring durations."""


class SystemClock(Clock):
    """System time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` and ``monotonic()`` move together: ``advance(2.5)`` adds 2.5
    seconds to both.
    """

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __init__(self, start: datetime | None = None):
        self._start = start or self.DEFAULT_START
        self._elapsed = 0.0

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def monotonic(self) -> float:
        return self._elapsed

    def set_time(self, start: datetime) -> None:
        """Jump wall time to ``start``; the monotonic reading keeps its value."""
        self._start = start - timedelta(seconds=self._elapsed)

    def advance(self, seconds: float = 1.0) -> None:
        if seconds < 0:
            raise ValueError("A monotonic clock cannot move backwards")
        self._elapsed += seconds

    def tick(self) -> datetime:
        """Advance by one second and return the new time."""
        self.advance(1.0)
        return self.now()
