"""
Injectable time source.

The status machine, the payment ledger and the document service stamp
``created_at`` / ``updated_at`` and trace timestamps from a ``Clock`` they
are given, never from ``datetime.now()``, so tests can pin time exactly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` keeps returning the same instant until ``advance()`` is
    called, so two stamps taken in one operation are equal.
    """

    DEFAULT_START = datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: datetime | None = None):
        if start is not None and start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start")
        self._current = start or self.DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        """Move forward ``seconds`` and return the new instant."""
        self._current += timedelta(seconds=seconds)
        return self._current
