"""
Clock -- Injectable time source.

Responsibility:
    Supplies "now" to every component that stamps records: backup entry
    timestamps, source ``updated_at`` values, migration metadata.  Service and
    engine code never call ``datetime.now()`` directly.

Architecture position:
    Kernel > Domain -- pure, except SystemClock, which is the only place the
    wall clock is read.

Failure modes:
    None.

Audit relevance:
    Backup entries are keyed by timestamp.  A deterministic clock makes the
    audit trail reproducible in tests, and ``tick()`` guarantees two saves in
    one test produce distinct backup keys.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current UTC time."""
        ...

    def today(self):
        """Calendar date of ``now()``."""
        return self.now().date()


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``advance()``, ``tick()`` or
    ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        self._advance_seconds += seconds

    def tick(self) -> datetime:
        """Advance by 1 second and return the new time."""
        self.advance(1)
        return self.now()
