"""
Compensation audit trail value objects.

A ``BackupMonth`` holds every ``BackupEntry`` written for one employee's
month partition, oldest first.  Entries are append-only: nothing in the
codebase rewrites or compacts an existing entry.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BackupChange:
    """One field of one day changing from ``old_value`` to ``new_value``.

    Values are JSON-shaped (str, number, bool, None) as they appear in the
    stored compensation document.
    """

    day: int
    field: str
    old_value: Any
    new_value: Any


@dataclass(frozen=True)
class BackupEntry:
    timestamp: str
    changes: tuple[BackupChange, ...]

    def changes_for_day(self, day: int) -> tuple[BackupChange, ...]:
        return tuple(c for c in self.changes if c.day == day)


@dataclass(frozen=True)
class BackupMonth:
    employee_id: str
    year: int
    month: int
    backups: tuple[BackupEntry, ...] = ()

    def find(self, timestamp: str) -> BackupEntry | None:
        for entry in self.backups:
            if entry.timestamp == timestamp:
                return entry
        return None

    def appended(self, entry: BackupEntry) -> "BackupMonth":
        return BackupMonth(
            employee_id=self.employee_id,
            year=self.year,
            month=self.month,
            backups=self.backups + (entry,),
        )
