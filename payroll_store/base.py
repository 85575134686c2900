"""
Record store protocol, record kinds and storage formats.

Contract:
    A RecordStore persists one document per (employee, year, month, kind).
    ``load`` returns the partition's records as JSON-shaped dicts (empty list
    when the partition does not exist); ``save`` replaces the partition's
    records wholesale.  Read-modify-write is not atomic; callers serialize
    mutations per partition.

Architecture: payroll_store. Backends: ``FileRecordStore`` (JSON / legacy CSV
files) and ``SqlDocumentStore`` (one row per document key).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class RecordKind(str, Enum):
    ATTENDANCE = "attendance"
    COMPENSATION = "compensation"
    COMPENSATION_BACKUP = "compensation_backup"
    CASH_ADVANCE = "cash_advance"
    SHORT = "short"
    LOAN = "loan"
    PAYROLL = "payroll"


class StorageFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


@dataclass(frozen=True)
class KindLayout:
    """Where a kind lives on disk and under which key its JSON document nests records."""

    directory: str
    suffix: str
    collection: str

    @property
    def day_keyed(self) -> bool:
        return self.collection == "days"

    def file_name(self, year: int, month: int, fmt: StorageFormat) -> str:
        return f"{year}_{month}_{self.suffix}.{fmt.value}"


LAYOUTS: dict[RecordKind, KindLayout] = {
    RecordKind.ATTENDANCE: KindLayout("attendances", "attendance", "days"),
    RecordKind.COMPENSATION: KindLayout("attendances", "compensation", "days"),
    RecordKind.COMPENSATION_BACKUP: KindLayout(
        "attendances", "compensation_backup", "backups"
    ),
    RecordKind.CASH_ADVANCE: KindLayout("cashAdvances", "cashAdvances", "advances"),
    RecordKind.SHORT: KindLayout("shorts", "shorts", "shorts"),
    RecordKind.LOAN: KindLayout("loans", "loans", "loans"),
    RecordKind.PAYROLL: KindLayout("payrolls", "payroll", "payrolls"),
}

DB_ROOT = "SweldoDB"


def document_key(kind: RecordKind, employee_id: str, year: int, month: int) -> str:
    """Remote document key: ``{kind}_{employeeId}_{year}_{month}``."""
    return f"{kind.value}_{employee_id}_{year}_{month}"


@runtime_checkable
class RecordStore(Protocol):
    """Uniform partition persistence consumed by every service."""

    def load(
        self, employee_id: str, year: int, month: int, kind: RecordKind
    ) -> list[dict[str, Any]]:
        ...

    def save(
        self,
        employee_id: str,
        year: int,
        month: int,
        kind: RecordKind,
        records: list[dict[str, Any]],
    ) -> None:
        ...

    def exists(self, employee_id: str, year: int, month: int, kind: RecordKind) -> bool:
        ...

    def partitions(self, employee_id: str, kind: RecordKind) -> list[tuple[int, int]]:
        """Every (year, month) holding a document of ``kind``, oldest first."""
        ...
