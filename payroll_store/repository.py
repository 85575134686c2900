"""
Typed repository over a RecordStore.

Responsibility:
    Converts partition records to and from domain value objects so services
    never handle raw documents.

Architecture position:
    Store -- sits between services and whichever RecordStore backend is
    configured.  Holds no state besides the store.

Failure modes:
    - ``DocumentCorruptError`` when a stored record cannot be decoded.
    - Store errors (OSError, SQLAlchemy errors) propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from payroll_kernel.domain.backup import BackupEntry, BackupMonth
from payroll_kernel.domain.records import AttendanceDay, DayCompensation
from payroll_kernel.domain.sources import DeductionKind, DeductionSource
from payroll_kernel.domain.summary import PayrollSummary
from payroll_kernel.exceptions import DocumentCorruptError
from payroll_store import codecs
from payroll_store.base import RecordKind, RecordStore, document_key

T = TypeVar("T")

SOURCE_RECORD_KINDS: dict[DeductionKind, RecordKind] = {
    DeductionKind.CASH_ADVANCE: RecordKind.CASH_ADVANCE,
    DeductionKind.SHORT: RecordKind.SHORT,
    DeductionKind.LOAN: RecordKind.LOAN,
}

_SOURCE_DECODERS: dict[DeductionKind, Callable[[dict[str, Any]], DeductionSource]] = {
    DeductionKind.CASH_ADVANCE: codecs.cash_advance_from_record,
    DeductionKind.SHORT: codecs.short_from_record,
    DeductionKind.LOAN: codecs.loan_from_record,
}

_SOURCE_ENCODERS: dict[DeductionKind, Callable[[Any], dict[str, Any]]] = {
    DeductionKind.CASH_ADVANCE: codecs.cash_advance_to_record,
    DeductionKind.SHORT: codecs.short_to_record,
    DeductionKind.LOAN: codecs.loan_to_record,
}


class RecordRepository:
    """Domain-typed load/save over a RecordStore."""

    def __init__(self, store: RecordStore):
        self._store = store

    @property
    def store(self) -> RecordStore:
        return self._store

    def _decode(
        self,
        kind: RecordKind,
        employee_id: str,
        year: int,
        month: int,
        decoder: Callable[[dict[str, Any]], T],
    ) -> list[T]:
        decoded = []
        for record in self._store.load(employee_id, year, month, kind):
            try:
                decoded.append(decoder(record))
            except (KeyError, TypeError, ValueError) as exc:
                raise DocumentCorruptError(
                    document_key(kind, employee_id, year, month),
                    f"{type(exc).__name__}: {exc}",
                ) from exc
        return decoded

    # -- attendance & compensation -----------------------------------------

    def load_attendance(self, employee_id: str, year: int, month: int) -> list[AttendanceDay]:
        return self._decode(
            RecordKind.ATTENDANCE, employee_id, year, month, codecs.attendance_from_record
        )

    def save_attendance(
        self, employee_id: str, year: int, month: int, days: Iterable[AttendanceDay]
    ) -> None:
        self._store.save(
            employee_id,
            year,
            month,
            RecordKind.ATTENDANCE,
            [codecs.attendance_to_record(d) for d in days],
        )

    def load_compensations(
        self, employee_id: str, year: int, month: int
    ) -> list[DayCompensation]:
        return self._decode(
            RecordKind.COMPENSATION, employee_id, year, month, codecs.compensation_from_record
        )

    def save_compensations(
        self, employee_id: str, year: int, month: int, records: Iterable[DayCompensation]
    ) -> None:
        self._store.save(
            employee_id,
            year,
            month,
            RecordKind.COMPENSATION,
            [codecs.compensation_to_record(r) for r in records],
        )

    # -- deduction sources ---------------------------------------------------

    def load_sources(
        self, kind: DeductionKind, employee_id: str, year: int, month: int
    ) -> list[DeductionSource]:
        return self._decode(
            SOURCE_RECORD_KINDS[kind], employee_id, year, month, _SOURCE_DECODERS[kind]
        )

    def save_sources(
        self,
        kind: DeductionKind,
        employee_id: str,
        year: int,
        month: int,
        sources: Iterable[DeductionSource],
    ) -> None:
        encode = _SOURCE_ENCODERS[kind]
        self._store.save(
            employee_id, year, month, SOURCE_RECORD_KINDS[kind], [encode(s) for s in sources]
        )

    def source_partitions(self, kind: DeductionKind, employee_id: str) -> list[tuple[int, int]]:
        return self._store.partitions(employee_id, SOURCE_RECORD_KINDS[kind])

    # -- payroll summaries ---------------------------------------------------

    def load_summaries(self, employee_id: str, year: int, month: int) -> list[PayrollSummary]:
        return self._decode(
            RecordKind.PAYROLL, employee_id, year, month, codecs.summary_from_record
        )

    def save_summaries(
        self, employee_id: str, year: int, month: int, summaries: Iterable[PayrollSummary]
    ) -> None:
        self._store.save(
            employee_id,
            year,
            month,
            RecordKind.PAYROLL,
            [codecs.summary_to_record(s) for s in summaries],
        )

    # -- compensation backups ------------------------------------------------

    def load_backups(self, employee_id: str, year: int, month: int) -> BackupMonth:
        entries = self._decode(
            RecordKind.COMPENSATION_BACKUP,
            employee_id,
            year,
            month,
            codecs.backup_entry_from_record,
        )
        return BackupMonth(
            employee_id=employee_id, year=year, month=month, backups=tuple(entries)
        )

    def append_backup(
        self, employee_id: str, year: int, month: int, entry: BackupEntry
    ) -> BackupMonth:
        updated = self.load_backups(employee_id, year, month).appended(entry)
        self._store.save(
            employee_id,
            year,
            month,
            RecordKind.COMPENSATION_BACKUP,
            [codecs.backup_entry_to_record(e) for e in updated.backups],
        )
        return updated
