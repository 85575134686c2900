"""
payroll_services.format_migrator -- Legacy CSV partitions to JSON documents.

Responsibility:
    Walks ``SweldoDB/attendances/<employee>/`` and converts every
    ``{year}_{month}_compensation.csv``, ``..._compensation_backup.csv`` and
    ``..._attendance.csv`` into its JSON month document.

Architecture position:
    Services -- one-shot maintenance operation over ``FileRecordStore``.

Invariants enforced:
    - Idempotent: a partition whose JSON document exists is skipped without
      any write, so a second run changes nothing.
    - Source CSV files are never deleted by ``migrate()``; only
      ``cleanup_legacy_files()`` removes them.
    - Backup rows are grouped by ``timestamp`` into one entry each; old
      values are unrecoverable and stored as null.

Failure modes:
    - MigrationRowError: a row is empty or cannot be decoded.  Logged,
      counted, and the row skipped.
    - A file that cannot be read at all is logged and recorded in
      ``MigrationReport.errors``; the walk continues.
"""

from __future__ import annotations

import csv
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from payroll_kernel.domain.clock import Clock
from payroll_kernel.exceptions import (
    DocumentCorruptError,
    MigrationRowError,
    PayrollKernelError,
)
from payroll_kernel.logging_config import get_logger
from payroll_store import codecs
from payroll_store.base import DB_ROOT, LAYOUTS, RecordKind, StorageFormat
from payroll_store.documents import backup_rows_to_entries, rows_to_records
from payroll_store.file_store import FileRecordStore

logger = get_logger("services.format_migrator")

_CSV_ENCODING = "utf-8-sig"

MIGRATED_KINDS = (
    RecordKind.ATTENDANCE,
    RecordKind.COMPENSATION,
    RecordKind.COMPENSATION_BACKUP,
)

_LEGACY_FILE = re.compile(
    r"^(\d+)_(\d+)_("
    + "|".join(re.escape(LAYOUTS[k].suffix) for k in MIGRATED_KINDS)
    + r")\.csv$"
)
_KIND_BY_SUFFIX = {LAYOUTS[k].suffix: k for k in MIGRATED_KINDS}

_ROW_CODECS: dict[RecordKind, tuple[Callable[[dict[str, Any]], Any], Callable[[Any], dict[str, Any]]]] = {
    RecordKind.ATTENDANCE: (codecs.attendance_from_record, codecs.attendance_to_record),
    RecordKind.COMPENSATION: (
        codecs.compensation_from_record,
        codecs.compensation_to_record,
    ),
}


@dataclass(frozen=True)
class MigrationReport:
    files_migrated: tuple[str, ...] = ()
    files_skipped: tuple[str, ...] = ()
    rows_skipped: int = 0
    row_errors: tuple[MigrationRowError, ...] = ()
    errors: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class _LegacyFile:
    path: Path
    employee_id: str
    year: int
    month: int
    kind: RecordKind


class FormatMigrator:
    def __init__(self, root: str | Path, clock: Clock | None = None):
        self._store = FileRecordStore(root, write_format=StorageFormat.JSON, clock=clock)

    @property
    def attendances_dir(self) -> Path:
        return self._store.root / DB_ROOT / LAYOUTS[RecordKind.COMPENSATION].directory

    def legacy_files(self) -> list[_LegacyFile]:
        base = self.attendances_dir
        if not base.is_dir():
            return []
        found = []
        for employee_dir in sorted(p for p in base.iterdir() if p.is_dir()):
            for path in sorted(employee_dir.iterdir()):
                match = _LEGACY_FILE.match(path.name)
                if match is None or not path.is_file():
                    continue
                found.append(
                    _LegacyFile(
                        path=path,
                        employee_id=employee_dir.name,
                        year=int(match.group(1)),
                        month=int(match.group(2)),
                        kind=_KIND_BY_SUFFIX[match.group(3)],
                    )
                )
        return found

    def _json_target(self, legacy: _LegacyFile) -> Path:
        return self._store.path_for(
            legacy.employee_id, legacy.year, legacy.month, legacy.kind, StorageFormat.JSON
        )

    def migrate(self) -> MigrationReport:
        migrated: list[str] = []
        skipped: list[str] = []
        row_errors: list[MigrationRowError] = []
        errors: list[tuple[str, str]] = []

        for legacy in self.legacy_files():
            if self._json_target(legacy).exists():
                skipped.append(str(legacy.path))
                logger.debug("migration_file_skipped", extra={"path": str(legacy.path)})
                continue
            try:
                records, bad_rows = self._convert(legacy)
                self._store.save(
                    legacy.employee_id, legacy.year, legacy.month, legacy.kind, records
                )
            except (OSError, UnicodeDecodeError, csv.Error, PayrollKernelError) as exc:
                logger.error(
                    "migration_file_failed",
                    extra={"path": str(legacy.path), "kind": legacy.kind.value},
                    exc_info=True,
                )
                errors.append((str(legacy.path), str(exc)))
                continue

            row_errors.extend(bad_rows)
            migrated.append(str(legacy.path))
            logger.info(
                "migration_file_converted",
                extra={
                    "path": str(legacy.path),
                    "kind": legacy.kind.value,
                    "records": len(records),
                    "rows_skipped": len(bad_rows),
                },
            )

        report = MigrationReport(
            files_migrated=tuple(migrated),
            files_skipped=tuple(skipped),
            rows_skipped=len(row_errors),
            row_errors=tuple(row_errors),
            errors=tuple(errors),
        )
        logger.info(
            "migration_completed",
            extra={
                "files_migrated": len(report.files_migrated),
                "files_skipped": len(report.files_skipped),
                "rows_skipped": report.rows_skipped,
                "file_errors": len(report.errors),
            },
        )
        return report

    def _convert(
        self, legacy: _LegacyFile
    ) -> tuple[list[dict[str, Any]], list[MigrationRowError]]:
        with legacy.path.open("r", encoding=_CSV_ENCODING, newline="") as f:
            rows = list(csv.DictReader(f))

        if legacy.kind == RecordKind.COMPENSATION_BACKUP:
            entries, skipped = backup_rows_to_entries(rows)
            bad = [MigrationRowError(str(legacy.path), n, reason) for n, reason in skipped]
            for error in bad:
                self._log_row_error(error)
            return entries, bad

        decode, encode = _ROW_CODECS[legacy.kind]
        records: list[dict[str, Any]] = []
        bad: list[MigrationRowError] = []
        for row_number, row in enumerate(rows, start=2):
            try:
                records.append(encode(decode(self._row_record(legacy, row, row_number))))
            except (KeyError, TypeError, ValueError, DocumentCorruptError) as exc:
                error = MigrationRowError(
                    str(legacy.path), row_number, f"{type(exc).__name__}: {exc}"
                )
                self._log_row_error(error)
                bad.append(error)
        return records, bad

    @staticmethod
    def _row_record(legacy: _LegacyFile, row: dict[str, Any], row_number: int) -> dict[str, Any]:
        converted = rows_to_records(legacy.kind, [row], f"{legacy.path}:{row_number}")
        if not converted:
            raise ValueError("empty row")
        record = converted[0]
        record.setdefault("employeeId", legacy.employee_id)
        record.setdefault("year", legacy.year)
        record.setdefault("month", legacy.month)
        return record

    @staticmethod
    def _log_row_error(error: MigrationRowError) -> None:
        logger.warning(
            "migration_row_skipped",
            extra={
                "path": error.path,
                "row_number": error.row_number,
                "reason": error.reason,
                "error_code": error.code,
            },
        )

    def cleanup_legacy_files(self) -> list[Path]:
        """Delete legacy CSV files whose JSON counterpart exists."""
        removed = []
        for legacy in self.legacy_files():
            if self._json_target(legacy).exists():
                legacy.path.unlink()
                removed.append(legacy.path)
                logger.info("legacy_file_removed", extra={"path": str(legacy.path)})
        return removed
