"""
File record store -- one JSON (or legacy CSV) document per partition.

Layout:
    {root}/SweldoDB/{directory}/{employee_id}/{year}_{month}_{suffix}.{json|csv}

Format selection is per partition, by file presence:
    - read: JSON when the JSON file exists, else CSV, else empty;
    - write: JSON when the JSON file exists; CSV only when the store was
      built with ``StorageFormat.CSV`` and no JSON file exists; otherwise
      the store's ``write_format``.

Uses csv.DictReader with utf-8-sig so a BOM written by spreadsheet tools is
stripped.
"""

from __future__ import annotations

import csv
import io
import re
from pathlib import Path
from typing import Any

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.logging_config import get_logger
from payroll_store.base import DB_ROOT, LAYOUTS, RecordKind, StorageFormat
from payroll_store.documents import (
    backup_entries_to_rows,
    backup_rows_to_entries,
    build_document,
    dump_json,
    parse_json_text,
    read_document,
    records_to_rows,
    rows_to_records,
)

logger = get_logger("store.file")

_CSV_ENCODING = "utf-8-sig"


class FileRecordStore:
    """RecordStore over the local ``SweldoDB`` directory tree."""

    def __init__(
        self,
        root: str | Path,
        write_format: StorageFormat = StorageFormat.JSON,
        clock: Clock | None = None,
    ):
        self._root = Path(root)
        self._write_format = StorageFormat(write_format)
        self._clock = clock or SystemClock()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def write_format(self) -> StorageFormat:
        return self._write_format

    def employee_dir(self, employee_id: str, kind: RecordKind) -> Path:
        return self._root / DB_ROOT / LAYOUTS[kind].directory / employee_id

    def path_for(
        self,
        employee_id: str,
        year: int,
        month: int,
        kind: RecordKind,
        fmt: StorageFormat,
    ) -> Path:
        return self.employee_dir(employee_id, kind) / LAYOUTS[kind].file_name(year, month, fmt)

    # -- RecordStore --------------------------------------------------------

    def load(
        self, employee_id: str, year: int, month: int, kind: RecordKind
    ) -> list[dict[str, Any]]:
        json_path = self.path_for(employee_id, year, month, kind, StorageFormat.JSON)
        if json_path.exists():
            text = json_path.read_text(encoding="utf-8")
            document = parse_json_text(text, str(json_path))
            if not document:
                return []
            return read_document(kind, document, employee_id, year, month, str(json_path))

        csv_path = self.path_for(employee_id, year, month, kind, StorageFormat.CSV)
        if csv_path.exists():
            return self._read_csv(csv_path, kind)
        return []

    def save(
        self,
        employee_id: str,
        year: int,
        month: int,
        kind: RecordKind,
        records: list[dict[str, Any]],
    ) -> None:
        fmt = self._resolve_write_format(employee_id, year, month, kind)
        path = self.path_for(employee_id, year, month, kind, fmt)
        path.parent.mkdir(parents=True, exist_ok=True)

        if fmt == StorageFormat.JSON:
            document = build_document(
                kind, employee_id, year, month, records, self._clock.now()
            )
            path.write_text(dump_json(document), encoding="utf-8")
        else:
            path.write_text(
                self._render_csv(kind, employee_id, year, month, records),
                encoding="utf-8",
            )

        logger.debug(
            "partition_saved",
            extra={
                "kind": kind.value,
                "employee_id": employee_id,
                "year": year,
                "month": month,
                "format": fmt.value,
                "record_count": len(records),
            },
        )

    def exists(self, employee_id: str, year: int, month: int, kind: RecordKind) -> bool:
        return any(
            self.path_for(employee_id, year, month, kind, fmt).exists()
            for fmt in StorageFormat
        )

    def partitions(self, employee_id: str, kind: RecordKind) -> list[tuple[int, int]]:
        directory = self.employee_dir(employee_id, kind)
        if not directory.is_dir():
            return []
        pattern = re.compile(
            rf"^(\d+)_(\d+)_{re.escape(LAYOUTS[kind].suffix)}\.(json|csv)$"
        )
        found: set[tuple[int, int]] = set()
        for entry in directory.iterdir():
            match = pattern.match(entry.name)
            if match and entry.is_file():
                found.add((int(match.group(1)), int(match.group(2))))
        return sorted(found)

    # -- internals ----------------------------------------------------------

    def _resolve_write_format(
        self, employee_id: str, year: int, month: int, kind: RecordKind
    ) -> StorageFormat:
        if self.path_for(employee_id, year, month, kind, StorageFormat.JSON).exists():
            return StorageFormat.JSON
        if self._write_format == StorageFormat.CSV:
            return StorageFormat.CSV
        return StorageFormat.JSON

    def _read_csv(self, path: Path, kind: RecordKind) -> list[dict[str, Any]]:
        with path.open("r", encoding=_CSV_ENCODING, newline="") as f:
            reader = csv.DictReader(f)
            if kind == RecordKind.COMPENSATION_BACKUP:
                entries, skipped = backup_rows_to_entries(reader)
                for row_number, reason in skipped:
                    logger.warning(
                        "backup_csv_row_skipped",
                        extra={"path": str(path), "row_number": row_number, "reason": reason},
                    )
                return entries
            return rows_to_records(kind, reader, str(path))

    @staticmethod
    def _render_csv(
        kind: RecordKind,
        employee_id: str,
        year: int,
        month: int,
        records: list[dict[str, Any]],
    ) -> str:
        if kind == RecordKind.COMPENSATION_BACKUP:
            fieldnames, rows = backup_entries_to_rows(records, employee_id, year, month)
        else:
            fieldnames, rows = records_to_rows(records)
        buffer = io.StringIO()
        if fieldnames:
            writer = csv.DictWriter(buffer, fieldnames=fieldnames, restval="")
            writer.writeheader()
            writer.writerows(rows)
        return buffer.getvalue()
