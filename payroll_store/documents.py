"""
Partition document shapes (JSON month documents and flat CSV rows).

JSON month documents:
    {"meta": {employeeId, year, month, lastModified}, "<collection>": [...]}
    Day-keyed kinds use ``"days": {"<day>": {...}}`` so a day appears at
    most once per partition.  Backup documents have no meta block:
    {employeeId, year, month, backups: [...]}.

CSV rows:
    One row per record with a header line.  Nested values (installment
    details, loan deductions, summary breakdowns) are JSON text in their
    cell.  Backup CSVs are the legacy flat layout: one row per
    (timestamp, day) with key columns plus one column per changed field.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from payroll_kernel.exceptions import DocumentCorruptError
from payroll_store.base import LAYOUTS, RecordKind

DAY_KEYS = ("employeeId", "year", "month", "day")
BACKUP_KEY_COLUMNS = ("timestamp", "day", "employeeId", "month", "year")

NESTED_FIELDS: dict[RecordKind, frozenset[str]] = {
    RecordKind.CASH_ADVANCE: frozenset({"installmentDetails"}),
    RecordKind.LOAN: frozenset({"deductions"}),
    RecordKind.PAYROLL: frozenset(
        {
            "deductions",
            "cashAdvanceIDs",
            "shortIDs",
            "loanDeductionIds",
            "cashAdvanceAmounts",
            "shortAmounts",
        }
    ),
}


# ---------------------------------------------------------------------------
# JSON documents
# ---------------------------------------------------------------------------


def build_document(
    kind: RecordKind,
    employee_id: str,
    year: int,
    month: int,
    records: list[dict[str, Any]],
    last_modified: datetime,
) -> dict[str, Any]:
    layout = LAYOUTS[kind]
    if kind == RecordKind.COMPENSATION_BACKUP:
        return {
            "employeeId": employee_id,
            "year": year,
            "month": month,
            "backups": list(records),
        }

    meta = {
        "employeeId": employee_id,
        "year": year,
        "month": month,
        "lastModified": last_modified.isoformat(),
    }
    if layout.day_keyed:
        days: dict[str, dict[str, Any]] = {}
        for record in sorted(records, key=lambda r: int(r["day"])):
            days[str(int(record["day"]))] = {
                k: v for k, v in record.items() if k not in DAY_KEYS
            }
        return {"meta": meta, "days": days}
    return {"meta": meta, layout.collection: list(records)}


def read_document(
    kind: RecordKind,
    document: Any,
    employee_id: str,
    year: int,
    month: int,
    location: str,
) -> list[dict[str, Any]]:
    """Records held by a parsed JSON document."""
    if not isinstance(document, dict):
        raise DocumentCorruptError(location, "document root is not an object")
    layout = LAYOUTS[kind]

    if layout.day_keyed:
        days = document.get("days")
        if days is None:
            days = {}
        if not isinstance(days, dict):
            raise DocumentCorruptError(location, "'days' is not an object")
        meta = document.get("meta") or {}
        records = []
        for day_text, data in days.items():
            if not isinstance(data, dict):
                raise DocumentCorruptError(location, f"day {day_text} is not an object")
            try:
                day = int(day_text)
            except ValueError:
                raise DocumentCorruptError(location, f"day key {day_text!r} is not an integer") from None
            records.append(
                {
                    **data,
                    "employeeId": meta.get("employeeId", employee_id),
                    "year": meta.get("year", year),
                    "month": meta.get("month", month),
                    "day": day,
                }
            )
        records.sort(key=lambda r: r["day"])
        return records

    items = document.get(layout.collection)
    if items is None:
        items = []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise DocumentCorruptError(location, f"'{layout.collection}' is not a list of objects")
    return list(items)


def parse_json_text(text: str, location: str) -> Any:
    """Parse a stored JSON document; blank text is an empty document."""
    if not text.strip():
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentCorruptError(location, str(exc)) from exc


def dump_json(document: dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# CSV rows
# ---------------------------------------------------------------------------


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def records_to_rows(
    records: list[dict[str, Any]],
) -> tuple[list[str], list[dict[str, str]]]:
    """Header and string rows for a non-backup kind."""
    fieldnames: list[str] = []
    for record in records:
        for key in record:
            if key not in fieldnames:
                fieldnames.append(key)
    rows = [{name: _cell(record.get(name)) for name in fieldnames} for record in records]
    return fieldnames, rows


def rows_to_records(
    kind: RecordKind, rows: Iterable[dict[str, str | None]], location: str
) -> list[dict[str, Any]]:
    """Inverse of ``records_to_rows``; blank cells become absent fields."""
    nested = NESTED_FIELDS.get(kind, frozenset())
    records = []
    for row in rows:
        record: dict[str, Any] = {}
        for key, value in row.items():
            if key is None or value is None or not str(value).strip():
                continue
            if key in nested:
                try:
                    record[key] = json.loads(value)
                except json.JSONDecodeError as exc:
                    raise DocumentCorruptError(location, f"column {key}: {exc}") from exc
            else:
                record[key] = value
        if record:
            records.append(record)
    return records


def backup_entries_to_rows(
    entries: list[dict[str, Any]], employee_id: str, year: int, month: int
) -> tuple[list[str], list[dict[str, str]]]:
    """Flatten backup entries into the legacy one-row-per-(timestamp, day) layout.

    Old values cannot be represented and are dropped.
    """
    fieldnames = list(BACKUP_KEY_COLUMNS)
    rows: list[dict[str, str]] = []
    for entry in entries:
        by_day: dict[int, dict[str, str]] = {}
        for change in entry.get("changes", []):
            day = int(change["day"])
            row = by_day.setdefault(
                day,
                {
                    "timestamp": entry["timestamp"],
                    "day": str(day),
                    "employeeId": employee_id,
                    "month": str(month),
                    "year": str(year),
                },
            )
            row[change["field"]] = _cell(change.get("newValue"))
            if change["field"] not in fieldnames:
                fieldnames.append(change["field"])
        rows.extend(by_day.values())
    return fieldnames, rows


def backup_rows_to_entries(
    rows: Iterable[dict[str, str | None]],
) -> tuple[list[dict[str, Any]], list[tuple[int, str]]]:
    """
    Group legacy flat backup rows into entries, one per unique timestamp.

    Every non-empty, non-key column becomes a change with ``oldValue`` None.
    Returns the entries (first-seen timestamp order) and ``(row_number,
    reason)`` for every skipped row; row numbers count the header as row 1.
    """
    entries: dict[str, dict[str, Any]] = {}
    skipped: list[tuple[int, str]] = []
    for index, row in enumerate(rows, start=2):
        timestamp = (row.get("timestamp") or "").strip()
        if not timestamp:
            skipped.append((index, "missing timestamp"))
            continue
        try:
            day = int(str(row.get("day") or "").strip())
        except ValueError:
            skipped.append((index, f"day {row.get('day')!r} is not an integer"))
            continue
        changes = [
            {"day": day, "field": key, "oldValue": None, "newValue": value}
            for key, value in row.items()
            if key is not None
            and key not in BACKUP_KEY_COLUMNS
            and value is not None
            and str(value).strip()
        ]
        entry = entries.setdefault(timestamp, {"timestamp": timestamp, "changes": []})
        entry["changes"].extend(changes)
    return list(entries.values()), skipped
