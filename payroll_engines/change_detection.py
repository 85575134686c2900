"""
Field-by-field change detection for day compensation records.

Compares typed ``DayCompensation`` values attribute by attribute, so
``Decimal("0")`` equals ``Decimal("0.00")`` and key order never matters.
Changes are rendered with JSON-shaped values (numbers, strings, bools, None)
as they appear in stored documents.
"""

import dataclasses
from collections.abc import Iterable
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.backup import BackupChange
from payroll_kernel.domain.money import decimal_to_json
from payroll_kernel.domain.records import (
    COMPENSATION_DOCUMENT_FIELDS,
    COMPENSATION_KEY_FIELDS,
    DayCompensation,
)

AUDITED_FIELDS: tuple[str, ...] = tuple(
    f.name
    for f in dataclasses.fields(DayCompensation)
    if f.name not in COMPENSATION_KEY_FIELDS
)


def to_json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return decimal_to_json(value)
    if isinstance(value, Enum):
        return value.value
    return value


def diff_day(old: DayCompensation | None, new: DayCompensation) -> list[BackupChange]:
    """
    Changes from ``old`` to ``new`` for one day.

    A wholly new day (``old is None``) reports every non-null field with
    ``old_value=None``.
    """
    changes: list[BackupChange] = []
    for name in AUDITED_FIELDS:
        new_value = getattr(new, name)
        if old is None:
            if new_value is None:
                continue
            old_value = None
        else:
            old_value = getattr(old, name)
            if old_value == new_value:
                continue
        changes.append(
            BackupChange(
                day=new.day,
                field=COMPENSATION_DOCUMENT_FIELDS[name],
                old_value=to_json_value(old_value),
                new_value=to_json_value(new_value),
            )
        )
    return changes


@traced_engine("compensation_diff", "1.0", fingerprint_fields=("updates",))
def diff_compensations(
    *,
    existing: dict[int, DayCompensation],
    updates: Iterable[DayCompensation],
) -> list[BackupChange]:
    """All field changes an update batch makes against ``existing`` (by day)."""
    changes: list[BackupChange] = []
    for record in updates:
        changes.extend(diff_day(existing.get(record.day), record))
    return changes
