"""
Period fold -- day-level records to payroll period totals.

Responsibility:
    Given the attendance and compensation records loaded from every month
    partition a period touches, keep only those whose calendar date falls in
    ``[start_date, end_date]`` and fold them into one ``PeriodTotals``.

Architecture position:
    Engines -- pure function, zero I/O.  Called by
    ``payroll_services.period_aggregator``, which does the loading.

Invariants enforced:
    - Day granularity only: a record is in the period iff its
      ``(year, month, day)`` date is within the inclusive bounds.
    - A record is counted at most once per calendar date, so overlapping
      month loads never double count.
    - Sundays are never worked days and never absences.
    - Holidays are never absences.
    - ``gross_pay = basic_pay + overtime + holiday_bonus + leave_pay
      + night_differential_pay``.

Failure modes:
    - Records whose day does not exist in their month (e.g. Feb 30) are
      dropped silently; they cannot lie inside any period.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from payroll_engines.calendar import is_sunday
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.money import sum_amounts
from payroll_kernel.domain.records import (
    AttendanceDay,
    DayCompensation,
    DayType,
    LeaveType,
)


@dataclass(frozen=True)
class PeriodTotals:
    days_worked: int
    absences: int
    basic_pay: Decimal
    total_overtime: Decimal
    total_overtime_minutes: Decimal
    total_undertime_deduction: Decimal
    total_undertime_minutes: Decimal
    total_late_deduction: Decimal
    total_late_minutes: Decimal
    total_holiday_bonus: Decimal
    total_leave_pay: Decimal
    total_deductions: Decimal
    total_night_differential_hours: Decimal
    total_night_differential_pay: Decimal
    total_gross_pay: Decimal
    day_type: DayType | None = None
    leave_type: LeaveType | None = None


def _in_period(
    records: Iterable, start_date: date, end_date: date
) -> dict[date, object]:
    by_date: dict[date, object] = {}
    for record in records:
        day = record.calendar_date()
        if day is not None and start_date <= day <= end_date:
            by_date[day] = record
    return dict(sorted(by_date.items()))


@traced_engine(
    "period_fold",
    "1.0",
    fingerprint_fields=("employee_id", "start_date", "end_date", "daily_rate"),
)
def fold_period(
    *,
    employee_id: str,
    start_date: date,
    end_date: date,
    daily_rate: Decimal,
    attendance: Iterable[AttendanceDay],
    compensations: Iterable[DayCompensation],
    is_holiday: Callable[[date], bool],
) -> PeriodTotals:
    if start_date > end_date:
        raise ValueError(f"start_date {start_date} is after end_date {end_date}")

    days: dict[date, AttendanceDay] = _in_period(attendance, start_date, end_date)
    comps: dict[date, DayCompensation] = _in_period(compensations, start_date, end_date)

    days_worked = 0
    absences = 0
    for day, record in days.items():
        if is_sunday(day):
            continue
        if record.is_complete:
            days_worked += 1
        elif not is_holiday(day):
            absences += 1

    rows = list(comps.values())
    basic_pay = daily_rate * days_worked
    overtime = sum_amounts(c.overtime_pay for c in rows)
    holiday_bonus = sum_amounts(c.holiday_bonus for c in rows)
    leave_pay = sum_amounts(c.leave_pay for c in rows)
    night_pay = sum_amounts(c.night_differential_pay for c in rows)

    first = rows[0] if rows else None
    return PeriodTotals(
        days_worked=days_worked,
        absences=absences,
        basic_pay=basic_pay,
        total_overtime=overtime,
        total_overtime_minutes=sum_amounts(c.overtime_minutes for c in rows),
        total_undertime_deduction=sum_amounts(c.undertime_deduction for c in rows),
        total_undertime_minutes=sum_amounts(c.undertime_minutes for c in rows),
        total_late_deduction=sum_amounts(c.late_deduction for c in rows),
        total_late_minutes=sum_amounts(c.late_minutes for c in rows),
        total_holiday_bonus=holiday_bonus,
        total_leave_pay=leave_pay,
        total_deductions=sum_amounts(c.deductions for c in rows),
        total_night_differential_hours=sum_amounts(
            c.night_differential_hours for c in rows
        ),
        total_night_differential_pay=night_pay,
        total_gross_pay=basic_pay + overtime + holiday_bonus + leave_pay + night_pay,
        day_type=first.day_type if first else None,
        leave_type=first.leave_type if first else None,
    )
