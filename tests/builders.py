"""Record builders shared across test packages."""

from datetime import date
from decimal import Decimal

from payroll_kernel.domain.records import AttendanceDay, DayCompensation
from payroll_kernel.domain.sources import (
    ApprovalStatus,
    CashAdvance,
    Loan,
    LoanStatus,
    Short,
)


def attendance(employee_id: str, day: date, present: bool = True) -> AttendanceDay:
    return AttendanceDay(
        employee_id=employee_id,
        year=day.year,
        month=day.month,
        day=day.day,
        time_in="08:00" if present else None,
        time_out="17:00" if present else None,
    )


def compensation(employee_id: str, day: date, **fields) -> DayCompensation:
    return DayCompensation(
        employee_id=employee_id, year=day.year, month=day.month, day=day.day, **fields
    )


def cash_advance(
    source_id: str = "CA1",
    amount: str = "2000",
    remaining: str | None = None,
    on: date = date(2024, 1, 5),
    **fields,
) -> CashAdvance:
    fields.setdefault("approval_status", ApprovalStatus.APPROVED)
    return CashAdvance(
        id=source_id,
        employee_id="E1",
        date=on,
        amount=Decimal(amount),
        remaining_unpaid=Decimal(remaining if remaining is not None else amount),
        **fields,
    )


def short(
    source_id: str = "S1",
    amount: str = "300",
    remaining: str | None = None,
    on: date = date(2024, 1, 6),
    **fields,
) -> Short:
    return Short(
        id=source_id,
        employee_id="E1",
        date=on,
        amount=Decimal(amount),
        remaining_unpaid=Decimal(remaining if remaining is not None else amount),
        **fields,
    )


def loan(
    source_id: str = "L1",
    amount: str = "6000",
    remaining: str | None = None,
    on: date = date(2024, 1, 2),
    **fields,
) -> Loan:
    fields.setdefault("status", LoanStatus.APPROVED)
    return Loan(
        id=source_id,
        employee_id="E1",
        date=on,
        amount=Decimal(amount),
        remaining_balance=Decimal(remaining if remaining is not None else amount),
        **fields,
    )
