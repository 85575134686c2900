"""
Day-level records -- attendance, compensation, employees, holidays.

Responsibility:
    Immutable value objects for the inputs of a payroll period: one
    ``AttendanceDay`` and at most one ``DayCompensation`` per employee per
    calendar day, plus the ``Employee`` and ``Holiday`` shapes returned by the
    collaborators.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Document conversion lives in
    ``payroll_store.codecs``.

Invariants enforced:
    - ``month`` in 1..12, ``year`` >= 1, ``day`` in 1..31 on construction.
    - All monetary fields are ``Decimal``.
    - A day is *worked* iff both time-in and time-out are present.

Failure modes:
    - ``ValueError`` on out-of-range calendar components.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.money import ZERO


class DayType(str, Enum):
    REGULAR = "Regular"
    HOLIDAY = "Holiday"
    REST_DAY = "Rest Day"
    SPECIAL = "Special"

    @classmethod
    def _missing_(cls, value):
        if value == "RestDay":
            return cls.REST_DAY
        return None


class LeaveType(str, Enum):
    VACATION = "Vacation"
    SICK = "Sick"
    UNPAID = "Unpaid"
    NONE = "None"


class HolidayType(str, Enum):
    REGULAR = "Regular"
    SPECIAL = "Special"


def _validate_calendar(year: int, month: int, day: int) -> None:
    if not isinstance(month, int) or month < 1 or month > 12:
        raise ValueError(f"Invalid month value: {month}")
    if not isinstance(year, int) or year < 1:
        raise ValueError(f"Invalid year value: {year}")
    if not isinstance(day, int) or day < 1 or day > 31:
        raise ValueError(f"Invalid day value: {day}")


@dataclass(frozen=True)
class AttendanceDay:
    """Clock-in/clock-out pair for one employee on one day."""

    employee_id: str
    year: int
    month: int
    day: int
    time_in: str | None = None
    time_out: str | None = None

    def __post_init__(self) -> None:
        _validate_calendar(self.year, self.month, self.day)

    @property
    def is_complete(self) -> bool:
        return bool(self.time_in) and bool(self.time_out)

    def calendar_date(self) -> date | None:
        """The real date, or None when day does not exist in the month (e.g. Feb 30)."""
        try:
            return date(self.year, self.month, self.day)
        except ValueError:
            return None


@dataclass(frozen=True)
class DayCompensation:
    """
    Computed pay for one employee on one calendar day.

    Optional amounts are None when never computed; aggregation treats them as
    zero.  ``(employee_id, year, month, day)`` identifies the record.
    """

    employee_id: str
    year: int
    month: int
    day: int
    day_type: DayType = DayType.REGULAR
    daily_rate: Decimal = ZERO
    hours_worked: Decimal | None = None
    overtime_minutes: Decimal | None = None
    overtime_pay: Decimal | None = None
    undertime_minutes: Decimal | None = None
    undertime_deduction: Decimal | None = None
    late_minutes: Decimal | None = None
    late_deduction: Decimal | None = None
    holiday_bonus: Decimal | None = None
    leave_type: LeaveType | None = None
    leave_pay: Decimal | None = None
    night_differential_hours: Decimal = ZERO
    night_differential_pay: Decimal = ZERO
    gross_pay: Decimal | None = None
    deductions: Decimal | None = None
    net_pay: Decimal | None = None
    manual_override: bool = False
    notes: str | None = None
    absence: bool = False

    def __post_init__(self) -> None:
        _validate_calendar(self.year, self.month, self.day)

    def calendar_date(self) -> date | None:
        try:
            return date(self.year, self.month, self.day)
        except ValueError:
            return None


# Identity fields of a DayCompensation; everything else is audited.
COMPENSATION_KEY_FIELDS = ("employee_id", "year", "month", "day")

# Stored document name of every DayCompensation attribute.
COMPENSATION_DOCUMENT_FIELDS: dict[str, str] = {
    "employee_id": "employeeId",
    "year": "year",
    "month": "month",
    "day": "day",
    "day_type": "dayType",
    "daily_rate": "dailyRate",
    "hours_worked": "hoursWorked",
    "overtime_minutes": "overtimeMinutes",
    "overtime_pay": "overtimePay",
    "undertime_minutes": "undertimeMinutes",
    "undertime_deduction": "undertimeDeduction",
    "late_minutes": "lateMinutes",
    "late_deduction": "lateDeduction",
    "holiday_bonus": "holidayBonus",
    "leave_type": "leaveType",
    "leave_pay": "leavePay",
    "night_differential_hours": "nightDifferentialHours",
    "night_differential_pay": "nightDifferentialPay",
    "gross_pay": "grossPay",
    "deductions": "deductions",
    "net_pay": "netPay",
    "manual_override": "manualOverride",
    "notes": "notes",
    "absence": "absence",
}


@dataclass(frozen=True)
class Employee:
    """Employee as returned by the employee collaborator."""

    id: str
    name: str
    daily_rate: Decimal
    sss: Decimal = ZERO
    phil_health: Decimal = ZERO
    pag_ibig: Decimal = ZERO
    employment_type: str | None = None
    status: str = "active"

    def __post_init__(self) -> None:
        if self.daily_rate < 0:
            raise ValueError("daily_rate cannot be negative")


@dataclass(frozen=True)
class Holiday:
    """A holiday spanning ``start_date`` through ``end_date`` inclusive."""

    id: str
    name: str
    start_date: date
    end_date: date
    type: HolidayType = HolidayType.REGULAR
    multiplier: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError(
                f"Holiday {self.id} ends ({self.end_date}) before it starts ({self.start_date})"
            )

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
