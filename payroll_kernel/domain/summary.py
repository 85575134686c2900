"""
Payroll summary value objects.

Responsibility:
    ``PayrollSummary`` is the persisted result of one payroll run for one
    employee over one inclusive period.  ``RequestedDeductions`` is the
    caller's deduction selection going into a run.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - ``id`` is ``payroll_id(employee_id, start_date, end_date)``; the
      summarizer never assigns another value.
    - ``net_pay == gross_pay - deductions.total`` for every summary the
      summarizer builds (legacy documents are loaded as stored).
    - ``cash_advance_amounts`` / ``short_amounts`` record the exact amount
      applied per source id.  They are None on summaries written before
      per-id tracking existed.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from payroll_kernel.domain.money import ZERO
from payroll_kernel.domain.records import DayType, LeaveType


@dataclass(frozen=True)
class DeductionBreakdown:
    sss: Decimal = ZERO
    phil_health: Decimal = ZERO
    pag_ibig: Decimal = ZERO
    cash_advance_deductions: Decimal = ZERO
    short_deductions: Decimal = ZERO
    loan_deductions: Decimal = ZERO
    others: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            self.sss
            + self.phil_health
            + self.pag_ibig
            + self.cash_advance_deductions
            + self.short_deductions
            + self.loan_deductions
            + self.others
        )


@dataclass(frozen=True)
class LoanDeductionRef:
    """Exact pointer to one loan deduction entry created by a payroll run."""

    loan_id: str
    deduction_id: str
    amount: Decimal


@dataclass(frozen=True)
class RequestedDeductions:
    """
    Caller's deduction selection for one payroll run.

    Government contributions left as None fall back to the employee's stored
    defaults.  A source-kind total left as None is taken as the sum of its
    itemized amounts; when given, it must equal that sum.
    """

    sss: Decimal | None = None
    phil_health: Decimal | None = None
    pag_ibig: Decimal | None = None
    cash_advance_deductions: Decimal | None = None
    short_deductions: Decimal | None = None
    loan_deductions: Decimal | None = None
    cash_advances: Mapping[str, Decimal] = field(default_factory=dict)
    shorts: Mapping[str, Decimal] = field(default_factory=dict)
    loans: Mapping[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class PayrollSummary:
    id: str
    employee_id: str
    employee_name: str
    start_date: date
    end_date: date
    daily_rate: Decimal
    basic_pay: Decimal
    overtime: Decimal
    gross_pay: Decimal
    deductions: DeductionBreakdown
    net_pay: Decimal
    payment_date: date
    days_worked: int
    absences: int
    overtime_minutes: Decimal = ZERO
    undertime_deduction: Decimal = ZERO
    undertime_minutes: Decimal = ZERO
    late_deduction: Decimal = ZERO
    late_minutes: Decimal = ZERO
    holiday_bonus: Decimal = ZERO
    night_differential_hours: Decimal = ZERO
    night_differential_pay: Decimal = ZERO
    leave_pay: Decimal = ZERO
    allowances: Decimal = ZERO
    day_type: DayType | None = None
    leave_type: LeaveType | None = None
    cash_advance_ids: tuple[str, ...] = ()
    short_ids: tuple[str, ...] = ()
    loan_deduction_ids: tuple[LoanDeductionRef, ...] = ()
    cash_advance_amounts: Mapping[str, Decimal] | None = None
    short_amounts: Mapping[str, Decimal] | None = None

    @property
    def has_exact_amounts(self) -> bool:
        return self.cash_advance_amounts is not None and self.short_amounts is not None
