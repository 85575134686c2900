"""
Pure domain layer.

Immutable value objects for payroll inputs, deduction sources, summaries and
the compensation audit trail, with NO dependencies on:
- Storage backends
- SQLAlchemy
- The wall clock (see ``clock.Clock``)
"""

from payroll_kernel.domain.backup import BackupChange, BackupEntry, BackupMonth
from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.money import ZERO, optional_decimal, to_decimal
from payroll_kernel.domain.records import (
    AttendanceDay,
    DayCompensation,
    DayType,
    Employee,
    Holiday,
    HolidayType,
    LeaveType,
)
from payroll_kernel.domain.sources import (
    ApprovalStatus,
    CashAdvance,
    DeductionKind,
    DeductionSource,
    InstallmentDetails,
    Loan,
    LoanDeduction,
    LoanStatus,
    LoanType,
    PaymentSchedule,
    Short,
    SourceStatus,
)
from payroll_kernel.domain.summary import (
    DeductionBreakdown,
    LoanDeductionRef,
    PayrollSummary,
    RequestedDeductions,
)

__all__ = [
    "ApprovalStatus",
    "AttendanceDay",
    "BackupChange",
    "BackupEntry",
    "BackupMonth",
    "CashAdvance",
    "Clock",
    "DayCompensation",
    "DayType",
    "DeductionBreakdown",
    "DeductionKind",
    "DeductionSource",
    "DeterministicClock",
    "Employee",
    "Holiday",
    "HolidayType",
    "InstallmentDetails",
    "LeaveType",
    "Loan",
    "LoanDeduction",
    "LoanDeductionRef",
    "LoanStatus",
    "LoanType",
    "PaymentSchedule",
    "PayrollSummary",
    "RequestedDeductions",
    "Short",
    "SourceStatus",
    "SystemClock",
    "ZERO",
    "optional_decimal",
    "to_decimal",
]
