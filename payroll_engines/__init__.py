"""
Payroll Engines - Pure calculation functions.

All engines are pure: no I/O, no storage access, no wall clock.  Timestamps
are passed in by the calling service.

Engines:
    - calendar: month partition arithmetic and lookback windows
    - aggregation: fold day-level records into period totals
    - deductions: apply/reverse/deduplicate/select deduction sources
    - change_detection: field-by-field compensation diffs for the audit log
    - tracer: PAYROLL_ENGINE_TRACE decorator
"""

from payroll_engines.aggregation import PeriodTotals, fold_period
from payroll_engines.calendar import lookback_months, months_in_range
from payroll_engines.change_detection import diff_compensations, diff_day
from payroll_engines.deductions import (
    LocatedSource,
    apply_to_balance,
    apply_to_loan,
    deduplicate,
    reverse_on_balance,
    reverse_on_loan,
    select_outstanding,
    spread_reversal,
)
from payroll_engines.tracer import traced_engine

__all__ = [
    "LocatedSource",
    "PeriodTotals",
    "apply_to_balance",
    "apply_to_loan",
    "deduplicate",
    "diff_compensations",
    "diff_day",
    "fold_period",
    "lookback_months",
    "months_in_range",
    "reverse_on_balance",
    "reverse_on_loan",
    "select_outstanding",
    "spread_reversal",
    "traced_engine",
]
