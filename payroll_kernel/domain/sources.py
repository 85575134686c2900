"""
Deduction sources -- cash advances, shorts, loans.

Responsibility:
    Immutable value objects for the balance-bearing records a payroll run
    draws down.  Each source is owned by one employee and lives in the
    month partition of its own ``date``, which need not be the month of the
    payroll period that deducts from it.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Balance arithmetic lives in
    ``payroll_engines.deductions``; these classes only validate shape.

Invariants enforced:
    - CashAdvance / Short: ``amount > 0`` and ``0 <= remaining_unpaid <= amount``.
    - Installment details: ``amount_per_payment > 0``.
    - Loan: ``remaining_balance >= 0``; deduction ids are unique.
    - ``status == PAID <=> remaining_unpaid <= 0`` is derived by the ledger
      engine on every write (legacy documents may predate it, so it is not
      rejected on load).

Failure modes:
    - ``ValueError`` on construction with out-of-range balances.

Audit relevance:
    A Loan's ``deductions`` tuple is the append-only trail of every payroll
    application against it; reversal removes exactly one entry by id.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.money import ZERO


class DeductionKind(str, Enum):
    CASH_ADVANCE = "cash_advance"
    SHORT = "short"
    LOAN = "loan"


class SourceStatus(str, Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class PaymentSchedule(str, Enum):
    ONE_TIME = "One-time"
    INSTALLMENT = "Installment"


class LoanStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    COMPLETED = "Completed"


class LoanType(str, Enum):
    PERSONAL = "Personal"
    HOUSING = "Housing"
    EMERGENCY = "Emergency"
    OTHER = "Other"


def _validate_balance(kind: str, source_id: str, amount: Decimal, remaining: Decimal) -> None:
    if amount <= 0:
        raise ValueError(f"{kind} {source_id}: amount must be positive, got {amount}")
    if remaining < 0 or remaining > amount:
        raise ValueError(
            f"{kind} {source_id}: remaining_unpaid {remaining} outside 0..{amount}"
        )


@dataclass(frozen=True)
class InstallmentDetails:
    number_of_payments: int
    amount_per_payment: Decimal
    remaining_payments: int

    def __post_init__(self) -> None:
        if self.amount_per_payment <= 0:
            raise ValueError("amount_per_payment must be positive")
        if self.number_of_payments < 0 or self.remaining_payments < 0:
            raise ValueError("installment payment counts cannot be negative")


@dataclass(frozen=True)
class CashAdvance:
    id: str
    employee_id: str
    date: date
    amount: Decimal
    remaining_unpaid: Decimal
    reason: str = ""
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    status: SourceStatus = SourceStatus.UNPAID
    payment_schedule: PaymentSchedule = PaymentSchedule.ONE_TIME
    installment_details: InstallmentDetails | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        _validate_balance("CashAdvance", self.id, self.amount, self.remaining_unpaid)

    @property
    def kind(self) -> DeductionKind:
        return DeductionKind.CASH_ADVANCE

    @property
    def is_installment(self) -> bool:
        return (
            self.payment_schedule == PaymentSchedule.INSTALLMENT
            and self.installment_details is not None
        )


@dataclass(frozen=True)
class Short:
    id: str
    employee_id: str
    date: date
    amount: Decimal
    remaining_unpaid: Decimal
    reason: str = ""
    status: SourceStatus = SourceStatus.UNPAID
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        _validate_balance("Short", self.id, self.amount, self.remaining_unpaid)

    @property
    def kind(self) -> DeductionKind:
        return DeductionKind.SHORT


@dataclass(frozen=True)
class LoanDeduction:
    """One payroll application against a loan."""

    deduction_id: str
    amount_deducted: Decimal
    date_deducted: datetime


@dataclass(frozen=True)
class Loan:
    id: str
    employee_id: str
    date: date
    amount: Decimal
    remaining_balance: Decimal
    type: LoanType = LoanType.PERSONAL
    status: LoanStatus = LoanStatus.PENDING
    interest_rate: Decimal = ZERO
    term: int = 0
    monthly_payment: Decimal = ZERO
    next_payment_date: date | None = None
    reason: str = ""
    deductions: tuple[LoanDeduction, ...] = ()
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Loan {self.id}: amount cannot be negative")
        if self.remaining_balance < 0:
            raise ValueError(f"Loan {self.id}: remaining_balance cannot be negative")
        ids = [d.deduction_id for d in self.deductions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Loan {self.id}: duplicate deduction ids")

    @property
    def kind(self) -> DeductionKind:
        return DeductionKind.LOAN

    @property
    def total_deducted(self) -> Decimal:
        return sum((d.amount_deducted for d in self.deductions), ZERO)

    def find_deduction(self, deduction_id: str) -> LoanDeduction | None:
        for entry in self.deductions:
            if entry.deduction_id == deduction_id:
                return entry
        return None


DeductionSource = CashAdvance | Short | Loan
