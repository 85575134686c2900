"""
Deduction math -- apply, reverse, deduplicate and select balance sources.

Responsibility:
    Pure transformations of deduction sources.  Every function takes a frozen
    source and returns a new one; persistence is the ledger service's job.

Architecture position:
    Engines -- pure functions, zero I/O.  Called by
    ``payroll_services.deduction_ledger``.

Invariants enforced:
    - CashAdvance / Short: after every apply or reverse
      ``status == PAID <=> remaining_unpaid <= 0`` and
      ``0 <= remaining_unpaid <= amount``.
    - A reversal always leaves a CashAdvance / Short UNPAID (the restored
      balance is strictly positive because amounts are).
    - Installment cash advances: ``remaining_payments ==
      ceil(remaining_unpaid / amount_per_payment)`` after every change.
    - Loan: each apply appends exactly one ``LoanDeduction``; each reverse
      removes exactly one, by id.  ``remaining_balance`` stays
      ``max(0, amount - total_deducted)`` for loans that start consistent.
    - Loan status: COMPLETED when the balance reaches 0 on apply; COMPLETED
      reverts to APPROVED when a reverse makes the balance positive; any
      other status is left alone.

Failure modes:
    - ``InvalidDeductionAmountError`` for amount <= 0.
    - ``LoanDeductionNotFoundError`` when reversing an unknown deduction id.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal

from payroll_engines.calendar import Partition
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.money import ZERO
from payroll_kernel.domain.sources import (
    ApprovalStatus,
    CashAdvance,
    DeductionSource,
    InstallmentDetails,
    Loan,
    LoanDeduction,
    LoanStatus,
    Short,
    SourceStatus,
)
from payroll_kernel.exceptions import (
    InvalidDeductionAmountError,
    LoanDeductionNotFoundError,
)


def _stamp_key(stamp: datetime | None) -> float:
    if stamp is None:
        return float("-inf")
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=UTC)
    return stamp.timestamp()


def validate_amount(amount: Decimal, source_id: str | None = None) -> None:
    if amount is None or amount <= 0:
        raise InvalidDeductionAmountError(source_id, str(amount))


def derive_status(remaining: Decimal) -> SourceStatus:
    return SourceStatus.PAID if remaining <= 0 else SourceStatus.UNPAID


def remaining_payments(remaining: Decimal, details: InstallmentDetails) -> int:
    if remaining <= 0:
        return 0
    return math.ceil(remaining / details.amount_per_payment)


def _with_installments(source: CashAdvance | Short, remaining: Decimal) -> dict:
    if isinstance(source, CashAdvance) and source.is_installment:
        details = source.installment_details
        return {
            "installment_details": replace(
                details, remaining_payments=remaining_payments(remaining, details)
            )
        }
    return {}


# ---------------------------------------------------------------------------
# Cash advances and shorts
# ---------------------------------------------------------------------------


def apply_to_balance(
    source: CashAdvance | Short, amount: Decimal, at: datetime
) -> CashAdvance | Short:
    """Draw ``amount`` down from the source, flooring the balance at 0."""
    validate_amount(amount, source.id)
    remaining = max(ZERO, source.remaining_unpaid - amount)
    return replace(
        source,
        remaining_unpaid=remaining,
        status=derive_status(remaining),
        updated_at=at,
        **_with_installments(source, remaining),
    )


def reverse_on_balance(
    source: CashAdvance | Short, amount: Decimal, at: datetime
) -> tuple[CashAdvance | Short, Decimal]:
    """
    Give ``amount`` back to the source, capped at its original amount.

    Returns the updated source and the amount actually restored.
    """
    validate_amount(amount, source.id)
    remaining = min(source.amount, source.remaining_unpaid + amount)
    restored = remaining - source.remaining_unpaid
    updated = replace(
        source,
        remaining_unpaid=remaining,
        status=SourceStatus.UNPAID,
        updated_at=at,
        **_with_installments(source, remaining),
    )
    return updated, restored


def spread_reversal(
    sources: Iterable[CashAdvance | Short], amount: Decimal, at: datetime
) -> tuple[list[tuple[CashAdvance | Short, Decimal]], Decimal]:
    """
    Distribute a reversal over partially-paid sources, newest first.

    Used for summaries that recorded only a total, not which source each
    peso came from.  Each source receives at most what has been paid on it.
    Returns ``[(updated_source, restored), ...]`` and the unallocated rest.
    """
    validate_amount(amount)
    paid_down = [s for s in sources if s.remaining_unpaid < s.amount]
    paid_down.sort(key=lambda s: (s.date, _stamp_key(s.updated_at), s.id), reverse=True)

    left = amount
    results: list[tuple[CashAdvance | Short, Decimal]] = []
    for source in paid_down:
        if left <= 0:
            break
        refundable = min(source.amount - source.remaining_unpaid, left)
        updated, restored = reverse_on_balance(source, refundable, at)
        results.append((updated, restored))
        left -= restored
    return results, left


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------


def apply_to_loan(
    loan: Loan, amount: Decimal, deduction_id: str, at: datetime
) -> Loan:
    """Record a deduction of at most the remaining balance under ``deduction_id``."""
    validate_amount(amount, loan.id)
    if loan.remaining_balance <= 0:
        raise ValueError(f"Loan {loan.id} has no remaining balance")
    if loan.find_deduction(deduction_id) is not None:
        raise ValueError(f"Loan {loan.id} already has deduction {deduction_id}")
    drawn = min(amount, loan.remaining_balance)
    remaining = loan.remaining_balance - drawn
    status = LoanStatus.COMPLETED if remaining <= 0 else loan.status
    entry = LoanDeduction(deduction_id=deduction_id, amount_deducted=drawn, date_deducted=at)
    return replace(
        loan,
        remaining_balance=remaining,
        status=status,
        deductions=loan.deductions + (entry,),
        updated_at=at,
    )


def reverse_on_loan(
    loan: Loan, deduction_id: str, at: datetime
) -> tuple[Loan, LoanDeduction]:
    """Remove one deduction entry and give its amount back to the balance."""
    entry = loan.find_deduction(deduction_id)
    if entry is None:
        raise LoanDeductionNotFoundError(loan.id, deduction_id)
    remaining = min(loan.amount, loan.remaining_balance + entry.amount_deducted)
    status = loan.status
    if remaining > 0 and status == LoanStatus.COMPLETED:
        status = LoanStatus.APPROVED
    updated = replace(
        loan,
        remaining_balance=remaining,
        status=status,
        deductions=tuple(d for d in loan.deductions if d.deduction_id != deduction_id),
        updated_at=at,
    )
    return updated, entry


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocatedSource:
    """A source together with the partition it was read from."""

    partition: Partition
    source: DeductionSource


def deduplicate(located: Iterable[LocatedSource]) -> dict[str, LocatedSource]:
    """
    One instance per source id.

    The instance with the latest ``updated_at`` wins; ties (including
    sources never stamped) go to the latest partition.
    """
    winners: dict[str, LocatedSource] = {}
    for item in located:
        current = winners.get(item.source.id)
        if current is None or _rank(item) > _rank(current):
            winners[item.source.id] = item
    return winners


def _rank(item: LocatedSource) -> tuple:
    return (_stamp_key(item.source.updated_at), item.partition)


def is_outstanding(source: DeductionSource) -> bool:
    if isinstance(source, Loan):
        return source.status == LoanStatus.APPROVED and source.remaining_balance > 0
    if source.status != SourceStatus.UNPAID or source.remaining_unpaid <= 0:
        return False
    if isinstance(source, CashAdvance):
        return source.approval_status == ApprovalStatus.APPROVED
    return True


@traced_engine("unpaid_selection", "1.0", fingerprint_fields=("located",))
def select_outstanding(*, located: list[LocatedSource]) -> list[DeductionSource]:
    """Deduplicated outstanding sources, oldest ``date`` first."""
    unique = deduplicate(located).values()
    outstanding = [item.source for item in unique if is_outstanding(item.source)]
    outstanding.sort(key=lambda s: (s.date, s.id))
    return outstanding


def source_balance(source: DeductionSource) -> Decimal:
    if isinstance(source, Loan):
        return source.remaining_balance
    return source.remaining_unpaid


__all__ = [
    "LocatedSource",
    "apply_to_balance",
    "apply_to_loan",
    "deduplicate",
    "derive_status",
    "is_outstanding",
    "remaining_payments",
    "reverse_on_balance",
    "reverse_on_loan",
    "select_outstanding",
    "source_balance",
    "spread_reversal",
    "validate_amount",
]
