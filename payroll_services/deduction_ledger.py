"""
payroll_services.deduction_ledger -- Apply and reverse deductions against sources.

Responsibility:
    Locates cash advances, shorts and loans in their month partitions,
    runs the pure deduction math from ``payroll_engines.deductions`` and
    writes each updated source back to the partition it was read from.

Architecture position:
    Services -- imperative shell.  Reads and writes through
    ``RecordRepository``; all balance arithmetic lives in the engine.

Invariants enforced:
    - One partition write per application or reversal of a single source.
    - A source stored in more than one partition is resolved to a single
      instance (latest ``updated_at``, then latest partition); only that
      instance's partition is rewritten.
    - Loan applications are recorded under a fresh UUID deduction id.
    - An application never draws more than the remaining balance; the
      amount drawn is what gets recorded and later reversed.

Failure modes:
    - InvalidDeductionAmountError: amount <= 0 (apply and reverse).
    - SourceNotFoundError: apply on an id that cannot be located (fatal).
      On reverse the same condition is logged and returned as a skipped
      ``ReversalOutcome``.
    - LoanDeductionNotFoundError: reverse of an unknown loan deduction id;
      logged and skipped.

Audit relevance:
    Every mutation logs ``deduction_applied`` / ``deduction_reversed`` with
    kind, source id, amount and the balance after the change.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import uuid4

from payroll_config.schema import DeductionPolicy
from payroll_engines.calendar import Partition, format_partition, lookback_months
from payroll_engines.deductions import (
    LocatedSource,
    apply_to_balance,
    apply_to_loan,
    deduplicate,
    reverse_on_balance,
    reverse_on_loan,
    select_outstanding,
    source_balance,
    spread_reversal,
    validate_amount,
)
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.money import ZERO, sum_amounts
from payroll_kernel.domain.sources import DeductionKind, DeductionSource, Loan
from payroll_kernel.exceptions import (
    LoanDeductionNotFoundError,
    SourceNotFoundError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_store.repository import RecordRepository

logger = get_logger("services.deduction_ledger")


@dataclass(frozen=True)
class DeductionApplication:
    """
    One applied deduction and the source state it produced.

    ``amount`` is what was actually drawn from the source; it is less than
    ``amount_requested`` when the request exceeded the remaining balance.
    """

    kind: DeductionKind
    source_id: str
    amount: Decimal
    partition: Partition
    source: DeductionSource
    deduction_id: str | None = None
    amount_requested: Decimal | None = None


@dataclass(frozen=True)
class ReversalOutcome:
    """
    Result of one reversal request.

    ``restored`` maps each touched source id to the amount given back.  A
    skipped reversal has an empty map and a ``reason`` code.
    """

    kind: DeductionKind
    source_id: str | None
    amount_requested: Decimal
    restored: Mapping[str, Decimal] = field(default_factory=dict)
    skipped: bool = False
    reason: str | None = None
    deduction_id: str | None = None

    @property
    def amount_restored(self) -> Decimal:
        return sum_amounts(self.restored.values())


class DeductionLedger:
    def __init__(
        self,
        repository: RecordRepository,
        clock: Clock | None = None,
        policy: DeductionPolicy | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._policy = policy or DeductionPolicy()
        self._new_id = id_factory or (lambda: str(uuid4()))

    @property
    def policy(self) -> DeductionPolicy:
        return self._policy

    # =========================================================================
    # Reading
    # =========================================================================

    def _scan(
        self, kind: DeductionKind, employee_id: str, as_of: date, lookback: int
    ) -> list[LocatedSource]:
        located: list[LocatedSource] = []
        for year, month in lookback_months(as_of, lookback):
            for source in self._repository.load_sources(kind, employee_id, year, month):
                located.append(LocatedSource(partition=(year, month), source=source))
        return located

    def locate(
        self,
        kind: DeductionKind,
        employee_id: str,
        source_id: str,
        as_of: date | None = None,
    ) -> LocatedSource:
        """Find the authoritative instance of one source by id."""
        as_of = as_of or self._clock.today()
        located = self._scan(kind, employee_id, as_of, self._policy.locate_lookback_months)
        found = deduplicate(located).get(source_id)
        if found is None:
            raise SourceNotFoundError(kind.value, source_id, employee_id)
        return found

    def select_unpaid_sources(
        self,
        kind: DeductionKind,
        employee_id: str,
        as_of: date | None = None,
        lookback_months: int | None = None,
    ) -> list[DeductionSource]:
        """
        Outstanding sources for an employee, oldest first.

        Defaults to the per-payroll candidate window.
        """
        as_of = as_of or self._clock.today()
        if lookback_months is None:
            lookback_months = self._policy.candidate_lookback_months
        return select_outstanding(
            located=self._scan(kind, employee_id, as_of, lookback_months)
        )

    def list_unpaid_for_year(
        self, kind: DeductionKind, employee_id: str, as_of: date | None = None
    ) -> list[DeductionSource]:
        return self.select_unpaid_sources(
            kind, employee_id, as_of, self._policy.unpaid_lookback_months
        )

    # =========================================================================
    # Writing
    # =========================================================================

    def _write(
        self,
        kind: DeductionKind,
        employee_id: str,
        partition: Partition,
        updated: DeductionSource,
    ) -> None:
        year, month = partition
        sources = self._repository.load_sources(kind, employee_id, year, month)
        replaced = [updated if s.id == updated.id else s for s in sources]
        if not any(s.id == updated.id for s in sources):
            replaced.append(updated)
        self._repository.save_sources(kind, employee_id, year, month, replaced)

    def apply_deduction(
        self,
        kind: DeductionKind,
        employee_id: str,
        source_id: str,
        amount: Decimal,
        as_of: date | None = None,
    ) -> DeductionApplication:
        validate_amount(amount, source_id)
        located = self.locate(kind, employee_id, source_id, as_of)
        now = self._clock.now()
        balance_before = source_balance(located.source)

        deduction_id = None
        if isinstance(located.source, Loan):
            updated = located.source
            if balance_before > ZERO:
                deduction_id = self._new_id()
                updated = apply_to_loan(located.source, amount, deduction_id, now)
        else:
            updated = apply_to_balance(located.source, amount, now)
        drawn = balance_before - source_balance(updated)
        if drawn < amount:
            logger.warning(
                "deduction_exceeds_balance",
                extra={
                    "kind": kind.value,
                    "source_id": source_id,
                    "amount_requested": amount,
                    "amount_drawn": drawn,
                },
            )

        with LogContext.bind(partition=format_partition(located.partition)):
            self._write(kind, employee_id, located.partition, updated)
            logger.info(
                "deduction_applied",
                extra={
                    "kind": kind.value,
                    "source_id": source_id,
                    "amount": drawn,
                    "deduction_id": deduction_id,
                    "balance_after": source_balance(updated),
                    "status_after": updated.status.value,
                },
            )
        return DeductionApplication(
            kind=kind,
            source_id=source_id,
            amount=drawn,
            partition=located.partition,
            source=updated,
            deduction_id=deduction_id,
            amount_requested=amount,
        )

    def reverse_deduction(
        self,
        kind: DeductionKind,
        employee_id: str,
        amount: Decimal,
        source_id: str | None = None,
        deduction_id: str | None = None,
        as_of: date | None = None,
    ) -> ReversalOutcome:
        """
        Undo an earlier application.

        Loans need both ``source_id`` and ``deduction_id``.  A cash advance or
        short without ``source_id`` is a legacy reversal: the amount is spread
        over partially-paid sources, newest first.
        """
        validate_amount(amount, source_id)
        if kind == DeductionKind.LOAN and (source_id is None or deduction_id is None):
            raise ValueError("Loan reversal requires source_id and deduction_id")

        try:
            if source_id is None:
                return self._reverse_spread(kind, employee_id, amount, as_of)
            located = self.locate(kind, employee_id, source_id, as_of)
            now = self._clock.now()
            if isinstance(located.source, Loan):
                updated, entry = reverse_on_loan(located.source, deduction_id, now)
                restored = entry.amount_deducted
            else:
                updated, restored = reverse_on_balance(located.source, amount, now)
        except (SourceNotFoundError, LoanDeductionNotFoundError) as exc:
            logger.warning(
                "reversal_skipped_source_missing",
                extra={
                    "kind": kind.value,
                    "source_id": source_id,
                    "deduction_id": deduction_id,
                    "amount": amount,
                },
                exc_info=True,
            )
            return ReversalOutcome(
                kind=kind,
                source_id=source_id,
                amount_requested=amount,
                skipped=True,
                reason=exc.code,
                deduction_id=deduction_id,
            )

        with LogContext.bind(partition=format_partition(located.partition)):
            self._write(kind, employee_id, located.partition, updated)
            logger.info(
                "deduction_reversed",
                extra={
                    "kind": kind.value,
                    "source_id": source_id,
                    "deduction_id": deduction_id,
                    "amount_restored": restored,
                    "balance_after": source_balance(updated),
                    "status_after": updated.status.value,
                },
            )
        return ReversalOutcome(
            kind=kind,
            source_id=source_id,
            amount_requested=amount,
            restored={source_id: restored},
            deduction_id=deduction_id,
        )

    def _reverse_spread(
        self,
        kind: DeductionKind,
        employee_id: str,
        amount: Decimal,
        as_of: date | None,
    ) -> ReversalOutcome:
        as_of = as_of or self._clock.today()
        located = deduplicate(
            self._scan(kind, employee_id, as_of, self._policy.locate_lookback_months)
        )
        partitions = {source_id: item.partition for source_id, item in located.items()}
        results, left = spread_reversal(
            (item.source for item in located.values()), amount, self._clock.now()
        )

        restored: dict[str, Decimal] = {}
        for updated, amount_restored in results:
            self._write(kind, employee_id, partitions[updated.id], updated)
            restored[updated.id] = amount_restored

        if left > ZERO:
            logger.warning(
                "legacy_reversal_unallocated",
                extra={"kind": kind.value, "amount": amount, "unallocated": left},
            )
        logger.info(
            "deduction_reversed_legacy",
            extra={"kind": kind.value, "amount": amount, "restored": restored},
        )
        if not restored:
            return ReversalOutcome(
                kind=kind,
                source_id=None,
                amount_requested=amount,
                skipped=True,
                reason=SourceNotFoundError.code,
            )
        return ReversalOutcome(
            kind=kind, source_id=None, amount_requested=amount, restored=restored
        )
