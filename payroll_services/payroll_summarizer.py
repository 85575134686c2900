"""
payroll_services.payroll_summarizer -- Generate and delete payroll summaries.

Responsibility:
    Orchestrates one payroll run: period totals from the PeriodAggregator,
    final deductions from the caller's selection and the employee defaults,
    source applications through the DeductionLedger, and persistence of the
    resulting ``PayrollSummary``.  Deletion reverses every application the
    summary references and then removes it.

Architecture position:
    Services -- top-level orchestrator.  Composes PeriodAggregator,
    DeductionLedger and RecordRepository.

Invariants enforced:
    - ``summary.id == generate_payroll_id(employee_id, start, end)``;
      regeneration overwrites in place.
    - ``net_pay == gross_pay - deductions.total``.
    - Per-kind declared totals equal the sum of their itemized amounts,
      checked before any source is touched.
    - Summaries live in the partition of their END date.
    - A regenerated period reverses the previous run's applications first,
      so a source is never deducted twice for the same period.  The
      previous summary stays stored until the new one overwrites it.
    - A failed run leaves no applied deduction behind (compensating
      reversal of everything applied in that call); a failed regeneration
      re-applies what the previous run had drawn.
    - Per-id amounts on the summary are the amounts actually drawn from
      each source, so delete restores exactly that much.

Failure modes:
    - InvalidPeriodError, EmployeeNotFoundError, DeductionMismatchError,
      InvalidDeductionAmountError: raised before any write.
    - SourceNotFoundError during generation: earlier applications are
      reversed and the error propagates.
    - PayrollNotFoundError: delete of an id absent from its partition.
    - Reversal problems during delete are logged, reported in
      ``ReversalReport.skipped`` and never block the removal.

Audit relevance:
    ``payroll_generated`` / ``payroll_deleted`` log records carry the
    payroll id and every amount that moved.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal

from payroll_config.schema import PayrollPolicy
from payroll_engines.calendar import partition_of
from payroll_engines.deductions import validate_amount
from payroll_kernel.domain.money import ZERO, sum_amounts
from payroll_kernel.domain.records import Employee
from payroll_kernel.domain.sources import DeductionKind
from payroll_kernel.domain.summary import (
    DeductionBreakdown,
    LoanDeductionRef,
    PayrollSummary,
    RequestedDeductions,
)
from payroll_kernel.exceptions import (
    DeductionMismatchError,
    InvalidPeriodError,
    PayrollKernelError,
    PayrollNotFoundError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_kernel.utils.payroll_id import generate_payroll_id
from payroll_services.deduction_ledger import (
    DeductionApplication,
    DeductionLedger,
    ReversalOutcome,
)
from payroll_services.period_aggregator import PeriodAggregate, PeriodAggregator
from payroll_store.repository import RecordRepository

logger = get_logger("services.payroll_summarizer")


@dataclass(frozen=True)
class ReversalReport:
    payroll_id: str
    reversed: tuple[ReversalOutcome, ...] = ()
    skipped: tuple[ReversalOutcome, ...] = ()


def _checked_total(
    kind: DeductionKind, declared: Decimal | None, itemized: Mapping[str, Decimal]
) -> Decimal:
    for source_id, amount in itemized.items():
        validate_amount(amount, source_id)
    total = sum_amounts(itemized.values())
    if declared is None:
        return total
    if declared != total:
        raise DeductionMismatchError(kind.value, str(declared), str(total))
    return declared


def resolve_deductions(
    employee: Employee,
    requested: RequestedDeductions,
    others: Decimal = ZERO,
) -> DeductionBreakdown:
    """
    Final deduction breakdown for one run.

    Government contributions fall back to the employee defaults; source
    totals must agree with their itemized amounts.
    """
    return DeductionBreakdown(
        sss=requested.sss if requested.sss is not None else employee.sss,
        phil_health=(
            requested.phil_health
            if requested.phil_health is not None
            else employee.phil_health
        ),
        pag_ibig=requested.pag_ibig if requested.pag_ibig is not None else employee.pag_ibig,
        cash_advance_deductions=_checked_total(
            DeductionKind.CASH_ADVANCE,
            requested.cash_advance_deductions,
            requested.cash_advances,
        ),
        short_deductions=_checked_total(
            DeductionKind.SHORT, requested.short_deductions, requested.shorts
        ),
        loan_deductions=_checked_total(
            DeductionKind.LOAN, requested.loan_deductions, requested.loans
        ),
        others=others,
    )


def _drawn(
    applications: list[DeductionApplication], kind: DeductionKind
) -> dict[str, Decimal]:
    return {app.source_id: app.amount for app in applications if app.kind == kind}


class PayrollSummarizer:
    """
    Payroll run orchestrator.

    Callers must serialise ``generate`` / ``delete`` calls that touch the
    same employee; no locking happens here.
    """

    def __init__(
        self,
        aggregator: PeriodAggregator,
        ledger: DeductionLedger,
        repository: RecordRepository,
        policy: PayrollPolicy | None = None,
    ):
        self._aggregator = aggregator
        self._ledger = ledger
        self._repository = repository
        self._policy = policy or PayrollPolicy()

    # =========================================================================
    # Reads
    # =========================================================================

    def load_summaries(self, employee_id: str, year: int, month: int) -> list[PayrollSummary]:
        return self._repository.load_summaries(employee_id, year, month)

    def get_summary(
        self, employee_id: str, start_date: date, end_date: date
    ) -> PayrollSummary | None:
        payroll_id = generate_payroll_id(employee_id, start_date, end_date)
        year, month = partition_of(end_date)
        for summary in self.load_summaries(employee_id, year, month):
            if summary.id == payroll_id:
                return summary
        return None

    # =========================================================================
    # Generate
    # =========================================================================

    def generate(
        self,
        employee_id: str,
        start_date: date,
        end_date: date,
        requested: RequestedDeductions | None = None,
    ) -> PayrollSummary:
        if start_date > end_date:
            raise InvalidPeriodError(start_date.isoformat(), end_date.isoformat())
        requested = requested or RequestedDeductions()
        payroll_id = generate_payroll_id(employee_id, start_date, end_date)

        with LogContext.bind(employee_id=employee_id, payroll_id=payroll_id):
            aggregate = self._aggregator.aggregate(employee_id, start_date, end_date)
            breakdown = resolve_deductions(
                aggregate.employee, requested, aggregate.totals.total_deductions
            )

            previous = self.get_summary(employee_id, start_date, end_date)
            undone: list[ReversalOutcome] = []
            if previous is not None:
                logger.info("payroll_regenerating", extra={"payroll_id": payroll_id})
                undone = self._reverse_all(previous)

            applications: list[DeductionApplication] = []
            try:
                for kind, itemized in (
                    (DeductionKind.CASH_ADVANCE, requested.cash_advances),
                    (DeductionKind.SHORT, requested.shorts),
                    (DeductionKind.LOAN, requested.loans),
                ):
                    for source_id, amount in itemized.items():
                        applications.append(
                            self._ledger.apply_deduction(
                                kind, employee_id, source_id, amount, as_of=end_date
                            )
                        )
                summary = self._build_summary(
                    payroll_id, aggregate, breakdown, requested, applications
                )
                self._store(summary)
            except Exception:
                self._roll_back(employee_id, end_date, applications)
                if previous is not None:
                    self._restore(previous, undone)
                raise

            logger.info(
                "payroll_generated",
                extra={
                    "payroll_id": payroll_id,
                    "gross_pay": summary.gross_pay,
                    "total_deductions": breakdown.total,
                    "net_pay": summary.net_pay,
                    "applications": len(applications),
                },
            )
            return summary

    def _build_summary(
        self,
        payroll_id: str,
        aggregate: PeriodAggregate,
        breakdown: DeductionBreakdown,
        requested: RequestedDeductions,
        applications: list[DeductionApplication],
    ) -> PayrollSummary:
        totals = aggregate.totals
        employee = aggregate.employee
        return PayrollSummary(
            id=payroll_id,
            employee_id=employee.id,
            employee_name=employee.name,
            start_date=aggregate.start_date,
            end_date=aggregate.end_date,
            daily_rate=employee.daily_rate,
            basic_pay=totals.basic_pay,
            overtime=totals.total_overtime,
            gross_pay=totals.total_gross_pay,
            deductions=breakdown,
            net_pay=totals.total_gross_pay - breakdown.total,
            payment_date=aggregate.end_date
            + timedelta(days=self._policy.payment_date_offset_days),
            days_worked=totals.days_worked,
            absences=totals.absences,
            overtime_minutes=totals.total_overtime_minutes,
            undertime_deduction=totals.total_undertime_deduction,
            undertime_minutes=totals.total_undertime_minutes,
            late_deduction=totals.total_late_deduction,
            late_minutes=totals.total_late_minutes,
            holiday_bonus=totals.total_holiday_bonus,
            night_differential_hours=totals.total_night_differential_hours,
            night_differential_pay=totals.total_night_differential_pay,
            leave_pay=totals.total_leave_pay,
            day_type=totals.day_type,
            leave_type=totals.leave_type,
            cash_advance_ids=tuple(requested.cash_advances),
            short_ids=tuple(requested.shorts),
            loan_deduction_ids=tuple(
                LoanDeductionRef(
                    loan_id=app.source_id, deduction_id=app.deduction_id, amount=app.amount
                )
                for app in applications
                if app.kind == DeductionKind.LOAN and app.deduction_id is not None
            ),
            cash_advance_amounts=_drawn(applications, DeductionKind.CASH_ADVANCE),
            short_amounts=_drawn(applications, DeductionKind.SHORT),
        )

    def _store(self, summary: PayrollSummary) -> None:
        year, month = partition_of(summary.end_date)
        kept = [
            s
            for s in self.load_summaries(summary.employee_id, year, month)
            if s.id != summary.id
        ]
        self._repository.save_summaries(
            summary.employee_id, year, month, kept + [summary]
        )

    def _roll_back(
        self,
        employee_id: str,
        as_of: date,
        applications: list[DeductionApplication],
    ) -> None:
        failed = 0
        for app in reversed(applications):
            if app.amount <= ZERO:
                continue
            try:
                self._ledger.reverse_deduction(
                    app.kind,
                    employee_id,
                    app.amount,
                    source_id=app.source_id,
                    deduction_id=app.deduction_id,
                    as_of=as_of,
                )
            except Exception:
                # The error that triggered the rollback is re-raised by the caller.
                failed += 1
                logger.error(
                    "rollback_reversal_failed",
                    extra={
                        "kind": app.kind.value,
                        "source_id": app.source_id,
                        "deduction_id": app.deduction_id,
                        "amount": app.amount,
                    },
                    exc_info=True,
                )
        if applications:
            logger.warning(
                "payroll_generation_rolled_back",
                extra={
                    "reversed_applications": len(applications) - failed,
                    "failed_reversals": failed,
                },
            )

    def _restore(self, previous: PayrollSummary, undone: list[ReversalOutcome]) -> None:
        """
        Re-apply what a failed regeneration reversed from ``previous``.

        The previous summary was never removed from its partition; only loan
        references change, since a loan re-application gets a new deduction id.
        """
        replaced_refs: dict[str, LoanDeductionRef] = {}
        for outcome in undone:
            if outcome.skipped:
                continue
            for source_id, amount in outcome.restored.items():
                if amount <= ZERO:
                    continue
                try:
                    app = self._ledger.apply_deduction(
                        outcome.kind,
                        previous.employee_id,
                        source_id,
                        amount,
                        as_of=previous.end_date,
                    )
                except Exception:
                    logger.error(
                        "payroll_restore_failed",
                        extra={
                            "payroll_id": previous.id,
                            "kind": outcome.kind.value,
                            "source_id": source_id,
                            "amount": amount,
                        },
                        exc_info=True,
                    )
                    continue
                if outcome.deduction_id is not None and app.deduction_id is not None:
                    replaced_refs[outcome.deduction_id] = LoanDeductionRef(
                        loan_id=source_id, deduction_id=app.deduction_id, amount=app.amount
                    )

        if replaced_refs:
            relinked = replace(
                previous,
                loan_deduction_ids=tuple(
                    replaced_refs.get(ref.deduction_id, ref)
                    for ref in previous.loan_deduction_ids
                ),
            )
            try:
                self._store(relinked)
            except Exception:
                logger.error(
                    "payroll_restore_failed",
                    extra={"payroll_id": previous.id},
                    exc_info=True,
                )
        logger.warning(
            "payroll_regeneration_restored",
            extra={"payroll_id": previous.id, "loan_refs_replaced": len(replaced_refs)},
        )

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, employee_id: str, start_date: date, end_date: date) -> ReversalReport:
        payroll_id = generate_payroll_id(employee_id, start_date, end_date)
        with LogContext.bind(employee_id=employee_id, payroll_id=payroll_id):
            summary = self.get_summary(employee_id, start_date, end_date)
            if summary is None:
                year, month = partition_of(end_date)
                raise PayrollNotFoundError(payroll_id, year, month)
            report = self._remove(summary)
            logger.info(
                "payroll_deleted",
                extra={
                    "payroll_id": payroll_id,
                    "reversed": len(report.reversed),
                    "skipped": len(report.skipped),
                },
            )
            return report

    def _remove(self, summary: PayrollSummary) -> ReversalReport:
        outcomes = self._reverse_all(summary)
        year, month = partition_of(summary.end_date)
        remaining = [
            s
            for s in self.load_summaries(summary.employee_id, year, month)
            if s.id != summary.id
        ]
        self._repository.save_summaries(summary.employee_id, year, month, remaining)
        return ReversalReport(
            payroll_id=summary.id,
            reversed=tuple(o for o in outcomes if not o.skipped),
            skipped=tuple(o for o in outcomes if o.skipped),
        )

    def _reversal_requests(
        self, summary: PayrollSummary
    ) -> list[tuple[DeductionKind, Decimal, str | None, str | None]]:
        """(kind, amount, source_id, deduction_id) for everything to undo."""
        requests: list[tuple[DeductionKind, Decimal, str | None, str | None]] = []
        for kind, exact, ids, total in (
            (
                DeductionKind.CASH_ADVANCE,
                summary.cash_advance_amounts,
                summary.cash_advance_ids,
                summary.deductions.cash_advance_deductions,
            ),
            (
                DeductionKind.SHORT,
                summary.short_amounts,
                summary.short_ids,
                summary.deductions.short_deductions,
            ),
        ):
            if exact is not None:
                requests.extend((kind, amount, sid, None) for sid, amount in exact.items())
            elif total > ZERO:
                # Summaries written before per-id amounts were stored.
                source_id = ids[0] if len(ids) == 1 else None
                logger.info(
                    "legacy_reversal_fallback",
                    extra={"kind": kind.value, "amount": total, "source_id": source_id},
                )
                requests.append((kind, total, source_id, None))
        requests.extend(
            (DeductionKind.LOAN, ref.amount, ref.loan_id, ref.deduction_id)
            for ref in summary.loan_deduction_ids
        )
        return requests

    def _reverse_all(self, summary: PayrollSummary) -> list[ReversalOutcome]:
        outcomes: list[ReversalOutcome] = []
        for kind, amount, source_id, deduction_id in self._reversal_requests(summary):
            if amount <= ZERO and kind != DeductionKind.LOAN:
                continue
            try:
                outcome = self._ledger.reverse_deduction(
                    kind,
                    summary.employee_id,
                    amount,
                    source_id=source_id,
                    deduction_id=deduction_id,
                    as_of=summary.end_date,
                )
            except PayrollKernelError as exc:
                logger.warning(
                    "reversal_failed",
                    extra={
                        "kind": kind.value,
                        "source_id": source_id,
                        "deduction_id": deduction_id,
                        "amount": amount,
                    },
                    exc_info=True,
                )
                outcome = ReversalOutcome(
                    kind=kind,
                    source_id=source_id,
                    amount_requested=amount,
                    skipped=True,
                    reason=exc.code,
                    deduction_id=deduction_id,
                )
            outcomes.append(outcome)
        return outcomes
