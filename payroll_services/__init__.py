"""
Payroll Services - stateful orchestration over engines and store.

    PeriodAggregator    period totals across month partitions
    DeductionLedger     apply / reverse / select deduction sources
    PayrollSummarizer   generate and delete payroll summaries
    CompensationLedger  audited compensation saves and reverts
    FormatMigrator      legacy CSV partitions to JSON documents

``build_services`` wires all of them from one configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from payroll_config.schema import PayrollEngineConfig
from payroll_kernel.domain.clock import Clock
from payroll_services.audit_log import CompensationLedger
from payroll_services.deduction_ledger import (
    DeductionApplication,
    DeductionLedger,
    ReversalOutcome,
)
from payroll_services.format_migrator import FormatMigrator, MigrationReport
from payroll_services.payroll_summarizer import PayrollSummarizer, ReversalReport
from payroll_services.period_aggregator import PeriodAggregate, PeriodAggregator
from payroll_store.base import RecordStore
from payroll_store.collaborators import EmployeeDirectory, HolidayCalendar
from payroll_store.repository import RecordRepository


@dataclass(frozen=True)
class PayrollServices:
    repository: RecordRepository
    aggregator: PeriodAggregator
    ledger: DeductionLedger
    summarizer: PayrollSummarizer
    compensations: CompensationLedger


def build_services(
    store: RecordStore,
    employees: EmployeeDirectory,
    holidays: HolidayCalendar,
    config: PayrollEngineConfig | None = None,
    clock: Clock | None = None,
) -> PayrollServices:
    config = config or PayrollEngineConfig()
    repository = RecordRepository(store)
    aggregator = PeriodAggregator(repository, employees, holidays)
    ledger = DeductionLedger(repository, clock=clock, policy=config.deductions)
    return PayrollServices(
        repository=repository,
        aggregator=aggregator,
        ledger=ledger,
        summarizer=PayrollSummarizer(aggregator, ledger, repository, policy=config.payroll),
        compensations=CompensationLedger(repository, clock=clock),
    )


__all__ = [
    "CompensationLedger",
    "DeductionApplication",
    "DeductionLedger",
    "FormatMigrator",
    "MigrationReport",
    "PayrollServices",
    "PayrollSummarizer",
    "PeriodAggregate",
    "PeriodAggregator",
    "ReversalOutcome",
    "ReversalReport",
    "build_services",
]
