"""
payroll_services.period_aggregator -- Period totals across month partitions.

Responsibility:
    Resolves the employee, loads attendance and compensation records from
    every (year, month) partition the period touches, and hands them to the
    pure ``fold_period`` engine.

Architecture position:
    Services -- imperative shell over ``payroll_engines.aggregation``.
    Reads through ``RecordRepository``; never writes.

Invariants enforced:
    - Every month overlapping ``[start_date, end_date]`` is loaded exactly
      once; the engine filters to the exact days.

Failure modes:
    - EmployeeNotFoundError: the employee directory has no such id (fatal).
    - InvalidPeriodError: ``start_date > end_date``.
    - DocumentCorruptError: a partition cannot be decoded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from payroll_engines.aggregation import PeriodTotals, fold_period
from payroll_engines.calendar import months_in_range
from payroll_kernel.domain.records import AttendanceDay, DayCompensation, Employee
from payroll_kernel.exceptions import EmployeeNotFoundError, InvalidPeriodError
from payroll_kernel.logging_config import get_logger
from payroll_store.collaborators import EmployeeDirectory, HolidayCalendar
from payroll_store.repository import RecordRepository

logger = get_logger("services.period_aggregator")


@dataclass(frozen=True)
class PeriodAggregate:
    """Period totals together with the employee they were computed for."""

    employee: Employee
    start_date: date
    end_date: date
    totals: PeriodTotals


class PeriodAggregator:
    def __init__(
        self,
        repository: RecordRepository,
        employees: EmployeeDirectory,
        holidays: HolidayCalendar,
    ):
        self._repository = repository
        self._employees = employees
        self._holidays = holidays

    def resolve_employee(self, employee_id: str) -> Employee:
        employee = self._employees.load_employee_by_id(employee_id)
        if employee is None:
            logger.warning("employee_not_found", extra={"employee_id": employee_id})
            raise EmployeeNotFoundError(employee_id)
        return employee

    def load_period_records(
        self, employee_id: str, start_date: date, end_date: date
    ) -> tuple[list[AttendanceDay], list[DayCompensation]]:
        attendance: list[AttendanceDay] = []
        compensations: list[DayCompensation] = []
        for year, month in months_in_range(start_date, end_date):
            attendance.extend(self._repository.load_attendance(employee_id, year, month))
            compensations.extend(
                self._repository.load_compensations(employee_id, year, month)
            )
        return attendance, compensations

    def aggregate(
        self, employee_id: str, start_date: date, end_date: date
    ) -> PeriodAggregate:
        if start_date > end_date:
            raise InvalidPeriodError(start_date.isoformat(), end_date.isoformat())
        employee = self.resolve_employee(employee_id)
        attendance, compensations = self.load_period_records(
            employee_id, start_date, end_date
        )

        totals = fold_period(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            daily_rate=employee.daily_rate,
            attendance=attendance,
            compensations=compensations,
            is_holiday=self._holidays.is_holiday,
        )
        logger.info(
            "period_aggregated",
            extra={
                "employee_id": employee_id,
                "start_date": start_date,
                "end_date": end_date,
                "days_worked": totals.days_worked,
                "absences": totals.absences,
                "gross_pay": totals.total_gross_pay,
            },
        )
        return PeriodAggregate(
            employee=employee,
            start_date=start_date,
            end_date=end_date,
            totals=totals,
        )
