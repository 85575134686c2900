"""Tests for PeriodAggregator over stored partitions."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from payroll_kernel.domain.records import Holiday, HolidayType
from payroll_kernel.exceptions import EmployeeNotFoundError, InvalidPeriodError
from tests.builders import attendance, compensation


def _days(start: date, end: date):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


class TestPeriodAggregator:
    def test_unknown_employee(self, services, captured_logs):
        with pytest.raises(EmployeeNotFoundError):
            services.aggregator.aggregate("E404", date(2024, 1, 1), date(2024, 1, 15))
        assert any(r["message"] == "employee_not_found" for r in captured_logs())

    def test_inverted_period(self, services):
        with pytest.raises(InvalidPeriodError):
            services.aggregator.aggregate("E1", date(2024, 1, 15), date(2024, 1, 1))

    def test_totals_from_one_partition(self, services):
        services.repository.save_attendance(
            "E1",
            2024,
            1,
            [attendance("E1", d) for d in _days(date(2024, 1, 2), date(2024, 1, 6))]
            + [attendance("E1", date(2024, 1, 8), present=False)],
        )
        services.repository.save_compensations(
            "E1",
            2024,
            1,
            [compensation("E1", date(2024, 1, 3), overtime_pay=Decimal("150"))],
        )

        result = services.aggregator.aggregate("E1", date(2024, 1, 1), date(2024, 1, 15))

        assert result.employee.id == "E1"
        assert result.totals.days_worked == 5
        assert result.totals.absences == 1
        assert result.totals.basic_pay == Decimal("2500")
        assert result.totals.total_gross_pay == Decimal("2650")

    def test_period_spanning_two_partitions(self, services):
        services.repository.save_attendance(
            "E1", 2024, 1, [attendance("E1", d) for d in _days(date(2024, 1, 29), date(2024, 1, 31))]
        )
        services.repository.save_attendance(
            "E1", 2024, 2, [attendance("E1", d) for d in _days(date(2024, 2, 1), date(2024, 2, 2))]
        )

        result = services.aggregator.aggregate("E1", date(2024, 1, 28), date(2024, 2, 5))

        assert result.totals.days_worked == 5
        assert result.totals.basic_pay == Decimal("2500")

    def test_holiday_absence_not_counted(self, services, holidays):
        holidays.add(
            Holiday(
                id="H1",
                name="Bank holiday",
                start_date=date(2024, 1, 2),
                end_date=date(2024, 1, 2),
                type=HolidayType.REGULAR,
            )
        )
        services.repository.save_attendance(
            "E1", 2024, 1, [attendance("E1", date(2024, 1, 2), present=False)]
        )
        result = services.aggregator.aggregate("E1", date(2024, 1, 1), date(2024, 1, 15))
        assert result.totals.absences == 0

    def test_logs_aggregate(self, services, captured_logs):
        services.aggregator.aggregate("E1", date(2024, 1, 1), date(2024, 1, 15))
        [record] = [r for r in captured_logs() if r["message"] == "period_aggregated"]
        assert record["days_worked"] == 0
        assert record["start_date"] == "2024-01-01"
