"""Tests for the in-memory employee and holiday collaborators."""

from datetime import date
from decimal import Decimal

from payroll_kernel.domain.records import Holiday, HolidayType
from payroll_store.collaborators import (
    EmployeeDirectory,
    HolidayCalendar,
    InMemoryEmployeeDirectory,
    InMemoryHolidayCalendar,
)


class TestInMemoryCollaborators:
    def test_satisfy_protocols(self, employees, holidays):
        assert isinstance(employees, EmployeeDirectory)
        assert isinstance(holidays, HolidayCalendar)

    def test_employee_lookup(self, employee):
        directory = InMemoryEmployeeDirectory()
        assert directory.load_employee_by_id("E1") is None
        directory.add(employee)
        assert directory.load_employee_by_id("E1") is employee

    def test_holiday_ranges_are_inclusive(self):
        new_year = Holiday(
            id="H1",
            name="New Year",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 2),
            type=HolidayType.REGULAR,
            multiplier=Decimal("2"),
        )
        calendar = InMemoryHolidayCalendar([new_year])
        assert calendar.is_holiday(date(2024, 1, 2))
        assert not calendar.is_holiday(date(2024, 1, 3))
        assert calendar.holidays_on(date(2024, 1, 1)) == [new_year]
        assert calendar.holidays_on(date(2023, 12, 31)) == []
