"""
Employee and holiday collaborators.

The engine only needs ``load_employee_by_id`` and ``is_holiday``; the
in-memory implementations back tests and embedding hosts that already hold
these lists.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol, runtime_checkable

from payroll_kernel.domain.records import Employee, Holiday


@runtime_checkable
class EmployeeDirectory(Protocol):
    def load_employee_by_id(self, employee_id: str) -> Employee | None:
        ...


@runtime_checkable
class HolidayCalendar(Protocol):
    def is_holiday(self, day: date) -> bool:
        ...


class InMemoryEmployeeDirectory:
    def __init__(self, employees: Iterable[Employee] = ()):
        self._employees = {e.id: e for e in employees}

    def add(self, employee: Employee) -> None:
        self._employees[employee.id] = employee

    def load_employee_by_id(self, employee_id: str) -> Employee | None:
        return self._employees.get(employee_id)


class InMemoryHolidayCalendar:
    """Holidays as inclusive date ranges."""

    def __init__(self, holidays: Iterable[Holiday] = ()):
        self._holidays = list(holidays)

    def add(self, holiday: Holiday) -> None:
        self._holidays.append(holiday)

    def holidays_on(self, day: date) -> list[Holiday]:
        return [h for h in self._holidays if h.covers(day)]

    def is_holiday(self, day: date) -> bool:
        return any(h.covers(day) for h in self._holidays)
