"""
Pytest fixtures for the payroll engine test suite.

Provides:
- Structured logging configured once per session, captured per test
- Deterministic clock
- Record stores: file store under tmp_path, SQL store on in-memory SQLite
- Employee directory and holiday calendar collaborators
- Wired services over the parametrized store
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.domain.records import Employee
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_services import build_services
from payroll_store.collaborators import InMemoryEmployeeDirectory, InMemoryHolidayCalendar
from payroll_store.db import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from payroll_store.file_store import FileRecordStore
from payroll_store.repository import RecordRepository
from payroll_store.sql_store import SqlDocumentStore


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, services):
            services.summarizer.generate(...)
            logs = captured_logs()
            assert any(r["message"] == "payroll_generated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and stores
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def file_store(tmp_path, clock) -> FileRecordStore:
    return FileRecordStore(tmp_path, clock=clock)


@pytest.fixture
def sql_store(clock):
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield SqlDocumentStore(get_session_factory(), clock=clock)
    drop_tables()
    reset_engine()


@pytest.fixture(params=["file", "sql"])
def record_store(request):
    """Each test using this runs once per backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def repository(record_store) -> RecordRepository:
    return RecordRepository(record_store)


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def employee() -> Employee:
    return Employee(
        id="E1",
        name="Juan Dela Cruz",
        daily_rate=Decimal("500"),
        sss=Decimal("100"),
        phil_health=Decimal("50"),
        pag_ibig=Decimal("25"),
        employment_type="regular",
    )


@pytest.fixture
def employees(employee) -> InMemoryEmployeeDirectory:
    return InMemoryEmployeeDirectory([employee])


@pytest.fixture
def holidays() -> InMemoryHolidayCalendar:
    return InMemoryHolidayCalendar()


@pytest.fixture
def services(record_store, employees, holidays, clock):
    return build_services(record_store, employees, holidays, clock=clock)
