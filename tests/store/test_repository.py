"""Typed repository behaviour, run against both store backends."""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from payroll_kernel.domain.backup import BackupChange, BackupEntry
from payroll_kernel.domain.sources import DeductionKind, LoanDeduction
from payroll_kernel.exceptions import DocumentCorruptError
from payroll_store.base import RecordKind
from tests.builders import attendance, cash_advance, compensation, loan, short


class TestRecordRepository:
    def test_attendance_round_trip(self, repository):
        days = [attendance("E1", date(2024, 1, 2)), attendance("E1", date(2024, 1, 3), present=False)]
        repository.save_attendance("E1", 2024, 1, days)
        assert repository.load_attendance("E1", 2024, 1) == days

    def test_compensation_round_trip(self, repository):
        records = [compensation("E1", date(2024, 1, 2), gross_pay=Decimal("512.5"), notes="ot")]
        repository.save_compensations("E1", 2024, 1, records)
        assert repository.load_compensations("E1", 2024, 1) == records

    @pytest.mark.parametrize(
        "kind, source",
        [
            (DeductionKind.CASH_ADVANCE, cash_advance(remaining="1500")),
            (DeductionKind.SHORT, short(updated_at=datetime(2024, 1, 7, tzinfo=UTC))),
            (
                DeductionKind.LOAN,
                loan(
                    remaining="5000",
                    deductions=(
                        LoanDeduction("D1", Decimal("1000"), datetime(2024, 1, 15, tzinfo=UTC)),
                    ),
                ),
            ),
        ],
    )
    def test_sources_round_trip(self, repository, kind, source):
        repository.save_sources(kind, "E1", 2024, 1, [source])
        assert repository.load_sources(kind, "E1", 2024, 1) == [source]
        assert repository.source_partitions(kind, "E1") == [(2024, 1)]

    def test_source_partitions_per_kind(self, repository):
        repository.save_sources(DeductionKind.SHORT, "E1", 2023, 12, [short()])
        repository.save_sources(DeductionKind.CASH_ADVANCE, "E1", 2024, 1, [cash_advance()])
        assert repository.source_partitions(DeductionKind.SHORT, "E1") == [(2023, 12)]

    def test_backups_appended_in_order(self, repository):
        first = BackupEntry("2024-01-01T12:00:00.000Z", (BackupChange(15, "grossPay", None, 500),))
        second = BackupEntry("2024-01-01T12:00:01.000Z", (BackupChange(15, "grossPay", 500, 450),))
        repository.append_backup("E1", 2024, 1, first)
        month = repository.append_backup("E1", 2024, 1, second)

        assert month.backups == (first, second)
        assert repository.load_backups("E1", 2024, 1).find(second.timestamp) == second

    def test_empty_backup_month(self, repository):
        month = repository.load_backups("E1", 2024, 1)
        assert month.backups == ()
        assert (month.employee_id, month.year, month.month) == ("E1", 2024, 1)

    def test_undecodable_record_raises_corrupt(self, repository):
        repository.store.save("E1", 2024, 1, RecordKind.SHORT, [{"id": "S1", "employeeId": "E1"}])
        with pytest.raises(DocumentCorruptError) as exc_info:
            repository.load_sources(DeductionKind.SHORT, "E1", 2024, 1)
        assert exc_info.value.location == "short_E1_2024_1"
