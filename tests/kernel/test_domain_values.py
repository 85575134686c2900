"""Tests for kernel value objects: money coercion, day records, sources, backups."""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from payroll_kernel.domain.backup import BackupChange, BackupEntry, BackupMonth
from payroll_kernel.domain.money import decimal_to_json, optional_decimal, sum_amounts, to_decimal
from payroll_kernel.domain.records import AttendanceDay, DayCompensation, DayType, Holiday
from payroll_kernel.domain.sources import InstallmentDetails, LoanDeduction
from payroll_kernel.domain.summary import DeductionBreakdown
from tests.builders import cash_advance, loan, short

STAMP = datetime(2024, 1, 15, 9, 0, tzinfo=UTC)


class TestMoney:
    def test_numbers_and_strings_coerce(self):
        assert to_decimal(500) == Decimal("500")
        assert to_decimal("1000.50") == Decimal("1000.50")
        assert to_decimal(0.1) == Decimal("0.1")

    def test_blank_uses_default(self):
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("  ") == Decimal("0")
        assert optional_decimal("") is None
        assert optional_decimal(None) is None

    def test_non_numeric_rejected(self):
        with pytest.raises(ValueError):
            to_decimal("abc")
        with pytest.raises(ValueError):
            to_decimal(True)

    def test_sum_treats_none_as_zero(self):
        assert sum_amounts([Decimal("1"), None, Decimal("2.5")]) == Decimal("3.5")

    def test_json_rendering(self):
        assert decimal_to_json(Decimal("1000.00")) == 1000
        assert isinstance(decimal_to_json(Decimal("1000.00")), int)
        assert decimal_to_json(Decimal("12.5")) == 12.5
        assert decimal_to_json(None) is None


class TestDayRecords:
    def test_attendance_complete_only_with_both_times(self):
        assert AttendanceDay("E1", 2024, 1, 2, "08:00", "17:00").is_complete
        assert not AttendanceDay("E1", 2024, 1, 2, "08:00", None).is_complete
        assert not AttendanceDay("E1", 2024, 1, 2, "", "17:00").is_complete

    def test_impossible_date_has_no_calendar_date(self):
        assert AttendanceDay("E1", 2024, 2, 30).calendar_date() is None
        assert DayCompensation("E1", 2024, 2, 29).calendar_date() == date(2024, 2, 29)

    @pytest.mark.parametrize("year,month,day", [(2024, 13, 1), (2024, 0, 1), (0, 1, 1), (2024, 1, 32)])
    def test_out_of_range_partition_rejected(self, year, month, day):
        with pytest.raises(ValueError):
            DayCompensation("E1", year, month, day)

    def test_legacy_rest_day_spelling(self):
        assert DayType("RestDay") is DayType.REST_DAY
        assert DayType("Rest Day") is DayType.REST_DAY

    def test_holiday_covers_inclusive_range(self):
        holiday = Holiday("H1", "Holy Week", date(2024, 3, 28), date(2024, 3, 29))
        assert holiday.covers(date(2024, 3, 28))
        assert holiday.covers(date(2024, 3, 29))
        assert not holiday.covers(date(2024, 3, 30))

    def test_holiday_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            Holiday("H1", "Bad", date(2024, 3, 29), date(2024, 3, 28))


class TestSources:
    def test_remaining_above_amount_rejected(self):
        with pytest.raises(ValueError):
            cash_advance(amount="1000", remaining="1500")

    def test_negative_remaining_rejected(self):
        with pytest.raises(ValueError):
            short(amount="300", remaining="-1")

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValueError):
            cash_advance(amount="0")

    def test_installment_needs_positive_payment(self):
        with pytest.raises(ValueError):
            InstallmentDetails(number_of_payments=4, amount_per_payment=Decimal("0"), remaining_payments=4)

    def test_loan_duplicate_deduction_ids_rejected(self):
        entry = LoanDeduction("D1", Decimal("100"), STAMP)
        with pytest.raises(ValueError):
            loan(deductions=(entry, entry))

    def test_loan_total_deducted_and_lookup(self):
        entries = (
            LoanDeduction("D1", Decimal("100"), STAMP),
            LoanDeduction("D2", Decimal("250"), STAMP),
        )
        l1 = loan(remaining="5650", deductions=entries)
        assert l1.total_deducted == Decimal("350")
        assert l1.find_deduction("D2").amount_deducted == Decimal("250")
        assert l1.find_deduction("D3") is None


class TestSummaryValues:
    def test_breakdown_total_sums_every_field(self):
        breakdown = DeductionBreakdown(
            sss=Decimal("100"),
            phil_health=Decimal("50"),
            pag_ibig=Decimal("25"),
            cash_advance_deductions=Decimal("1000"),
            short_deductions=Decimal("300"),
            loan_deductions=Decimal("500"),
            others=Decimal("20"),
        )
        assert breakdown.total == Decimal("1995")


class TestBackupMonth:
    def test_appended_is_new_instance(self):
        month = BackupMonth("E1", 2024, 1)
        entry = BackupEntry("2024-01-01T12:00:00.000Z", (BackupChange(3, "overtimePay", None, 150),))
        grown = month.appended(entry)
        assert month.backups == ()
        assert grown.backups == (entry,)
        assert grown.find("2024-01-01T12:00:00.000Z") is entry
        assert grown.find("missing") is None

    def test_changes_for_day(self):
        entry = BackupEntry(
            "t1",
            (
                BackupChange(3, "overtimePay", None, 150),
                BackupChange(4, "overtimePay", None, 75),
            ),
        )
        assert [c.new_value for c in entry.changes_for_day(4)] == [75]
