"""Tests for deterministic payroll summary ids."""

from datetime import date

import pytest

from payroll_kernel.utils.payroll_id import (
    date_to_epoch_ms,
    epoch_ms_to_date,
    generate_payroll_id,
    parse_payroll_id,
)


class TestPayrollId:
    def test_known_value(self):
        assert (
            generate_payroll_id("E1", date(2024, 1, 1), date(2024, 1, 15))
            == "E1_1704067200000_1705276800000"
        )

    def test_same_inputs_same_id(self):
        a = generate_payroll_id("E1", date(2024, 1, 28), date(2024, 2, 5))
        b = generate_payroll_id("E1", date(2024, 1, 28), date(2024, 2, 5))
        assert a == b

    def test_different_period_different_id(self):
        a = generate_payroll_id("E1", date(2024, 1, 1), date(2024, 1, 15))
        b = generate_payroll_id("E1", date(2024, 1, 16), date(2024, 1, 31))
        assert a != b

    def test_parse_inverts_generate_with_underscored_employee(self):
        payroll_id = generate_payroll_id("EMP_007", date(2023, 12, 16), date(2024, 1, 5))
        assert parse_payroll_id(payroll_id) == ("EMP_007", date(2023, 12, 16), date(2024, 1, 5))

    @pytest.mark.parametrize("bad", ["E1", "E1_abc_123", "_1_2", "E1_1"])
    def test_parse_rejects_malformed(self, bad):
        with pytest.raises(ValueError):
            parse_payroll_id(bad)

    def test_blank_employee_rejected(self):
        with pytest.raises(ValueError):
            generate_payroll_id("", date(2024, 1, 1), date(2024, 1, 15))

    def test_epoch_helpers(self):
        assert date_to_epoch_ms(date(1970, 1, 2)) == 86_400_000
        assert epoch_ms_to_date(86_400_000 + 5_000) == date(1970, 1, 2)
