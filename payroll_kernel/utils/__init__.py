"""Utility modules for the payroll kernel."""

from payroll_kernel.utils.payroll_id import generate_payroll_id, parse_payroll_id

__all__ = [
    "generate_payroll_id",
    "parse_payroll_id",
]
