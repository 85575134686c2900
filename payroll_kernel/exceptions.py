"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll runs move money out of employee balances.  Callers must be able to
tell a fatal condition (wrong employee, mismatched deduction breakdown) from
a recoverable one (a cash advance deleted since the payroll was generated)
without parsing message strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        summarizer.generate(employee_id, start, end, requested)
    except DeductionMismatchError as e:
        show_error(e.code, e.kind, e.declared_total, e.itemized_total)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- EmployeeError
    |   +-- EmployeeNotFoundError
    |
    +-- PayrollError
    |   +-- PayrollNotFoundError
    |   +-- DeductionMismatchError
    |   +-- InvalidPeriodError
    |
    +-- DeductionError
    |   +-- SourceNotFoundError
    |   +-- LoanDeductionNotFoundError
    |   +-- InvalidDeductionAmountError
    |
    +-- StorageError
    |   +-- DocumentCorruptError
    |   +-- BackupWriteError
    |   +-- BackupEntryNotFoundError
    |
    +-- MigrationError
        +-- MigrationRowError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                      | Severity     | When Raised
-----------|---------------------------|--------------|----------------------------------
Employee   | EMPLOYEE_NOT_FOUND        | fatal        | Employee collaborator returned None
-----------|---------------------------|--------------|----------------------------------
Payroll    | PAYROLL_NOT_FOUND         | fatal        | No summary with that id in end-month
           | DEDUCTION_MISMATCH        | fatal        | Per-id amounts != declared total
           | INVALID_PERIOD            | fatal        | start date after end date
-----------|---------------------------|--------------|----------------------------------
Deduction  | SOURCE_NOT_FOUND          | fatal/apply  | Source id not in any partition
           |                           | warn/reverse |
           | LOAN_DEDUCTION_NOT_FOUND  | warn/reverse | Loan has no such deduction entry
           | INVALID_DEDUCTION_AMOUNT  | fatal        | amount <= 0
-----------|---------------------------|--------------|----------------------------------
Storage    | DOCUMENT_CORRUPT          | fatal        | Partition document is not parseable
           | BACKUP_WRITE_FAILURE      | warn         | Audit entry could not be written
           | BACKUP_ENTRY_NOT_FOUND    | fatal        | Revert names an unknown backup entry
-----------|---------------------------|--------------|----------------------------------
Migration  | MIGRATION_ROW_ERROR       | warn         | Legacy CSV row could not be converted

"warn" errors are caught where they occur, logged, and reported in the
operation's result object.  They never abort the enclosing operation.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Employee-related exceptions


class EmployeeError(PayrollKernelError):
    """Base exception for employee lookup errors."""

    code: str = "EMPLOYEE_ERROR"


class EmployeeNotFoundError(EmployeeError):
    """Employee with given ID was not found by the employee collaborator."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


# Payroll-related exceptions


class PayrollError(PayrollKernelError):
    """Base exception for payroll summary errors."""

    code: str = "PAYROLL_ERROR"


class PayrollNotFoundError(PayrollError):
    """No payroll summary with the given id exists in its end-month partition."""

    code: str = "PAYROLL_NOT_FOUND"

    def __init__(self, payroll_id: str, year: int, month: int):
        self.payroll_id = payroll_id
        self.year = year
        self.month = month
        super().__init__(
            f"Payroll summary {payroll_id} not found in partition {year}-{month:02d}"
        )


class DeductionMismatchError(PayrollError):
    """
    Caller-supplied per-id deduction amounts do not sum to the declared total.

    Raised before any source is touched, so no balance is modified.
    """

    code: str = "DEDUCTION_MISMATCH"

    def __init__(self, kind: str, declared_total: str, itemized_total: str):
        self.kind = kind
        self.declared_total = declared_total
        self.itemized_total = itemized_total
        super().__init__(
            f"{kind} deductions declared {declared_total} but itemized "
            f"amounts sum to {itemized_total}"
        )


class InvalidPeriodError(PayrollError):
    """Pay period start date is after its end date."""

    code: str = "INVALID_PERIOD"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"Invalid pay period: {start_date} is after {end_date}")


# Deduction-source exceptions


class DeductionError(PayrollKernelError):
    """Base exception for deduction ledger errors."""

    code: str = "DEDUCTION_ERROR"


class SourceNotFoundError(DeductionError):
    """Deduction source (cash advance, short, loan) could not be located."""

    code: str = "SOURCE_NOT_FOUND"

    def __init__(self, kind: str, source_id: str, employee_id: str):
        self.kind = kind
        self.source_id = source_id
        self.employee_id = employee_id
        super().__init__(
            f"{kind} {source_id} not found for employee {employee_id}"
        )


class LoanDeductionNotFoundError(DeductionError):
    """Loan exists but carries no deduction entry with the given id."""

    code: str = "LOAN_DEDUCTION_NOT_FOUND"

    def __init__(self, loan_id: str, deduction_id: str):
        self.loan_id = loan_id
        self.deduction_id = deduction_id
        super().__init__(f"Loan {loan_id} has no deduction {deduction_id}")


class InvalidDeductionAmountError(DeductionError):
    """Deduction amount must be strictly positive."""

    code: str = "INVALID_DEDUCTION_AMOUNT"

    def __init__(self, source_id: str | None, amount: str):
        self.source_id = source_id
        self.amount = amount
        super().__init__(f"Invalid deduction amount {amount} for source {source_id}")


# Storage exceptions


class StorageError(PayrollKernelError):
    """Base exception for record store errors."""

    code: str = "STORAGE_ERROR"


class DocumentCorruptError(StorageError):
    """A partition document exists but cannot be parsed."""

    code: str = "DOCUMENT_CORRUPT"

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Corrupt document at {location}: {reason}")


class BackupWriteError(StorageError):
    """
    Audit entry could not be appended.

    Recoverable: the primary compensation write is kept.
    """

    code: str = "BACKUP_WRITE_FAILURE"

    def __init__(self, employee_id: str, year: int, month: int, reason: str):
        self.employee_id = employee_id
        self.year = year
        self.month = month
        self.reason = reason
        super().__init__(
            f"Backup write failed for {employee_id} {year}-{month:02d}: {reason}"
        )


class BackupEntryNotFoundError(StorageError):
    """No backup entry with that timestamp holds changes for the day."""

    code: str = "BACKUP_ENTRY_NOT_FOUND"

    def __init__(self, employee_id: str, year: int, month: int, timestamp: str, day: int):
        self.employee_id = employee_id
        self.year = year
        self.month = month
        self.timestamp = timestamp
        self.day = day
        super().__init__(
            f"No backup entry {timestamp} for day {day} of {employee_id} {year}-{month:02d}"
        )


# Migration exceptions


class MigrationError(PayrollKernelError):
    """Base exception for legacy format migration errors."""

    code: str = "MIGRATION_ERROR"


class MigrationRowError(MigrationError):
    """A single legacy CSV row could not be converted. The row is skipped."""

    code: str = "MIGRATION_ROW_ERROR"

    def __init__(self, path: str, row_number: int, reason: str):
        self.path = path
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"Row {row_number} of {path} skipped: {reason}")
