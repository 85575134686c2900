"""
Record codecs -- JSON-shaped dicts to and from domain value objects.

Stored records use the camelCase field names of the persisted documents.
Decoding is tolerant of the two representations a field may arrive in:
native JSON (numbers, bools, objects) from JSON documents and plain strings
from CSV cells.  Missing optional fields decode to None.

Failure modes:
    - ``ValueError`` (or ``KeyError`` for a missing required field) when a
      record cannot be decoded.  ``RecordRepository`` wraps both in
      ``DocumentCorruptError``; the migrator reports them per row.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from payroll_kernel.domain.backup import BackupChange, BackupEntry
from payroll_kernel.domain.money import (
    decimal_to_json,
    optional_decimal,
    to_decimal,
)
from payroll_kernel.domain.records import (
    COMPENSATION_DOCUMENT_FIELDS,
    AttendanceDay,
    DayCompensation,
    DayType,
    LeaveType,
)
from payroll_kernel.domain.sources import (
    ApprovalStatus,
    CashAdvance,
    InstallmentDetails,
    Loan,
    LoanDeduction,
    LoanStatus,
    LoanType,
    PaymentSchedule,
    Short,
    SourceStatus,
)
from payroll_kernel.domain.summary import (
    DeductionBreakdown,
    LoanDeductionRef,
    PayrollSummary,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("store.codecs")

E = TypeVar("E", bound=Enum)

_DECIMAL_COMPENSATION_FIELDS = frozenset(
    {
        "daily_rate",
        "hours_worked",
        "overtime_minutes",
        "overtime_pay",
        "undertime_minutes",
        "undertime_deduction",
        "late_minutes",
        "late_deduction",
        "holiday_bonus",
        "leave_pay",
        "night_differential_hours",
        "night_differential_pay",
        "gross_pay",
        "deductions",
        "net_pay",
    }
)
_ZERO_DEFAULT_FIELDS = frozenset(
    {"daily_rate", "night_differential_hours", "night_differential_pay"}
)


# ---------------------------------------------------------------------------
# Primitive decoders
# ---------------------------------------------------------------------------


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def decode_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Not an integer: {value!r}")
    if isinstance(value, int):
        return value
    number = to_decimal(value, default=None)
    if number is None or number != number.to_integral_value():
        raise ValueError(f"Not an integer: {value!r}")
    return int(number)


def decode_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if _blank(value):
        return False
    return str(value).strip().lower() in ("true", "1", "yes")


def decode_str(value: Any) -> str | None:
    if _blank(value):
        return None
    return str(value)


def decode_date(value: Any) -> date | None:
    """ISO dates, ISO datetimes (date part kept) and legacy ``M/D/YYYY``."""
    if _blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if "/" in text:
        month, day, year = (int(part) for part in text.split("/"))
        return date(year, month, day)
    return date.fromisoformat(text[:10])


def decode_datetime(value: Any) -> datetime | None:
    if _blank(value):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def decode_enum(cls: type[E], value: Any, default: E | None = None) -> E | None:
    if _blank(value):
        return default
    return cls(str(value).strip())


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _enum_value(value: Enum | None) -> str | None:
    return value.value if value is not None else None


def _decimal_map(value: Any) -> dict[str, Decimal] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"Expected an object of amounts, got {type(value).__name__}")
    return {str(k): to_decimal(v) for k, v in value.items()}


def _amounts_to_json(value: dict[str, Decimal] | None) -> dict[str, Any] | None:
    if value is None:
        return None
    return {k: decimal_to_json(v) for k, v in value.items()}


def _drop_none(record: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in record.items() if v is not None}


# ---------------------------------------------------------------------------
# Attendance and compensation
# ---------------------------------------------------------------------------


def attendance_from_record(record: dict[str, Any]) -> AttendanceDay:
    return AttendanceDay(
        employee_id=str(record["employeeId"]),
        year=decode_int(record["year"]),
        month=decode_int(record["month"]),
        day=decode_int(record["day"]),
        time_in=decode_str(record.get("timeIn")),
        time_out=decode_str(record.get("timeOut")),
    )


def attendance_to_record(attendance: AttendanceDay) -> dict[str, Any]:
    return {
        "employeeId": attendance.employee_id,
        "year": attendance.year,
        "month": attendance.month,
        "day": attendance.day,
        "timeIn": attendance.time_in,
        "timeOut": attendance.time_out,
    }


def _decode_compensation_field(name: str, value: Any) -> Any:
    if name in _DECIMAL_COMPENSATION_FIELDS:
        if name in _ZERO_DEFAULT_FIELDS:
            return to_decimal(value)
        return optional_decimal(value)
    if name in ("year", "month", "day"):
        return decode_int(value)
    if name == "employee_id":
        return str(value)
    if name == "day_type":
        return decode_enum(DayType, value, DayType.REGULAR)
    if name == "leave_type":
        return decode_enum(LeaveType, value)
    if name in ("manual_override", "absence"):
        return decode_bool(value)
    return decode_str(value)


def compensation_from_record(record: dict[str, Any]) -> DayCompensation:
    for required in ("employee_id", "year", "month", "day"):
        if _blank(record.get(COMPENSATION_DOCUMENT_FIELDS[required])):
            raise KeyError(COMPENSATION_DOCUMENT_FIELDS[required])
    kwargs = {
        name: _decode_compensation_field(name, record.get(doc_name))
        for name, doc_name in COMPENSATION_DOCUMENT_FIELDS.items()
    }
    return DayCompensation(**kwargs)


def compensation_to_record(compensation: DayCompensation) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for name, doc_name in COMPENSATION_DOCUMENT_FIELDS.items():
        value = getattr(compensation, name)
        if isinstance(value, Decimal):
            value = decimal_to_json(value)
        elif isinstance(value, Enum):
            value = value.value
        record[doc_name] = value
    return _drop_none(record)


def compensation_field_value(field_name: str, value: Any) -> tuple[str, Any]:
    """Attribute name and decoded value for one stored compensation field."""
    for name, doc_name in COMPENSATION_DOCUMENT_FIELDS.items():
        if doc_name == field_name:
            return name, _decode_compensation_field(name, value)
    raise KeyError(field_name)


# ---------------------------------------------------------------------------
# Deduction sources
# ---------------------------------------------------------------------------


def _installments_from(value: Any) -> InstallmentDetails | None:
    if not value:
        return None
    return InstallmentDetails(
        number_of_payments=decode_int(value.get("numberOfPayments", 0)),
        amount_per_payment=to_decimal(value.get("amountPerPayment")),
        remaining_payments=decode_int(value.get("remainingPayments", 0)),
    )


def cash_advance_from_record(record: dict[str, Any]) -> CashAdvance:
    amount = to_decimal(record["amount"])
    return CashAdvance(
        id=str(record["id"]),
        employee_id=str(record["employeeId"]),
        date=decode_date(record["date"]),
        amount=amount,
        remaining_unpaid=to_decimal(record.get("remainingUnpaid"), default=amount),
        reason=decode_str(record.get("reason")) or "",
        approval_status=decode_enum(
            ApprovalStatus, record.get("approvalStatus"), ApprovalStatus.PENDING
        ),
        status=decode_enum(SourceStatus, record.get("status"), SourceStatus.UNPAID),
        payment_schedule=decode_enum(
            PaymentSchedule, record.get("paymentSchedule"), PaymentSchedule.ONE_TIME
        ),
        installment_details=_installments_from(record.get("installmentDetails")),
        updated_at=decode_datetime(record.get("updatedAt")),
    )


def cash_advance_to_record(advance: CashAdvance) -> dict[str, Any]:
    details = advance.installment_details
    return _drop_none(
        {
            "id": advance.id,
            "employeeId": advance.employee_id,
            "date": _iso(advance.date),
            "amount": decimal_to_json(advance.amount),
            "remainingUnpaid": decimal_to_json(advance.remaining_unpaid),
            "reason": advance.reason,
            "approvalStatus": advance.approval_status.value,
            "status": advance.status.value,
            "paymentSchedule": advance.payment_schedule.value,
            "installmentDetails": (
                {
                    "numberOfPayments": details.number_of_payments,
                    "amountPerPayment": decimal_to_json(details.amount_per_payment),
                    "remainingPayments": details.remaining_payments,
                }
                if details is not None
                else None
            ),
            "updatedAt": _iso(advance.updated_at),
        }
    )


def short_from_record(record: dict[str, Any]) -> Short:
    amount = to_decimal(record["amount"])
    return Short(
        id=str(record["id"]),
        employee_id=str(record["employeeId"]),
        date=decode_date(record["date"]),
        amount=amount,
        remaining_unpaid=to_decimal(record.get("remainingUnpaid"), default=amount),
        reason=decode_str(record.get("reason")) or "",
        status=decode_enum(SourceStatus, record.get("status"), SourceStatus.UNPAID),
        updated_at=decode_datetime(record.get("updatedAt")),
    )


def short_to_record(short: Short) -> dict[str, Any]:
    return _drop_none(
        {
            "id": short.id,
            "employeeId": short.employee_id,
            "date": _iso(short.date),
            "amount": decimal_to_json(short.amount),
            "remainingUnpaid": decimal_to_json(short.remaining_unpaid),
            "reason": short.reason,
            "status": short.status.value,
            "updatedAt": _iso(short.updated_at),
        }
    )


def loan_from_record(record: dict[str, Any]) -> Loan:
    amount = to_decimal(record["amount"])
    entries = record.get("deductions")
    if entries is None:
        entries = {}
    if not isinstance(entries, dict):
        raise ValueError("Loan deductions must be an object keyed by deduction id")
    deductions = tuple(
        LoanDeduction(
            deduction_id=str(deduction_id),
            amount_deducted=to_decimal(entry.get("amountDeducted")),
            date_deducted=decode_datetime(entry.get("dateDeducted")),
        )
        for deduction_id, entry in entries.items()
    )
    return Loan(
        id=str(record["id"]),
        employee_id=str(record["employeeId"]),
        date=decode_date(record["date"]),
        amount=amount,
        remaining_balance=to_decimal(record.get("remainingBalance"), default=amount),
        type=decode_enum(LoanType, record.get("type"), LoanType.OTHER),
        status=decode_enum(LoanStatus, record.get("status"), LoanStatus.PENDING),
        interest_rate=to_decimal(record.get("interestRate")),
        term=decode_int(record.get("term") or 0),
        monthly_payment=to_decimal(record.get("monthlyPayment")),
        next_payment_date=decode_date(record.get("nextPaymentDate")),
        reason=decode_str(record.get("reason")) or "",
        deductions=deductions,
        updated_at=decode_datetime(record.get("updatedAt")),
    )


def loan_to_record(loan: Loan) -> dict[str, Any]:
    return _drop_none(
        {
            "id": loan.id,
            "employeeId": loan.employee_id,
            "date": _iso(loan.date),
            "amount": decimal_to_json(loan.amount),
            "type": loan.type.value,
            "status": loan.status.value,
            "interestRate": decimal_to_json(loan.interest_rate),
            "term": loan.term,
            "monthlyPayment": decimal_to_json(loan.monthly_payment),
            "remainingBalance": decimal_to_json(loan.remaining_balance),
            "nextPaymentDate": _iso(loan.next_payment_date),
            "reason": loan.reason,
            "deductions": {
                entry.deduction_id: {
                    "amountDeducted": decimal_to_json(entry.amount_deducted),
                    "dateDeducted": _iso(entry.date_deducted),
                }
                for entry in loan.deductions
            },
            "updatedAt": _iso(loan.updated_at),
        }
    )


# ---------------------------------------------------------------------------
# Payroll summaries
# ---------------------------------------------------------------------------


def _ids(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(part for part in value.split(",") if part)
    return tuple(str(v) for v in value)


def _loan_refs(record: dict[str, Any]) -> tuple[LoanDeductionRef, ...]:
    refs = []
    for ref in record.get("loanDeductionIds") or []:
        if not isinstance(ref, dict) or not ref.get("loanId") or not ref.get("deductionId"):
            # Without a deduction id the loan entry cannot be reversed.
            logger.warning(
                "loan_deduction_ref_skipped",
                extra={"payroll_id": record.get("id"), "ref": ref},
            )
            continue
        refs.append(
            LoanDeductionRef(
                loan_id=str(ref["loanId"]),
                deduction_id=str(ref["deductionId"]),
                amount=to_decimal(ref.get("amount")),
            )
        )
    return tuple(refs)


def summary_from_record(record: dict[str, Any]) -> PayrollSummary:
    breakdown = record.get("deductions") or {}
    return PayrollSummary(
        id=str(record["id"]),
        employee_id=str(record["employeeId"]),
        employee_name=decode_str(record.get("employeeName")) or "",
        start_date=decode_date(record["startDate"]),
        end_date=decode_date(record["endDate"]),
        daily_rate=to_decimal(record.get("dailyRate")),
        basic_pay=to_decimal(record.get("basicPay")),
        overtime=to_decimal(record.get("overtime")),
        gross_pay=to_decimal(record.get("grossPay")),
        deductions=DeductionBreakdown(
            sss=to_decimal(breakdown.get("sss")),
            phil_health=to_decimal(breakdown.get("philHealth")),
            pag_ibig=to_decimal(breakdown.get("pagIbig")),
            cash_advance_deductions=to_decimal(breakdown.get("cashAdvanceDeductions")),
            short_deductions=to_decimal(breakdown.get("shortDeductions")),
            loan_deductions=to_decimal(breakdown.get("loanDeductions")),
            others=to_decimal(breakdown.get("others")),
        ),
        net_pay=to_decimal(record.get("netPay")),
        payment_date=decode_date(record.get("paymentDate")) or decode_date(record["endDate"]),
        days_worked=decode_int(record.get("daysWorked") or 0),
        absences=decode_int(record.get("absences") or 0),
        overtime_minutes=to_decimal(record.get("overtimeMinutes")),
        undertime_deduction=to_decimal(record.get("undertimeDeduction")),
        undertime_minutes=to_decimal(record.get("undertimeMinutes")),
        late_deduction=to_decimal(record.get("lateDeduction")),
        late_minutes=to_decimal(record.get("lateMinutes")),
        holiday_bonus=to_decimal(record.get("holidayBonus")),
        night_differential_hours=to_decimal(record.get("nightDifferentialHours")),
        night_differential_pay=to_decimal(record.get("nightDifferentialPay")),
        leave_pay=to_decimal(record.get("leavePay")),
        allowances=to_decimal(record.get("allowances")),
        day_type=decode_enum(DayType, record.get("dayType")),
        leave_type=decode_enum(LeaveType, record.get("leaveType")),
        cash_advance_ids=_ids(record.get("cashAdvanceIDs")),
        short_ids=_ids(record.get("shortIDs")),
        loan_deduction_ids=_loan_refs(record),
        cash_advance_amounts=_decimal_map(record.get("cashAdvanceAmounts")),
        short_amounts=_decimal_map(record.get("shortAmounts")),
    )


def summary_to_record(summary: PayrollSummary) -> dict[str, Any]:
    d = summary.deductions
    return _drop_none(
        {
            "id": summary.id,
            "employeeId": summary.employee_id,
            "employeeName": summary.employee_name,
            "startDate": _iso(summary.start_date),
            "endDate": _iso(summary.end_date),
            "dailyRate": decimal_to_json(summary.daily_rate),
            "basicPay": decimal_to_json(summary.basic_pay),
            "overtime": decimal_to_json(summary.overtime),
            "overtimeMinutes": decimal_to_json(summary.overtime_minutes),
            "undertimeDeduction": decimal_to_json(summary.undertime_deduction),
            "undertimeMinutes": decimal_to_json(summary.undertime_minutes),
            "lateDeduction": decimal_to_json(summary.late_deduction),
            "lateMinutes": decimal_to_json(summary.late_minutes),
            "holidayBonus": decimal_to_json(summary.holiday_bonus),
            "nightDifferentialHours": decimal_to_json(summary.night_differential_hours),
            "nightDifferentialPay": decimal_to_json(summary.night_differential_pay),
            "dayType": _enum_value(summary.day_type),
            "leaveType": _enum_value(summary.leave_type),
            "leavePay": decimal_to_json(summary.leave_pay),
            "grossPay": decimal_to_json(summary.gross_pay),
            "allowances": decimal_to_json(summary.allowances),
            "deductions": {
                "sss": decimal_to_json(d.sss),
                "philHealth": decimal_to_json(d.phil_health),
                "pagIbig": decimal_to_json(d.pag_ibig),
                "cashAdvanceDeductions": decimal_to_json(d.cash_advance_deductions),
                "shortDeductions": decimal_to_json(d.short_deductions),
                "loanDeductions": decimal_to_json(d.loan_deductions),
                "others": decimal_to_json(d.others),
            },
            "netPay": decimal_to_json(summary.net_pay),
            "paymentDate": _iso(summary.payment_date),
            "daysWorked": summary.days_worked,
            "absences": summary.absences,
            "cashAdvanceIDs": list(summary.cash_advance_ids),
            "shortIDs": list(summary.short_ids),
            "loanDeductionIds": [
                {
                    "loanId": ref.loan_id,
                    "deductionId": ref.deduction_id,
                    "amount": decimal_to_json(ref.amount),
                }
                for ref in summary.loan_deduction_ids
            ],
            "cashAdvanceAmounts": _amounts_to_json(summary.cash_advance_amounts),
            "shortAmounts": _amounts_to_json(summary.short_amounts),
        }
    )


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------


def backup_entry_from_record(record: dict[str, Any]) -> BackupEntry:
    return BackupEntry(
        timestamp=str(record["timestamp"]),
        changes=tuple(
            BackupChange(
                day=decode_int(change["day"]),
                field=str(change["field"]),
                old_value=change.get("oldValue"),
                new_value=change.get("newValue"),
            )
            for change in record.get("changes", [])
        ),
    )


def backup_entry_to_record(entry: BackupEntry) -> dict[str, Any]:
    return {
        "timestamp": entry.timestamp,
        "changes": [
            {
                "day": change.day,
                "field": change.field,
                "oldValue": change.old_value,
                "newValue": change.new_value,
            }
            for change in entry.changes
        ],
    }


__all__ = [
    "attendance_from_record",
    "attendance_to_record",
    "backup_entry_from_record",
    "backup_entry_to_record",
    "cash_advance_from_record",
    "cash_advance_to_record",
    "compensation_field_value",
    "compensation_from_record",
    "compensation_to_record",
    "decode_date",
    "decode_datetime",
    "decode_int",
    "loan_from_record",
    "loan_to_record",
    "short_from_record",
    "short_to_record",
    "summary_from_record",
    "summary_to_record",
]
