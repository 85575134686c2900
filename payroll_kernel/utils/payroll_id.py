"""
Deterministic payroll summary ids.

The id of a summary is derived from ``(employee_id, start_date, end_date)``
alone, so regenerating the same period addresses the same stored record.

Format: ``{employee_id}_{start_ms}_{end_ms}`` where ``*_ms`` is the epoch
milliseconds of the date's UTC midnight.
"""

from datetime import UTC, date, datetime, timedelta

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MS_PER_DAY = 86_400_000


def date_to_epoch_ms(day: date) -> int:
    """Epoch milliseconds of ``day`` at 00:00 UTC."""
    return (day - _EPOCH.date()).days * _MS_PER_DAY


def epoch_ms_to_date(ms: int) -> date:
    """Inverse of ``date_to_epoch_ms``; the time-of-day part is dropped."""
    return (_EPOCH + timedelta(milliseconds=ms)).date()


def generate_payroll_id(employee_id: str, start_date: date, end_date: date) -> str:
    """
    Generate the id of the summary for one employee and period.

    Example:
        >>> generate_payroll_id("E1", date(2024, 1, 1), date(2024, 1, 15))
        'E1_1704067200000_1705276800000'
    """
    if not employee_id:
        raise ValueError("employee_id is required")
    return f"{employee_id}_{date_to_epoch_ms(start_date)}_{date_to_epoch_ms(end_date)}"


def parse_payroll_id(payroll_id: str) -> tuple[str, date, date]:
    """
    Split a payroll id into ``(employee_id, start_date, end_date)``.

    The employee id may itself contain underscores, so the two timestamps
    are taken from the right.

    Raises:
        ValueError: If the id does not end in two integer timestamps.
    """
    parts = payroll_id.rsplit("_", 2)
    if len(parts) != 3 or not parts[0]:
        raise ValueError(f"Invalid payroll id format: {payroll_id}")
    employee_id, start_ms, end_ms = parts
    try:
        return employee_id, epoch_ms_to_date(int(start_ms)), epoch_ms_to_date(int(end_ms))
    except ValueError:
        raise ValueError(f"Invalid payroll id format: {payroll_id}") from None
