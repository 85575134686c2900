"""
Calendar arithmetic for month partitions.

Pure functions: which ``(year, month)`` partitions a period touches, which
partitions a lookback window covers, and which days are Sundays.
"""

from datetime import date

Partition = tuple[int, int]


def partition_of(day: date) -> Partition:
    return day.year, day.month


def shift_month(year: int, month: int, delta: int) -> Partition:
    """Move ``delta`` months from ``(year, month)``; negative goes back."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def months_in_range(start: date, end: date) -> list[Partition]:
    """
    Every ``(year, month)`` overlapping ``[start, end]``, oldest first.

    Steps month by month from ``start``'s month, so a period from Jan 28 to
    Feb 5 yields ``[(y, 1), (y, 2)]``.  Empty when ``start > end``.
    """
    if start > end:
        return []
    months: list[Partition] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        year, month = shift_month(year, month, 1)
    return months


def lookback_months(as_of: date, lookback: int) -> list[Partition]:
    """
    ``as_of``'s month plus ``lookback`` months before it, newest first.

    ``lookback_months(date(2024, 2, 10), 3)`` is
    ``[(2024, 2), (2024, 1), (2023, 12), (2023, 11)]``.
    """
    if lookback < 0:
        raise ValueError(f"lookback cannot be negative: {lookback}")
    return [shift_month(as_of.year, as_of.month, -i) for i in range(lookback + 1)]


def is_sunday(day: date) -> bool:
    return day.weekday() == 6


def format_partition(partition: Partition) -> str:
    year, month = partition
    return f"{year}-{month:02d}"
