"""
Money helpers -- Decimal coercion for document values.

Stored documents carry amounts as JSON numbers, numeric strings, or (in
legacy CSV) empty cells.  Every amount entering the domain passes through
``to_decimal`` so arithmetic is Decimal-only.
"""

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce a stored value to Decimal.

    None and blank strings map to ``default``.  Floats go through ``str`` so
    ``0.1`` becomes ``Decimal("0.1")``, not its binary expansion.

    Raises:
        ValueError: If the value is not numeric.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    text = str(value).strip()
    if not text:
        return default
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a numeric amount: {value!r}") from None


def optional_decimal(value: Any) -> Decimal | None:
    """Like ``to_decimal`` but keeps absence as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_decimal(value)


def sum_amounts(values: Iterable[Decimal | None]) -> Decimal:
    """Sum optional amounts, treating None as zero."""
    total = ZERO
    for value in values:
        if value is not None:
            total += value
    return total


def decimal_to_json(value: Decimal | None) -> int | float | None:
    """Render a Decimal as a JSON number (int when integral)."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)
