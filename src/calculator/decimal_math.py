"""
Decimal helpers for hours, pay and bill amounts.

Timesheet payloads arrive as JSON numbers. Every value is turned into a
Decimal through its string form, so 7.5 hours at $20.10 is computed as
exactly that and the invoice lines add up to the stored totals.

Amounts are rounded half-up to the cent; hours to the hundredth.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union, Optional, Iterable
import logging

logger = logging.getLogger(__name__)

Numeric = Union[int, float, str, Decimal]

CENT = Decimal("0.01")
HUNDREDTH_HOUR = Decimal("0.01")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Optional[Numeric], default: Numeric = 0) -> Decimal:
    """
    Coerce a request or database value to Decimal.

    ``None`` and ``""`` become ``default``. Booleans are refused even
    though Python treats them as ints: a ``true`` in an hours field is a
    client bug, not one hour.

    Raises:
        InvalidOperation: value is not numeric

    Examples:
        >>> to_decimal(37.5)
        Decimal('37.5')
        >>> to_decimal("", default=40)
        Decimal('40')
    """
    if value is None or value == "":
        value = default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation(f"Not a number: {value!r}")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def money(value: Numeric) -> Decimal:
    """
    Round to the cent.

    Examples:
        >>> money(8 * 20.125)
        Decimal('161.00')
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def hours(value: Numeric) -> Decimal:
    return to_decimal(value).quantize(HUNDREDTH_HOUR, rounding=ROUND_HALF_UP)


def add(*values: Numeric) -> Decimal:
    total = ZERO
    for v in values:
        total += to_decimal(v)
    return total


def multiply(a: Numeric, b: Numeric) -> Decimal:
    return to_decimal(a) * to_decimal(b)


def divide(a: Numeric, b: Numeric, default: Optional[Numeric] = None) -> Decimal:
    """
    ``a / b``. A zero divisor returns ``default`` when one is given
    (averages over an empty crew) and raises otherwise.

    Raises:
        InvalidOperation: b is zero and there is no default
    """
    divisor = to_decimal(b)
    if divisor == 0:
        if default is not None:
            return to_decimal(default)
        raise InvalidOperation("Division by zero")
    return to_decimal(a) / divisor


def min_decimal(*values: Numeric) -> Decimal:
    return min(to_decimal(v) for v in values)


def max_decimal(*values: Numeric) -> Decimal:
    return max(to_decimal(v) for v in values)


def clamp(value: Numeric, minimum: Numeric, maximum: Numeric) -> Decimal:
    return max_decimal(minimum, min_decimal(value, maximum))


def sum_money(values: Iterable[Numeric]) -> Decimal:
    """Total of a column of amounts, rounded once at the end."""
    return money(add(*values))


def percent_of(part: Numeric, whole: Numeric) -> Decimal:
    """
    Margin-style percentage to two places; 0 when ``whole`` is 0.

    Examples:
        >>> percent_of(450, 1200)
        Decimal('37.50')
    """
    return money(multiply(divide(part, whole, default=0), HUNDRED))


def to_float(value: Optional[Decimal]) -> float:
    """JSON-friendly float for API responses (None becomes 0.0)."""
    return float(value) if value is not None else 0.0


def format_money(value: Numeric) -> str:
    """
    Dollar string as printed in emails and reports.

    Examples:
        >>> format_money(1425)
        '$1,425.00'
        >>> format_money(-50)
        '-$50.00'
    """
    amount = money(value)
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"
