"""Cent-exact money helpers.

Amounts enter the engine as whatever the data layer hands over (floats from
JSON, strings from spreadsheets, Decimals from a database). They are turned
into integer cents before any arithmetic and back into two-place Decimals
only when a result is handed out.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[int, float, str, Decimal]

CENT = Decimal('0.01')


def to_decimal(value: Number) -> Decimal:
    """Convert a value to Decimal without inheriting binary float noise.

    Infinity and NaN are rejected with ValueError.
    """
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary value")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        # str() gives the shortest repr, so 0.1 becomes Decimal('0.1')
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.replace('$', '').replace(',', '').strip()
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    else:
        result = Decimal(value)
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def to_cents(value: Number) -> int:
    """Round a monetary value to whole cents (half up)."""
    amount = to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    return int(amount * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def multiply_cents(cents: int, factor: Number) -> int:
    """Multiply a cent amount by a (possibly fractional) factor, rounding half up."""
    product = Decimal(cents) * to_decimal(factor)
    return int(product.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def divide_cents(cents: int, divisor: Number) -> int:
    """Divide a cent amount, rounding the quotient half up to a whole cent."""
    quotient = Decimal(cents) / to_decimal(divisor)
    return int(quotient.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
