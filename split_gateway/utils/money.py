"""Currency rounding and minor-unit helpers"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
TOLERANCE = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Normalize numeric input to Decimal (floats go through str to avoid binary noise)"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value) -> Decimal:
    """
    Round to 2 decimal places, half away from zero.

    Decimal's ROUND_HALF_UP rounds ties away from zero for negative values too:
    2.675 -> 2.68, -2.675 -> -2.68.
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value) -> int:
    """Convert a currency amount to integer minor units (rounded first)"""
    return int(round_currency(value) * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer minor units back to a 2dp Decimal"""
    return (Decimal(cents) / 100).quantize(CENT)


def distribute_cents(total_cents: int, parts: int) -> List[int]:
    """
    Split an integer amount into `parts` near-equal integers that sum exactly.

    Largest-remainder allocation: every part gets the floor share and the first
    `remainder` parts get one extra unit.

    Example:
        1000 cents / 3 -> [334, 333, 333]
    """
    if parts <= 0:
        raise ValueError("parts must be positive")

    base, remainder = divmod(total_cents, parts)
    return [base + (1 if i < remainder else 0) for i in range(parts)]


def percentage_of(amount, total) -> Decimal:
    """Share of `total` represented by `amount`, in percent, rounded to 2dp"""
    total = to_decimal(total)
    if total == 0:
        return Decimal("0.00")
    return round_currency(to_decimal(amount) / total * HUNDRED)


def within_tolerance(actual, expected, tolerance=TOLERANCE) -> bool:
    """True when |actual - expected| < tolerance"""
    return abs(to_decimal(actual) - to_decimal(expected)) < to_decimal(tolerance)


def has_cent_precision(value) -> bool:
    """True when the value needs no more than 2 decimal places (10.50, 10.500 yes; 10.005 no)"""
    value = to_decimal(value)
    return value == value.quantize(CENT, rounding=ROUND_HALF_UP)
