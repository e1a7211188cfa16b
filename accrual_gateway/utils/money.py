"""Decimal helpers for currency amounts"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """Convert a stored or configured value to Decimal without going through float repr"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize(amount: Decimal) -> Decimal:
    """Round to whole cents, half away from zero"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, rate_percent: Decimal) -> Decimal:
    """
    Apply a percentage rate to an amount and round to cents.

    Example:
        percent_of(Decimal("100000"), Decimal("3.53")) -> Decimal("3530.00")
    """
    return quantize(amount * rate_percent / Decimal(100))


def format_rate(rate_percent: Decimal) -> str:
    """Render a rate for descriptions: 3.53 -> '3.53', 4.0 -> '4'"""
    normalized = rate_percent.normalize()
    # normalize() turns 40 into 4E+1
    if normalized == normalized.to_integral_value():
        return str(normalized.quantize(Decimal(1)))
    return str(normalized)
