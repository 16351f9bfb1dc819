"""
Money helpers

Amounts travel as Decimal internally; floats coming from JSON are converted
through ``str`` so 0.1 stays 0.1.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")

Number = Decimal | int | float | str


def to_decimal(value: Number) -> Decimal:
    """
    Coerce a number to Decimal without binary float noise.

    Example:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal("36.50")
        Decimal('36.50')
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Number) -> Decimal:
    """
    Round half-up to two decimal places.

    Example:
        >>> round2("109.589")
        Decimal('109.59')
        >>> round2(0.125)
        Decimal('0.13')
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
