"""
Money helpers.

All amounts are ``Decimal``. Rounding to the currency minor unit happens
exactly once per transaction amount, with ``ROUND_HALF_UP``.
"""

from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Decimal | int | str | float) -> Decimal:
    """
    Convert a raw value to Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    and not its binary expansion.

    Args:
        value: Amount as Decimal, int, str or float

    Returns:
        Decimal value
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def minor_unit(decimals: int = 2) -> Decimal:
    """Smallest representable amount for the given precision."""
    return Decimal(1).scaleb(-decimals)


def quantize_money(amount: Decimal | int | str | float, decimals: int = 2) -> Decimal:
    """
    Round an amount to the currency minor unit.

    Args:
        amount: Raw amount
        decimals: Minor-unit precision (2 for cents)

    Returns:
        Rounded Decimal

    Example:
        >>> quantize_money(Decimal("3.335"))
        Decimal('3.34')
    """
    return to_decimal(amount).quantize(minor_unit(decimals), rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """Unrounded ``percent`` % of ``amount``."""
    return amount * percent / HUNDRED
