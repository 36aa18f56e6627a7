"""
Money Codec

Every monetary field in the ledger is an integer number of cents.
Decimal input (user entry, imports) is collapsed to cents here and
nowhere else.

Rounding is ROUND_HALF_UP on the decimal value, i.e. ties go away from
zero: 0.005 -> 1 cent, -0.005 -> -1 cent.
"""

from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation
from typing import Union

Amount = Union[Decimal, int, float, str, None]

CENTS_PER_UNIT = 100
_TWO_PLACES = Decimal("0.01")


def _to_decimal(amount: Amount) -> Decimal:
    """Parse an amount, treating absent or invalid input as zero."""
    if amount is None or isinstance(amount, bool):
        return Decimal(0)

    if isinstance(amount, Decimal):
        value = amount
    else:
        text = str(amount).strip().replace(",", "")
        if not text:
            return Decimal(0)
        try:
            value = Decimal(text)
        except InvalidOperation:
            return Decimal(0)

    if not value.is_finite():
        return Decimal(0)
    return value


def to_minor_units(amount: Amount) -> int:
    """
    Convert a decimal amount to integer cents.

    Floats go through their shortest repr, so 0.1 becomes exactly 10 cents
    rather than inheriting binary noise.

    Args:
        amount: Decimal, int, float or numeric string. None, empty,
                unparsable or out-of-range input counts as zero.

    Returns:
        Amount in cents, rounded to the nearest cent.
    """
    try:
        value = _to_decimal(amount) * CENTS_PER_UNIT
        return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except DecimalException:
        # Too many digits for the decimal context.
        return 0


def from_minor_units(cents: int) -> Decimal:
    """Exact decimal amount for a number of cents."""
    return (Decimal(int(cents)) / CENTS_PER_UNIT).quantize(_TWO_PLACES)


def to_display(cents: int) -> str:
    """Format cents with two decimal digits and thousands grouping."""
    return f"{from_minor_units(cents):,.2f}"
