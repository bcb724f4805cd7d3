"""
Money helpers.

Prices are Decimal everywhere, rounded half-up to cents, and travel to the
catalog as two-fraction-digit strings.
"""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def round_price(value: Decimal | str | float) -> Decimal:
    """Round to two fraction digits, half-up."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_price(value: Decimal | str | float) -> str:
    """Catalog wire format: decimal string with two fraction digits."""
    return f"{round_price(value):.2f}"
