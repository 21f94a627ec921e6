from __future__ import annotations
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, str]


def to_decimal(value: Number) -> Decimal:
    # floats go through str() so 59.99 stays 59.99
    if isinstance(value, float):
        value = str(value)
    return Decimal(value)


def round2(value: Number) -> Decimal:
    """Round half up to two decimals (cents), never truncating."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: Number) -> str:
    """Format an amount the way the storefront displays it: R$ 1.234,56."""
    amount = round2(value)
    sign = "-" if amount < 0 else ""
    whole, cents = f"{abs(amount):,.2f}".split(".")
    return f"{sign}R$ {whole.replace(',', '.')},{cents}"
