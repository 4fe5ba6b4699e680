"""Monetary helpers: rounding policy, percentage math and formatting."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from ..core.config import settings

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def _decimals(decimals: Optional[int]) -> int:
    return settings.currency_decimals if decimals is None else decimals


def to_money(value: Number, decimals: Optional[int] = None) -> Decimal:
    """
    Quantize a value to the currency's minor unit.

    Floats go through ``str`` first so 0.1 stays 0.1. Halves round away
    from zero (ROUND_HALF_UP).
    """
    if isinstance(value, float):
        value = str(value)
    exponent = Decimal(1).scaleb(-_decimals(decimals))
    return Decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def percentage_of(amount: Number, percent: Number, decimals: Optional[int] = None) -> Decimal:
    """Return ``percent`` % of ``amount``, rounded to money."""
    return to_money(Decimal(str(amount)) * Decimal(str(percent)) / Decimal(100), decimals)


def apply_discount(amount: Number, discount: Number, decimals: Optional[int] = None) -> Decimal:
    """Subtract a discount from an amount, never going below zero."""
    result = Decimal(str(amount)) - Decimal(str(discount))
    return to_money(max(result, ZERO), decimals)


def format_currency(
    amount: Number,
    currency: Optional[str] = None,
    decimals: Optional[int] = None,
) -> str:
    """
    Format an amount for display, e.g. ``RWF 10,000`` or ``USD 24.99``.

    Negative amounts keep the sign in front of the currency code.
    """
    places = _decimals(decimals)
    value = to_money(amount, places)
    code = currency or settings.currency
    sign = "-" if value < 0 else ""
    return f"{sign}{code} {abs(value):,.{places}f}"
