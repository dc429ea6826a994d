"""
Money Utilities - Safe Decimal operations for monetary values.

Prices are held as Decimal in pounds; pence only at the Stripe boundary.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal, None]

MONEY_PRECISION = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "USD": "$",
    "EUR": "€",
}


def to_decimal(value: Number) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        if isinstance(value, float):
            # repr-based conversion keeps 24.99 as 24.99
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def round_money(value: Number) -> Decimal:
    """Round a monetary value to pence, half up."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def to_pence(value: Number) -> int:
    """
    Convert a pound amount to integer pence.

    Stripe expects amounts in the smallest currency unit.

    Args:
        value: Amount in pounds (e.g., 24.99)

    Returns:
        Amount in pence (e.g., 2499)
    """
    return int((to_decimal(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def format_money(value: Number, currency: str = "GBP") -> str:
    """
    Format monetary value with currency symbol.

    Args:
        value: Value to format
        currency: Currency code (GBP, USD, EUR)

    Returns:
        Formatted string, e.g. "£1,249.90"
    """
    formatted = f"{round_money(value):,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{formatted}"
    return f"{formatted} {currency}"


def to_float(value: Number) -> float:
    """
    Convert to float for JSON serialization.

    Use only at API and storage boundaries, not for internal calculations.
    """
    return float(to_decimal(value))


def multiply(value: Number, factor: Number) -> Decimal:
    """Safe multiplication of monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)
