"""Currency helpers. All money is Decimal rounded half-up to cents."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: object) -> Decimal:
    """Coerce a number-like value to a two-decimal Decimal.

    Floats go through `str` so 0.1 stays 0.1 rather than its binary expansion.
    Raises ValueError for None, booleans and unparsable input.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"not a money value: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"not a money value: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"not a money value: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return (amount * percent / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Render as plain `1234.50` (no grouping, no symbol)."""
    return f"{to_money(amount):.2f}"


def format_currency(amount: Decimal) -> str:
    """Render as `$1,234.50` for documents and emails."""
    return f"${to_money(amount):,.2f}"


def format_percent(percent: Decimal) -> str:
    """Drop trailing zeros: 10.00 -> '10', 7.50 -> '7.5'."""
    normalized = Decimal(percent).normalize()
    text = f"{normalized:f}"
    return text
