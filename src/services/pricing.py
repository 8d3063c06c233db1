"""
Price and discount arithmetic for order placement.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")


def to_number(value: Any) -> Decimal | None:
    """
    Coerce a number or numeric string to Decimal.

    Returns None for anything else (blank cells, "abc", booleans, NaN).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        if not value:
            return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def apply_discount(price: Any, discount: Any) -> float:
    """
    Apply a percentage discount to a price, rounded to cents.

    The discount is applied only when it is a number (or numeric string) in
    [0, 100]; any other value means no discount.

    Raises:
        ValueError: price is not numeric
    """
    base = to_number(price)
    if base is None:
        raise ValueError(f"Price is not numeric: {price!r}")

    percent = to_number(discount)
    if percent is not None and Decimal(0) <= percent <= Decimal(100):
        base = base * (Decimal(1) - percent / Decimal(100))

    return float(base.quantize(CENT, rounding=ROUND_HALF_UP))
