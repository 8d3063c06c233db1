"""Tests for discount arithmetic."""

from decimal import Decimal

import pytest

from src.services.pricing import apply_discount, to_number


@pytest.mark.parametrize(
    "price, discount, expected",
    [
        (100, 20, 80.0),
        (100, "20", 80.0),
        ("100", "20%", 80.0),
        (79.99, 15, 67.99),
        (100, 0, 100.0),
        (100, 100, 0.0),
        (59.99, None, 59.99),
    ],
)
def test_apply_discount(price, discount, expected):
    assert apply_discount(price, discount) == expected


@pytest.mark.parametrize("discount", ["abc", "", "  ", True, -5, 150, "NaN"])
def test_invalid_discount_leaves_price_unchanged(discount):
    assert apply_discount(100, discount) == 100.0


def test_non_numeric_price_is_an_error():
    with pytest.raises(ValueError):
        apply_discount("free", 10)


def test_to_number():
    assert to_number("12.50") == Decimal("12.50")
    assert to_number(" 7 ") == Decimal("7")
    assert to_number("seven") is None
    assert to_number(None) is None
