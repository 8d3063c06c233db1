"""Tests for order confirmation digit normalization and matching."""

import pytest

from src.core.exceptions import AmbiguousOrderError, InvalidConfirmationDigitsError, OrderNotFoundError
from src.services.orders import match_confirmation_digits, normalize_confirmation_digits


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0A7K", "0A7K"),
        (" 0a7k ", "0a7k"),
        ("0 A 7 K", "0A7K"),
        ("Order #10-0A7K", "0A7K"),
        ("100A7K", "0A7K"),
        (1234, "1234"),
    ],
)
def test_normalize(raw, expected):
    assert normalize_confirmation_digits(raw) == expected


@pytest.mark.parametrize("digits", ["1234", "abcd", "A1b2", "ZZZZ"])
def test_normalize_is_idempotent(digits):
    once = normalize_confirmation_digits(digits)
    assert once == digits
    assert normalize_confirmation_digits(once) == once


@pytest.mark.parametrize("raw", [None, "", "12", "a-b-c", "   "])
def test_too_few_characters_is_rejected(raw):
    with pytest.raises(InvalidConfirmationDigitsError) as exc_info:
        normalize_confirmation_digits(raw)
    assert exc_info.value.status_code == 400


ORDERS = [
    {"id": "100A7K", "shipping_status": "delivered"},
    {"id": "200B3Q", "shipping_status": "pending"},
    {"id": "910B3Q", "shipping_status": "shipped"},
]


def test_exactly_one_match_returns_the_order():
    order = match_confirmation_digits(ORDERS, "0A7K")
    assert order.id == "100A7K"


def test_match_ignores_case():
    order = match_confirmation_digits(ORDERS, "0a7k")
    assert order.id == "100A7K"


def test_zero_matches_is_not_found():
    with pytest.raises(OrderNotFoundError) as exc_info:
        match_confirmation_digits(ORDERS, "9999")
    assert exc_info.value.status_code == 404


def test_two_matches_is_a_conflict():
    with pytest.raises(AmbiguousOrderError) as exc_info:
        match_confirmation_digits(ORDERS, "0B3Q")
    assert exc_info.value.status_code == 409
    assert exc_info.value.details == {"match_count": 2}


def test_numeric_order_ids_match():
    order = match_confirmation_digits([{"id": 123456}], "3456")
    assert order.id == "123456"
