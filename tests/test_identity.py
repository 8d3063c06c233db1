"""Tests for x-identity header parsing."""

import pytest

from src.core.exceptions import InvalidIdentityError
from src.core.identity import Identity, parse_identity


@pytest.mark.parametrize(
    "header, expected",
    [
        ("email:ada@example.com", Identity("email", "ada@example.com")),
        ("phone:+15551230001", Identity("phone", "+15551230001")),
        ("whatsapp:+15551230001", Identity("phone", "+15551230001")),
        ("email:  ada@example.com  ", Identity("email", "ada@example.com")),
    ],
)
def test_recognized_prefixes(header, expected):
    assert parse_identity(header) == expected


@pytest.mark.parametrize("header", ["sms:+15551230001", "ada@example.com", "EMAIL:ada@example.com", "user:42"])
def test_unrecognized_prefix_is_rejected(header):
    with pytest.raises(InvalidIdentityError) as exc_info:
        parse_identity(header)
    assert exc_info.value.status_code == 400
    assert "Invalid x-identity format" in exc_info.value.message


@pytest.mark.parametrize("header", [None, ""])
def test_missing_header_is_rejected(header):
    with pytest.raises(InvalidIdentityError) as exc_info:
        parse_identity(header)
    assert "Missing x-identity header" in exc_info.value.message


def test_empty_value_is_rejected():
    with pytest.raises(InvalidIdentityError):
        parse_identity("phone:   ")


def test_str_is_human_readable():
    assert str(Identity("email", "ada@example.com")) == "email: ada@example.com"
