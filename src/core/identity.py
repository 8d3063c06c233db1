"""
Customer identity parsing for the ``x-identity`` request header.

The assistant platform forwards who it is talking to as ``"<kind>:<value>"``,
e.g. ``email:ada@example.com``, ``phone:+15551234567`` or
``whatsapp:+15551234567``. WhatsApp handles are phone numbers.
"""

from typing import Annotated, NamedTuple

from fastapi import Header

from src.core.exceptions import InvalidIdentityError

IDENTITY_PREFIXES: dict[str, str] = {
    "email:": "email",
    "phone:": "phone",
    "whatsapp:": "phone",
}

IDENTITY_FORMAT_HINT = 'Use "email:<email>" or "phone:<phone>".'


class Identity(NamedTuple):
    """Record field to look a customer up by, and the value to match."""

    field: str
    value: str

    def __str__(self) -> str:
        return f"{self.field}: {self.value}"


def parse_identity(header: str | None) -> Identity:
    """
    Parse an identity header into a lookup key.

    Raises:
        InvalidIdentityError: header missing, prefix unknown, or value empty
    """
    if not header:
        raise InvalidIdentityError(
            f"Missing x-identity header. Provide email or phone in the format: {IDENTITY_FORMAT_HINT}"
        )

    for prefix, field in IDENTITY_PREFIXES.items():
        if header.startswith(prefix):
            value = header[len(prefix):].strip()
            if not value:
                raise InvalidIdentityError(f"Empty x-identity value. {IDENTITY_FORMAT_HINT}")
            return Identity(field=field, value=value)

    raise InvalidIdentityError(f"Invalid x-identity format. {IDENTITY_FORMAT_HINT}")


async def require_identity(
    x_identity: Annotated[str | None, Header()] = None
) -> Identity:
    """FastAPI dependency resolving the caller's identity from the request header."""
    return parse_identity(x_identity)
