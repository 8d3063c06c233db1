"""
Security utilities for Twilio-facing endpoints.
"""

from typing import Annotated

from fastapi import Header, HTTPException, Request, status
from twilio.request_validator import RequestValidator

from src.config import settings


async def verify_twilio_signature(
    request: Request,
    x_twilio_signature: Annotated[str | None, Header()] = None
) -> None:
    """
    Verify that a request was signed by Twilio.

    Only enforced when VALIDATE_TWILIO_SIGNATURE is true, so local testing
    through a tunnel works without signing. Form posts are validated against
    their parameters; GET/JSON requests against the full URL.

    Raises:
        HTTPException: 500 if the auth token is missing, 403 if the signature is invalid
    """
    if not settings.validate_twilio_signature:
        return

    if not settings.twilio_auth_token:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Twilio auth token not configured - cannot verify signature"
        )

    if not x_twilio_signature:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing X-Twilio-Signature header"
        )

    # Behind a tunnel the request URL is the local one; Twilio signed the public one.
    url = str(request.url)
    if settings.public_base_url:
        url = settings.public_base_url + request.url.path
        if request.url.query:
            url += "?" + request.url.query

    params: dict[str, str] = {}
    if request.headers.get("content-type", "").startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        params = {key: str(value) for key, value in form.items()}

    validator = RequestValidator(settings.twilio_auth_token)
    if not validator.validate(url, params, x_twilio_signature):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid Twilio signature"
        )
