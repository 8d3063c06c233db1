"""
Load Google service account credentials from flexible formats.

Accepts a file path (optionally prefixed with '@', Fly secrets syntax), inline
JSON, or base64-encoded JSON, and returns the parsed key as a dict for
``gspread.service_account_from_dict``.
"""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Any

from src.core.exceptions import ConfigurationError


def load_service_account_info(raw_value: str | None) -> dict[str, Any]:
    if not raw_value or not raw_value.strip():
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON is not set.")

    candidate = raw_value.strip().strip("'\"")
    if candidate.startswith("@"):
        candidate = candidate[1:].strip()

    for text in (candidate, _decode_base64(candidate)):
        if text is None:
            continue
        info = _parse_object(text)
        if info is not None:
            return info

    path = Path(candidate).expanduser()
    if path.is_file():
        info = _parse_object(path.read_text(encoding="utf-8"))
        if info is None:
            raise ConfigurationError(f"Service account file {path} does not contain a JSON object.")
        return info

    raise ConfigurationError(
        "Service account credentials not found. Provide a file path or inline JSON content."
    )


def _parse_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _decode_base64(value: str) -> str | None:
    try:
        return base64.b64decode(value, validate=True).decode("utf-8").strip()
    except (binascii.Error, UnicodeDecodeError):
        return None
