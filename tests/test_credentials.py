"""Tests for service account credential loading."""

import base64
import json

import pytest

from src.core.exceptions import ConfigurationError
from src.stores.credentials import load_service_account_info

KEY = {"type": "service_account", "client_email": "bot@owl-shoes.iam.gserviceaccount.com"}


def test_inline_json():
    assert load_service_account_info(json.dumps(KEY)) == KEY


def test_base64_json():
    encoded = base64.b64encode(json.dumps(KEY).encode()).decode()

    assert load_service_account_info(encoded) == KEY


def test_file_path_with_at_prefix(tmp_path):
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps(KEY), encoding="utf-8")

    assert load_service_account_info(f"@{path}") == KEY


@pytest.mark.parametrize("raw", [None, "", "   ", "/no/such/file.json"])
def test_missing_credentials(raw):
    with pytest.raises(ConfigurationError):
        load_service_account_info(raw)


def test_file_without_object(tmp_path):
    path = tmp_path / "service-account.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="does not contain a JSON object"):
        load_service_account_info(str(path))
