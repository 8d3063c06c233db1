"""Tests for settings parsing."""

import pytest
from pydantic import ValidationError

from src.config import Settings
from src.provisioning.descriptors import DEFAULT_KNOWLEDGE, knowledge_sources


def test_cors_origins_from_csv():
    settings = Settings(_env_file=None, cors_origins="https://owl.example.com, https://admin.example.com")

    assert settings.cors_origins == ["https://owl.example.com", "https://admin.example.com"]


def test_cors_wildcard_rejected_in_production():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, app_env="production", cors_origins="*")


def test_unknown_record_store_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, record_store="excel")


def test_public_base_url_trailing_slash_removed():
    assert Settings(_env_file=None, public_base_url="https://owl.example.com/").public_base_url == "https://owl.example.com"


def test_knowledge_sources_from_json():
    settings = Settings(
        _env_file=None,
        knowledge_sources='[{"name": "Size Guide", "source": "https://owl.example.com/sizes"}]',
    )

    sources = knowledge_sources(settings)

    assert sources[: len(DEFAULT_KNOWLEDGE)] == list(DEFAULT_KNOWLEDGE)
    assert sources[-1].name == "Size Guide"
    assert sources[-1].type == "Web"
    assert sources[-1].payload("https://ignored.example.com")["knowledge_source_details"]["source"] == (
        "https://owl.example.com/sizes"
    )


def test_knowledge_sources_need_a_source():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, knowledge_sources='[{"name": "Size Guide"}]')
