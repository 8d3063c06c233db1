"""
Configuration management for the Owl Shoes retail assistant.

This module handles all application settings loaded from environment variables,
providing type-safe configuration with validation and defaults.

Design decisions:
- Pydantic Settings for automatic env var loading and validation
- Separate sections for different concerns (record store, Twilio, provisioning, app)
- Credentials are optional at import time; the component that needs them
  raises ConfigurationError on first use
- Field validators parse JSON and comma-separated overrides
"""

import json
from pathlib import Path
from typing import Any, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via environment variables.
    Example: RECORD_STORE=supabase uvicorn src.main:app

    Configuration sections:
    1. Record store - Which backend holds customers/products/orders and its credentials
    2. Twilio - Telephony credentials and signature validation
    3. Assistant - Identity, greeting and transfer behaviour
    4. Provisioning - Management API endpoints and generated identifiers
    5. Application - Runtime behavior, logging and CORS
    """

    # ===== Record Store Configuration =====
    record_store: str = Field(
        default="sql",
        pattern="^(sheets|supabase|sql)$",
        description="Record store backend: sheets (Google Sheets), supabase, or sql (SQLAlchemy)"
    )
    google_service_account_json: str | None = Field(
        default=None,
        description="Service account JSON (path, inline JSON, or base64) for Google Sheets access"
    )
    google_spreadsheet_id: str | None = Field(
        default=None,
        description="Spreadsheet ID holding one worksheet per table"
    )
    supabase_url: str | None = Field(
        default=None,
        description="Supabase project URL"
    )
    supabase_key: str | None = Field(
        default=None,
        description="Supabase service key"
    )
    database_url: str = Field(
        default=f"sqlite:///{PROJECT_ROOT / 'retail.db'}",
        description="SQLAlchemy database URL for the sql backend"
    )

    # ===== Twilio Configuration =====
    twilio_account_sid: str | None = Field(
        default=None,
        description="Twilio Account SID (management API and live call updates)"
    )
    twilio_auth_token: str | None = Field(
        default=None,
        description="Twilio Auth Token"
    )
    validate_twilio_signature: bool = Field(
        default=False,
        description="Reject Twilio-facing requests without a valid X-Twilio-Signature"
    )

    # ===== Assistant Configuration =====
    assistant_id: str | None = Field(
        default=None,
        description="Assistant ID written back by the provisioning CLI"
    )
    assistant_name: str = Field(
        default="Retail Demo Assistant - Owl Shoes",
        description="Assistant name, also used to find an existing assistant on rerun"
    )
    assistant_prompt_path: str = Field(
        default=str(PROJECT_ROOT / "prompts" / "assistant-prompt.md"),
        description="Path to the personality prompt text asset"
    )
    assistant_voice: str = Field(
        default="en-US-Journey-O",
        description="Voice used by the assistant on inbound calls"
    )
    store_name: str = Field(
        default="Owl Shoes",
        description="Store name spoken in the greeting"
    )
    transfer_fallback_number: str = Field(
        default="111-222-3333",
        description="Number dialed when a call is escalated to a human"
    )
    transfer_message: str = Field(
        default="Escalating to a human agent",
        description="Message spoken before the escalation dial"
    )

    # ===== Provisioning Configuration =====
    public_base_url: str | None = Field(
        default=None,
        description="Public HTTPS base URL where this service is reachable"
    )
    assistants_base_url: str = Field(
        default="https://assistants.twilio.com/v1",
        description="Base URL for the AI Assistants management API"
    )
    intelligence_base_url: str = Field(
        default="https://intelligence.twilio.com/v2",
        description="Base URL for the Voice Intelligence API"
    )
    management_timeout: int = Field(
        default=30,
        ge=5, le=120,
        description="HTTP timeout in seconds for management API calls"
    )
    management_max_retries: int = Field(
        default=3,
        ge=0, le=10,
        description="Maximum retries for rate-limited management API calls"
    )
    intelligence_service_name: str = Field(
        default="ai-assistant-owl-shoes",
        description="Unique name of the call-analytics service"
    )
    intelligence_service_sid: str | None = Field(
        default=None,
        description="Call-analytics service SID written back by the provisioning CLI"
    )
    knowledge_sources: list[dict[str, str]] = Field(
        default_factory=list,
        description="Extra knowledge sources as a JSON list of {name, description, type, source}"
    )
    env_file_path: str = Field(
        default=str(PROJECT_ROOT / ".env"),
        description="File that provisioning writes generated identifiers into"
    )

    # ===== Application Settings =====
    app_env: str = Field(
        default="development",
        pattern="^(development|staging|production|test)$",
        description="Application environment"
    )
    log_level: str = Field(
        default="info",
        pattern="^(debug|info|warning|error|critical)$",
        description="Logging level"
    )
    log_format: str = Field(
        default="console",
        pattern="^(json|console)$",
        description="Log output format (json for prod, console for dev)"
    )
    cors_origins: Union[str, list[str]] = Field(
        default="",
        description="Allowed CORS origins for the front-end routes - comma-separated string or list"
    )

    @field_validator("knowledge_sources", mode="before")
    @classmethod
    def parse_knowledge_sources(cls, value: Any) -> list[dict[str, str]]:
        """Support JSON string overrides for the knowledge source list."""
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("KNOWLEDGE_SOURCES must be valid JSON") from exc
        if not isinstance(value, list):
            raise ValueError("KNOWLEDGE_SOURCES must decode to a list")
        sources = []
        for item in value:
            if not isinstance(item, dict) or not item.get("name") or not item.get("source"):
                raise ValueError("Each knowledge source needs at least a name and a source")
            sources.append({str(k): str(v) for k, v in item.items()})
        return sources

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        if v:
            return v.rstrip("/")
        return v

    @model_validator(mode="after")
    def validate_and_parse_settings(self):
        """Parse cors_origins from string to list and validate."""
        cors_value = self.cors_origins
        if isinstance(cors_value, str):
            if not cors_value or cors_value.strip() == "":
                self.cors_origins = []
            else:
                self.cors_origins = [origin.strip() for origin in cors_value.split(",") if origin.strip()]

        if self.app_env == "production":
            if not self.cors_origins:
                raise ValueError("CORS origins must be configured in production")
            if "*" in self.cors_origins:
                raise ValueError("CORS wildcard not allowed in production")

        if not self.cors_origins:
            self.cors_origins = ["http://localhost:3000"]

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )


# Singleton instance - loaded once at module import
settings = Settings()
