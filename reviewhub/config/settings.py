"""
Application Settings.

Centralized configuration using Pydantic Settings with environment variable loading.
Defaults run the service against the in-memory store, so a bare checkout
starts without any external dependency.

Production Mode:
    When app_env="production", additional validations apply:
    - api_key_enabled must be True
    - debug must be False
    - cors_allowed_origins cannot be ["*"]
    - storage_backend must be "supabase"
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    storage_backend: Literal["memory", "supabase"] = Field(
        default="memory",
        description="Where reviews, identifiers and snapshots are persisted",
    )
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_key: SecretStr | None = Field(
        default=None, description="Supabase service role key"
    )

    # -------------------------------------------------------------------------
    # Scraper service webhook
    # -------------------------------------------------------------------------
    scraper_webhook_url: str | None = Field(
        default=None,
        description="URL notified when a market identifier is configured. Unset disables it.",
    )
    scraper_webhook_secret: SecretStr | None = Field(
        default=None,
        description="Bearer token sent with webhook requests",
    )
    scraper_webhook_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single webhook request",
    )

    # -------------------------------------------------------------------------
    # Ingestion & analytics
    # -------------------------------------------------------------------------
    max_batch_size: int = Field(
        default=5000,
        gt=0,
        description="Maximum number of records accepted in one ingestion batch",
    )
    metrics_max_age_seconds: int = Field(
        default=3600,
        ge=0,
        description="Stored snapshots older than this are recomputed on query",
    )
    recompute_on_ingest: bool = Field(
        default=True,
        description="Recompute all periodical metrics after each batch",
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(default=True, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=8000, description="Bind port")

    # -------------------------------------------------------------------------
    # Security Settings
    # -------------------------------------------------------------------------
    api_key: SecretStr | None = Field(
        default=None,
        description="API key for authentication. If set, all requests require X-API-Key header.",
    )
    api_key_enabled: bool = Field(
        default=False,
        description="Enable API key authentication. Set True for production.",
    )
    cors_allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins. Use ['*'] for development only.",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate backend wiring and production safety."""
        errors = []

        if self.storage_backend == "supabase" and not (
            self.supabase_url and self.supabase_key
        ):
            errors.append("supabase_url and supabase_key are required for the supabase backend")

        if self.app_env == "production":
            if not self.api_key_enabled:
                errors.append("api_key_enabled must be True in production")
            if self.api_key_enabled and not self.api_key:
                errors.append("api_key must be set when api_key_enabled is True")
            if self.debug:
                errors.append("debug must be False in production")
            if "*" in self.cors_allowed_origins:
                errors.append("cors_allowed_origins cannot contain '*' in production")
            if self.storage_backend != "supabase":
                errors.append("storage_backend must be 'supabase' in production")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")

        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()
