"""
Configuration and settings for the legacy portal.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MissingConfigurationError(RuntimeError):
    """Raised at startup when the data gateway cannot be configured."""


class Settings(BaseSettings):
    """Environment-backed settings for the web app."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Hosted Supabase project
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "VITE_SUPABASE_URL"),
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"),
    )
    request_timeout_seconds: float = Field(
        default=30.0, validation_alias="LEGACY_REQUEST_TIMEOUT_SECONDS"
    )

    # Direct SQL access (any SQLAlchemy URL)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="LEGACY_USE_IN_MEMORY_BACKENDS"
    )

    # Session cookie
    session_secret: str = Field(
        default="change-me", validation_alias="LEGACY_SESSION_SECRET"
    )
    session_cookie: str = Field(
        default="legacy_session", validation_alias="LEGACY_SESSION_COOKIE"
    )

    log_level: str = Field(default="INFO", validation_alias="LEGACY_LOG_LEVEL")

    def validate_gateway(self) -> None:
        """Fail fast when no gateway can be built from these settings."""
        if self.use_in_memory_backends or self.database_url:
            return
        missing = [
            name
            for name, value in (
                ("SUPABASE_URL", self.supabase_url),
                ("SUPABASE_ANON_KEY", self.supabase_anon_key),
            )
            if not value
        ]
        if missing:
            raise MissingConfigurationError(
                "Missing data gateway configuration: " + ", ".join(missing)
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
