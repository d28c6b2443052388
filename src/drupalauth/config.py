"""Configuration for drupal-auth-bridge.

Settings are read from environment variables prefixed ``DRUPAL_AUTH_`` and
from an optional ``.env`` file in the working directory.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_config_dir() -> Path:
    """Get/create the config directory (~/.drupal-auth)."""
    d = Path.home() / ".drupal-auth"
    d.mkdir(exist_ok=True)
    return d


class Settings(BaseSettings):
    """Backend endpoints, OAuth client registration and storage options."""

    model_config = SettingsConfigDict(
        env_prefix="DRUPAL_AUTH_",
        env_file=".env",
        extra="ignore",
    )

    # Backend
    base_url: str = Field(default="", description="Drupal site root, e.g. https://cms.example.com")
    client_id: str = Field(default="", description="OAuth consumer client id")
    client_secret: str = Field(default="", description="OAuth consumer client secret")
    scope: str = Field(default="oauth_scope", description="Scope requested on /oauth/authorize")
    redirect_uri: str = Field(
        default="http://localhost:3000/auth/callback",
        description="Callback URL registered with the OAuth consumer",
    )

    # Which phases of the login are active
    mode: Literal["combined", "session", "oauth"] = "combined"

    # Token handling
    token_expiry_buffer: int = Field(default=300, ge=0, description="Skew buffer in seconds")
    refresh_token_ttl_days: int = Field(default=30, ge=1)
    http_timeout: float = Field(default=15.0, gt=0)

    # Storage
    key_prefix: str = "drupal_auth_"
    store_backend: Literal["file", "memory"] = "file"
    store_path: Path | None = None
    secure_cookies: bool = True

    log_level: str = "INFO"

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def load(cls) -> Settings:
        """Load settings from the environment."""
        return cls()

    def resolved_store_path(self) -> Path:
        if self.store_path is not None:
            return self.store_path
        return get_config_dir() / "credentials.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.load()
