"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the helper scripts and the
search API client share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class OAuthSettings(BaseSettings):
    """OAuth flow configuration shared by every stored client configuration."""

    redirect_uri: str = Field(
        ...,
        validation_alias="GOOGLE_REDIRECT_URI",
        description=(
            "Callback URL registered with Google. Must match the consent request "
            "and the code exchange character for character."
        ),
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "https://www.googleapis.com/auth/gmail.readonly",
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ),
        validation_alias="OAUTH_SCOPES",
    )
    refresh_window_seconds: int = Field(300, validation_alias="OAUTH_REFRESH_WINDOW_SECONDS")
    http_timeout_seconds: float = Field(10.0, validation_alias="OAUTH_HTTP_TIMEOUT")

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class GmailSettings(BaseSettings):
    """Gmail REST API access."""

    api_base_url: str = Field(
        "https://gmail.googleapis.com/gmail/v1", validation_alias="GMAIL_API_BASE_URL"
    )
    max_results: int = Field(
        20,
        validation_alias="GMAIL_MAX_RESULTS",
        description="Upper bound on messages fetched in full per search.",
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: str = Field(
        ...,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    admin_username: str = Field(..., validation_alias="ADMIN_USERNAME")
    admin_password: str = Field(
        ...,
        validation_alias="ADMIN_PASSWORD",
        description="Bootstrap password, superseded once credentials are updated.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    database_path: str = Field("data/mailroom.db", validation_alias="MAILROOM_DB_PATH")
    admin_dashboard_url: str = Field(
        "/admin/dashboard",
        validation_alias="ADMIN_DASHBOARD_URL",
        description="Where the OAuth success page sends the admin back to.",
    )
    frontend_origin: Optional[str] = Field(
        None,
        validation_alias="FRONTEND_ORIGIN",
        description="Optional origin allowed to call the API from a browser.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    gmail: GmailSettings = Field(default_factory=GmailSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GmailSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
