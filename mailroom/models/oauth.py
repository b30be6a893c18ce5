"""
Domain models for OAuth client configurations and application access tokens.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_CERT_URL = "https://www.googleapis.com/oauth2/v1/certs"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OAuthConfiguration(BaseModel):
    """A Google OAuth client plus its current token state.

    Secrets are held decrypted on this model; the store encrypts them on the
    way to disk.
    """

    id: str
    client_id: str
    client_secret: str
    project_id: Optional[str] = None
    auth_uri: str = DEFAULT_AUTH_URI
    token_uri: str = DEFAULT_TOKEN_URI
    auth_provider_cert_url: str = DEFAULT_CERT_URL
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expiry: Optional[datetime] = Field(
        None, description="The access token is invalid at or after this instant."
    )
    is_active: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class AccessToken(BaseModel):
    """Bearer secret handed to an end user of this application (not Google)."""

    id: str
    token: str
    is_blocked: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


__all__ = [
    "AccessToken",
    "DEFAULT_AUTH_URI",
    "DEFAULT_CERT_URL",
    "DEFAULT_TOKEN_URI",
    "OAuthConfiguration",
]
