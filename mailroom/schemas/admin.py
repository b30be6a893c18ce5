"""
Schemas for admin management of access tokens and Google OAuth configurations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from mailroom.models.oauth import AccessToken, OAuthConfiguration

from .base import CamelModel


class AccessTokenCreate(CamelModel):
    token: Optional[str] = Field(
        None, description="Explicit token value; a random one is generated when omitted."
    )


class AccessTokenUpdate(CamelModel):
    is_blocked: bool


class AccessTokenOut(CamelModel):
    id: str
    access_token: str
    is_blocked: bool
    created_at: datetime

    @classmethod
    def from_model(cls, record: AccessToken) -> "AccessTokenOut":
        return cls(
            id=record.id,
            access_token=record.token,
            is_blocked=record.is_blocked,
            created_at=record.created_at,
        )


class GoogleConfigCreate(CamelModel):
    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    auth_uri: Optional[str] = None
    token_uri: Optional[str] = None
    auth_provider_cert_url: Optional[str] = None
    is_active: bool = Field(
        True, description="New configurations become the active one unless told otherwise."
    )


class GoogleConfigUpdate(CamelModel):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    project_id: Optional[str] = None
    auth_uri: Optional[str] = None
    token_uri: Optional[str] = None
    auth_provider_cert_url: Optional[str] = None
    is_active: Optional[bool] = None


class GoogleConfigOut(CamelModel):
    """Configuration as shown to admins; secrets are reduced to presence flags."""

    id: str
    client_id: str
    project_id: Optional[str] = None
    auth_uri: str
    token_uri: str
    auth_provider_cert_url: str
    is_active: bool
    has_access_token: bool
    has_refresh_token: bool
    token_expiry: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, config: OAuthConfiguration) -> "GoogleConfigOut":
        return cls(
            id=config.id,
            client_id=config.client_id,
            project_id=config.project_id,
            auth_uri=config.auth_uri,
            token_uri=config.token_uri,
            auth_provider_cert_url=config.auth_provider_cert_url,
            is_active=config.is_active,
            has_access_token=bool(config.access_token),
            has_refresh_token=bool(config.refresh_token),
            token_expiry=config.token_expiry,
            created_at=config.created_at,
            updated_at=config.updated_at,
        )


class AuthorizationUrlOut(CamelModel):
    auth_url: str
    redirect_uri: str


__all__ = [
    "AccessTokenCreate",
    "AccessTokenOut",
    "AccessTokenUpdate",
    "AuthorizationUrlOut",
    "GoogleConfigCreate",
    "GoogleConfigOut",
    "GoogleConfigUpdate",
]
