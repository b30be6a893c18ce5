"""Schemas related to logins and admin credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import CamelModel


class UserLoginRequest(CamelModel):
    """Payload sent by an end user exchanging an access token for a session."""

    access_token: Optional[str] = Field(None, description="Token issued by an admin.")


class UserLoginResponse(CamelModel):
    id: str
    is_blocked: bool
    created_at: datetime


class AdminCredentialsUpdate(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


__all__ = ["AdminCredentialsUpdate", "UserLoginRequest", "UserLoginResponse"]
