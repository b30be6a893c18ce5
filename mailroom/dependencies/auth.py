"""
Request authentication dependencies for admins and token-holding users.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from mailroom.core.exceptions import AuthenticationError
from mailroom.models.oauth import AccessToken
from mailroom.services import AccessControlService

from .clients import get_access_control_service

_basic = HTTPBasic(auto_error=False)


def require_admin(
    credentials: Annotated[Optional[HTTPBasicCredentials], Depends(_basic)],
    access_control: Annotated[AccessControlService, Depends(get_access_control_service)],
) -> str:
    """HTTP Basic admin check; returns the admin username."""
    if credentials is None or not access_control.verify_admin(
        credentials.username, credentials.password
    ):
        raise AuthenticationError("Invalid admin credentials.")
    return credentials.username


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def require_user(
    access_control: Annotated[AccessControlService, Depends(get_access_control_service)],
    authorization: Annotated[Optional[str], Header()] = None,
    x_access_token: Annotated[Optional[str], Header()] = None,
) -> AccessToken:
    """Resolve the caller's access token from ``Authorization: Bearer`` or ``X-Access-Token``."""
    return access_control.authenticate(_bearer_token(authorization) or x_access_token)


__all__ = ["require_admin", "require_user"]
