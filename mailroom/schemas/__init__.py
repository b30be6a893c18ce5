"""Public schema exports."""

from .admin import (
    AccessTokenCreate,
    AccessTokenOut,
    AccessTokenUpdate,
    AuthorizationUrlOut,
    GoogleConfigCreate,
    GoogleConfigOut,
    GoogleConfigUpdate,
)
from .auth import AdminCredentialsUpdate, UserLoginRequest, UserLoginResponse
from .email import EmailOut, SearchEmailsRequest, SearchEmailsResponse

__all__ = [
    "AccessTokenCreate",
    "AccessTokenOut",
    "AccessTokenUpdate",
    "AdminCredentialsUpdate",
    "AuthorizationUrlOut",
    "EmailOut",
    "GoogleConfigCreate",
    "GoogleConfigOut",
    "GoogleConfigUpdate",
    "SearchEmailsRequest",
    "SearchEmailsResponse",
    "UserLoginRequest",
    "UserLoginResponse",
]
