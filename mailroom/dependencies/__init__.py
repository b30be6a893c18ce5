"""Expose dependency helpers for FastAPI routers."""

from .auth import require_admin, require_user
from .clients import (
    get_access_control_service,
    get_credential_store,
    get_email_cache,
    get_email_search_service,
    get_gmail_client,
    get_google_oauth_client,
    get_google_token_service,
    get_sqlite_store,
    get_token_cipher_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_access_control_service",
    "get_app_settings",
    "get_credential_store",
    "get_email_cache",
    "get_email_search_service",
    "get_gmail_client",
    "get_google_oauth_client",
    "get_google_token_service",
    "get_sqlite_store",
    "get_token_cipher_service",
    "require_admin",
    "require_user",
]
