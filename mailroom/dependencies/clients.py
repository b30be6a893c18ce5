"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from mailroom.clients import GmailClient, GoogleOAuthClient, SQLiteStore
from mailroom.core.config import get_settings
from mailroom.services import (
    AccessControlService,
    CredentialStore,
    EmailCache,
    EmailSearchService,
    GoogleTokenService,
    TokenCipherService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the shared SQLite store."""
    return SQLiteStore(_settings().database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for secret storage."""
    return TokenCipherService(secret=_settings().security.token_encryption_secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_sqlite_store(), get_token_cipher_service())


@lru_cache()
def get_access_control_service() -> AccessControlService:
    settings = _settings()
    return AccessControlService(
        store=get_sqlite_store(),
        token_cipher=get_token_cipher_service(),
        security_settings=settings.security,
    )


@lru_cache()
def get_google_oauth_client() -> GoogleOAuthClient:
    """Create a singleton Google OAuth client."""
    return GoogleOAuthClient(_settings().oauth)


@lru_cache()
def get_google_token_service() -> GoogleTokenService:
    """Provide the token lifecycle service; its refresh locks live for the process."""
    settings = _settings()
    return GoogleTokenService(
        credential_store=get_credential_store(),
        oauth_client=get_google_oauth_client(),
        oauth_settings=settings.oauth,
    )


@lru_cache()
def get_gmail_client() -> GmailClient:
    settings = _settings()
    return GmailClient(settings.gmail, timeout=settings.oauth.http_timeout_seconds)


@lru_cache()
def get_email_cache() -> EmailCache:
    return EmailCache(get_sqlite_store())


def get_email_search_service() -> EmailSearchService:
    """Build the search executor from the shared clients."""
    return EmailSearchService(
        credential_store=get_credential_store(),
        token_service=get_google_token_service(),
        gmail_client=get_gmail_client(),
        email_cache=get_email_cache(),
        gmail_settings=_settings().gmail,
    )


__all__ = [
    "get_access_control_service",
    "get_credential_store",
    "get_email_cache",
    "get_email_search_service",
    "get_gmail_client",
    "get_google_oauth_client",
    "get_google_token_service",
    "get_sqlite_store",
    "get_token_cipher_service",
]
