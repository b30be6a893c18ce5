"""Service layer exports."""

from .access_control import AccessControlService
from .credential_store import CredentialStore
from .email_cache import EmailCache
from .email_search import EmailSearchService, SearchResult
from .google_tokens import GoogleTokenService
from .token_cipher import TokenCipherService

__all__ = [
    "AccessControlService",
    "CredentialStore",
    "EmailCache",
    "EmailSearchService",
    "GoogleTokenService",
    "SearchResult",
    "TokenCipherService",
]
