"""
Persistence of Google OAuth client configurations and their token state.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from mailroom.clients.sqlite_store import SQLiteStore
from mailroom.core.exceptions import MissingParameterError, NotFoundError
from mailroom.models.oauth import (
    DEFAULT_AUTH_URI,
    DEFAULT_CERT_URL,
    DEFAULT_TOKEN_URI,
    OAuthConfiguration,
)
from mailroom.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

_PLAIN_FIELDS = ("client_id", "project_id", "auth_uri", "token_uri", "auth_provider_cert_url")


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CredentialStore:
    """Stores OAuth configurations with secrets encrypted at rest.

    At most one configuration is active; every activation deactivates the
    others in the same transaction.
    """

    def __init__(self, store: SQLiteStore, token_cipher: TokenCipherService) -> None:
        self._store = store
        self._cipher = token_cipher

    def create_config(
        self,
        *,
        client_id: str,
        client_secret: str,
        project_id: Optional[str] = None,
        auth_uri: Optional[str] = None,
        token_uri: Optional[str] = None,
        auth_provider_cert_url: Optional[str] = None,
        activate: bool = True,
    ) -> OAuthConfiguration:
        """Create a configuration from client credentials only; tokens come later."""
        if not client_id or not client_secret:
            raise MissingParameterError(
                "client_id", "Client ID and Secret are required"
            )
        now = datetime.now(timezone.utc).isoformat()
        config_id = str(uuid.uuid4())
        self._store.insert_config(
            {
                "id": config_id,
                "client_id": client_id,
                "client_secret_encrypted": self._cipher.encrypt(client_secret),
                "project_id": project_id,
                "auth_uri": auth_uri or DEFAULT_AUTH_URI,
                "token_uri": token_uri or DEFAULT_TOKEN_URI,
                "auth_provider_cert_url": auth_provider_cert_url or DEFAULT_CERT_URL,
                "created_at": now,
                "updated_at": now,
            },
            activate=activate,
        )
        logger.info("Created Google auth configuration %s (active=%s)", config_id, activate)
        return self._require(config_id)

    def import_client_secrets(self, document: Dict[str, Any]) -> OAuthConfiguration:
        """Create a configuration from a Google Cloud "web" client JSON document."""
        web = document.get("web") if isinstance(document, dict) else None
        if not isinstance(web, dict):
            raise MissingParameterError(
                "web",
                "Invalid JSON format. Must contain a 'web' object with credentials.",
            )
        return self.create_config(
            client_id=web.get("client_id", ""),
            client_secret=web.get("client_secret", ""),
            project_id=web.get("project_id"),
            auth_uri=web.get("auth_uri"),
            token_uri=web.get("token_uri"),
            auth_provider_cert_url=web.get("auth_provider_x509_cert_url"),
        )

    def update_config(self, config_id: str, **changes: Any) -> OAuthConfiguration:
        fields: Dict[str, Any] = {
            key: value
            for key, value in changes.items()
            if key in _PLAIN_FIELDS and value is not None
        }
        if changes.get("client_secret"):
            fields["client_secret_encrypted"] = self._cipher.encrypt(changes["client_secret"])
        if changes.get("is_active") is not None:
            fields["is_active"] = bool(changes["is_active"])
        if not self._store.update_config(config_id, fields):
            raise NotFoundError("Google auth configuration", config_id)
        return self._require(config_id)

    def activate_config(self, config_id: str) -> OAuthConfiguration:
        if not self._store.activate_config(config_id):
            raise NotFoundError("Google auth configuration", config_id)
        logger.info("Activated Google auth configuration %s", config_id)
        return self._require(config_id)

    def delete_config(self, config_id: str) -> None:
        if not self._store.delete_config(config_id):
            raise NotFoundError("Google auth configuration", config_id)
        logger.info("Deleted Google auth configuration %s", config_id)

    def get_config(self, config_id: str) -> Optional[OAuthConfiguration]:
        row = self._store.get_config(config_id)
        return self._to_model(row) if row else None

    def get_active_config(self) -> Optional[OAuthConfiguration]:
        row = self._store.get_active_config()
        return self._to_model(row) if row else None

    def list_configs(self) -> List[OAuthConfiguration]:
        return [self._to_model(row) for row in self._store.list_configs()]

    def save_tokens(
        self,
        config_id: str,
        *,
        access_token: str,
        refresh_token: Optional[str],
        token_expiry: datetime,
    ) -> bool:
        """Persist the result of an authorization-code exchange.

        Google omits the refresh token when the user has already granted offline
        access; the previously stored one stays valid in that case.
        """
        fields: Dict[str, Any] = {
            "access_token_encrypted": self._cipher.encrypt(access_token),
            "token_expiry": token_expiry.isoformat(),
        }
        if refresh_token:
            fields["refresh_token_encrypted"] = self._cipher.encrypt(refresh_token)
        return self._store.update_config(config_id, fields)

    def save_access_token(
        self, config_id: str, *, access_token: str, token_expiry: datetime
    ) -> bool:
        """Persist a refreshed access token; the refresh token is left as is."""
        return self._store.update_config(
            config_id,
            {
                "access_token_encrypted": self._cipher.encrypt(access_token),
                "token_expiry": token_expiry.isoformat(),
            },
        )

    def _require(self, config_id: str) -> OAuthConfiguration:
        config = self.get_config(config_id)
        if config is None:
            raise NotFoundError("Google auth configuration", config_id)
        return config

    def _to_model(self, row: Dict[str, Any]) -> OAuthConfiguration:
        return OAuthConfiguration(
            id=row["id"],
            client_id=row["client_id"],
            client_secret=self._cipher.decrypt(row["client_secret_encrypted"]),
            project_id=row.get("project_id"),
            auth_uri=row["auth_uri"],
            token_uri=row["token_uri"],
            auth_provider_cert_url=row["auth_provider_cert_url"],
            access_token=self._cipher.decrypt_optional(row.get("access_token_encrypted")),
            refresh_token=self._cipher.decrypt_optional(row.get("refresh_token_encrypted")),
            token_expiry=_parse_timestamp(row.get("token_expiry")),
            is_active=bool(row["is_active"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


__all__ = ["CredentialStore"]
