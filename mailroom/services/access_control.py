"""
Application access tokens and admin credentials.
"""

from __future__ import annotations

import logging
import secrets
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from mailroom.clients.sqlite_store import SQLiteStore
from mailroom.core.config import SecuritySettings
from mailroom.core.exceptions import (
    AccessTokenBlockedError,
    AuthenticationError,
    DuplicateResourceError,
    MissingParameterError,
    NotFoundError,
)
from mailroom.models.oauth import AccessToken
from mailroom.services.token_cipher import (
    TokenCipherService,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


class AccessControlService:
    """Issues, blocks and verifies the bearer tokens end users log in with."""

    def __init__(
        self,
        store: SQLiteStore,
        token_cipher: TokenCipherService,
        security_settings: SecuritySettings,
    ) -> None:
        self._store = store
        self._cipher = token_cipher
        self._security = security_settings

    def create_access_token(self, token: Optional[str] = None) -> AccessToken:
        value = (token or "").strip() or secrets.token_urlsafe(24)
        record = AccessToken(id=str(uuid.uuid4()), token=value)
        try:
            self._store.insert_access_token(
                {
                    "id": record.id,
                    "token_hash": self._cipher.fingerprint(value),
                    "token_encrypted": self._cipher.encrypt(value),
                    "is_blocked": False,
                    "created_at": record.created_at.isoformat(),
                }
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateResourceError("This access token already exists.") from exc
        logger.info("Issued access token %s", record.id)
        return record

    def list_access_tokens(self) -> List[AccessToken]:
        return [self._to_model(row) for row in self._store.list_access_tokens()]

    def set_blocked(self, token_id: str, blocked: bool) -> AccessToken:
        if not self._store.set_access_token_blocked(token_id, blocked):
            raise NotFoundError("Access token", token_id)
        logger.info("Access token %s %s", token_id, "blocked" if blocked else "unblocked")
        return self._to_model(self._store.get_access_token(token_id))

    def delete_access_token(self, token_id: str) -> None:
        if not self._store.delete_access_token(token_id):
            raise NotFoundError("Access token", token_id)
        logger.info("Deleted access token %s", token_id)

    def authenticate(self, token: Optional[str]) -> AccessToken:
        """Resolve a presented bearer token to its record."""
        if not token:
            raise AuthenticationError("An access token is required.")
        row = self._store.find_access_token_by_hash(self._cipher.fingerprint(token))
        if row is None:
            raise AuthenticationError("Invalid access token.")
        record = self._to_model(row)
        if record.is_blocked:
            raise AccessTokenBlockedError()
        return record

    def verify_admin(self, username: str, password: str) -> bool:
        stored = self._store.get_admin_credentials()
        if stored is None:
            return secrets.compare_digest(
                username.encode("utf-8"), self._security.admin_username.encode("utf-8")
            ) and secrets.compare_digest(
                password.encode("utf-8"), self._security.admin_password.encode("utf-8")
            )
        if not secrets.compare_digest(
            username.encode("utf-8"), stored["username"].encode("utf-8")
        ):
            return False
        return verify_password(password, stored["password_hash"])

    def update_admin_credentials(self, username: str, password: str) -> None:
        if not username.strip() or not password.strip():
            raise MissingParameterError("username", "Username and password are required")
        self._store.put_admin_credentials(username.strip(), hash_password(password))
        logger.info("Admin credentials updated")

    def _to_model(self, row: Dict[str, Any]) -> AccessToken:
        created_at = datetime.fromisoformat(row["created_at"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return AccessToken(
            id=row["id"],
            token=self._cipher.decrypt(row["token_encrypted"]),
            is_blocked=bool(row["is_blocked"]),
            created_at=created_at,
        )


__all__ = ["AccessControlService"]
