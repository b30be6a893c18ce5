"""
Helpers for exchanging, refreshing and handing out Google OAuth tokens.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from google.oauth2.credentials import Credentials

from mailroom.clients.google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from mailroom.core.config import OAuthSettings
from mailroom.core.exceptions import (
    ConfigNotFoundError,
    MissingParameterError,
    ReauthorizeRequiredError,
    TokenExchangeFailedError,
)
from mailroom.models.oauth import OAuthConfiguration
from mailroom.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class GoogleTokenService:
    """Manages the token lifecycle of stored OAuth configurations."""

    def __init__(
        self,
        credential_store: CredentialStore,
        oauth_client: GoogleOAuthClient,
        oauth_settings: OAuthSettings,
    ) -> None:
        self._store = credential_store
        self._oauth = oauth_client
        self._oauth_settings = oauth_settings
        self._refresh_window = timedelta(seconds=oauth_settings.refresh_window_seconds)
        self._refresh_locks: Dict[str, asyncio.Lock] = {}

    async def complete_authorization(
        self, *, code: Optional[str], state: Optional[str]
    ) -> OAuthConfiguration:
        """Exchange the callback code and store the tokens on the config named by ``state``.

        A used or expired code is rejected by Google; that failure is final and
        the admin has to start the consent flow again.
        """
        if not code:
            raise MissingParameterError("code", "Missing authorization code")
        config = self._store.get_config(state) if state else None
        if config is None:
            raise ConfigNotFoundError(state or "")

        issued_at = datetime.now(timezone.utc)
        try:
            (
                access_token,
                refresh_token,
                expires_in,
            ) = await self._oauth.exchange_authorization_code(config, code)
        except OAuthTokenExchangeError as exc:
            logger.error("Authorization code exchange failed for configuration %s: %s", config.id, exc)
            raise TokenExchangeFailedError(
                str(exc) or "Failed to exchange authorization code for token"
            ) from exc

        saved = self._store.save_tokens(
            config.id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expiry=issued_at + timedelta(seconds=expires_in),
        )
        if not saved:
            raise ConfigNotFoundError(config.id)
        logger.info("Stored Google tokens for configuration %s", config.id)
        return self._store.get_config(config.id) or config

    def is_stale(self, config: OAuthConfiguration, now: Optional[datetime] = None) -> bool:
        """True when the access token is absent or expires within the refresh window."""
        if not config.access_token or config.token_expiry is None:
            return True
        now = now or datetime.now(timezone.utc)
        expiry = config.token_expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return now + self._refresh_window >= expiry

    async def refresh(self, config: OAuthConfiguration) -> OAuthConfiguration:
        """Mint and persist a new access token; the refresh token is not rotated."""
        if not config.refresh_token or not config.client_id or not config.client_secret:
            raise ReauthorizeRequiredError(
                "No access token available. You need to complete the Google OAuth process."
            )

        refreshed_at = datetime.now(timezone.utc)
        try:
            access_token, expires_in = await self._oauth.refresh_access_token(config)
        except OAuthTokenExchangeError as exc:
            logger.error("Refreshing access token for configuration %s failed: %s", config.id, exc)
            raise ReauthorizeRequiredError(
                "Failed to refresh access token.", details={"reason": str(exc)}
            ) from exc

        token_expiry = refreshed_at + timedelta(seconds=expires_in)
        self._store.save_access_token(
            config.id, access_token=access_token, token_expiry=token_expiry
        )
        logger.info("Refreshed access token for configuration %s", config.id)
        return config.model_copy(
            update={"access_token": access_token, "token_expiry": token_expiry}
        )

    async def ensure_fresh(
        self, config: OAuthConfiguration, *, rejected_token: Optional[str] = None
    ) -> Credentials:
        """Return usable credentials, refreshing when stale or when Gmail rejected ``rejected_token``.

        Refreshes are serialized per configuration. A waiter re-reads the row
        after acquiring the lock and reuses a token another task just minted.
        """
        force = rejected_token is not None
        if not force and not self.is_stale(config):
            return self._credentials(config)

        lock = self._refresh_locks.setdefault(config.id, asyncio.Lock())
        async with lock:
            current = self._store.get_config(config.id) or config
            if not self.is_stale(current) and (
                not force or current.access_token != rejected_token
            ):
                return self._credentials(current)
            refreshed = await self.refresh(current)
        return self._credentials(refreshed)

    def _credentials(self, config: OAuthConfiguration) -> Credentials:
        expiry = None
        if config.token_expiry is not None:
            # google-auth compares expiry against naive UTC timestamps.
            expiry = config.token_expiry.astimezone(timezone.utc).replace(tzinfo=None)
        return Credentials(
            token=config.access_token,
            refresh_token=config.refresh_token,
            token_uri=config.token_uri,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scopes=list(self._oauth_settings.scopes),
            expiry=expiry,
        )


__all__ = ["GoogleTokenService"]
