"""
Google OAuth utilities.

These helpers build consent URLs and talk to the token endpoint for both grant
types. Client credentials come from the stored configuration rather than from
process settings, so one deployment can switch between Google projects.
"""

from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urlencode

import httpx

from fastapi import status

from mailroom.core.config import OAuthSettings
from mailroom.models.oauth import OAuthConfiguration


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


def _describe_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        return payload.get("error_description") or payload.get("error") or response.text
    return response.text


def _expires_in_seconds(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise OAuthTokenExchangeError(f"Invalid expires_in value: {value!r}") from exc


class GoogleOAuthClient:
    """Build Google authorization URLs, exchange codes and refresh tokens."""

    def __init__(
        self,
        oauth_settings: OAuthSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._oauth = oauth_settings
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return self._oauth.redirect_uri

    def build_authorization_url(self, config: OAuthConfiguration) -> str:
        """Construct the consent URL; ``state`` carries the configuration id."""
        params = {
            "client_id": config.client_id,
            "redirect_uri": self._oauth.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._oauth.scopes),
            "access_type": "offline",
            "include_granted_scopes": "true",
            "prompt": "consent",
            "state": config.id,
        }
        return f"{config.auth_uri}?{urlencode(params)}"

    async def exchange_authorization_code(
        self, config: OAuthConfiguration, code: str
    ) -> Tuple[str, Optional[str], int]:
        """
        Exchange an authorization code for tokens.

        Returns a tuple of (access_token, refresh_token, expires_in_seconds).
        """
        payload = {
            "code": code,
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "redirect_uri": self._oauth.redirect_uri,
            "grant_type": "authorization_code",
        }
        token_payload = await self._post_token_request(config.token_uri, payload)

        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")
        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete token payload returned from Google.")

        return access_token, token_payload.get("refresh_token"), _expires_in_seconds(expires_in)

    async def refresh_access_token(self, config: OAuthConfiguration) -> Tuple[str, int]:
        """Mint a new access token from the stored refresh token."""
        payload = {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "refresh_token": config.refresh_token or "",
            "grant_type": "refresh_token",
        }
        token_payload = await self._post_token_request(config.token_uri, payload)

        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")
        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete refresh payload returned from Google.")

        return access_token, _expires_in_seconds(expires_in)

    async def _post_token_request(self, token_uri: str, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(
                timeout=self._oauth.http_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(token_uri, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                _describe_error(response), status_code=response.status_code
            )
        try:
            token_payload = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError("Token endpoint returned invalid JSON.") from exc
        if not isinstance(token_payload, dict):
            raise OAuthTokenExchangeError("Token endpoint returned a non-object JSON body.")
        if token_payload.get("error"):
            raise OAuthTokenExchangeError(
                token_payload.get("error_description") or token_payload["error"]
            )
        return token_payload


__all__ = ["GoogleOAuthClient", "OAuthTokenExchangeError"]
