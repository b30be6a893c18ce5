"""Gmail REST API client wrapper."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
from google.oauth2.credentials import Credentials

from mailroom.core.config import GmailSettings

logger = logging.getLogger(__name__)


class GmailApiError(Exception):
    """Gmail answered with a non-2xx status."""

    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self.payload = payload
        message = None
        if isinstance(payload, dict):
            error = payload.get("error")
            message = error.get("message") if isinstance(error, dict) else error
        super().__init__(message or f"Gmail API returned HTTP {status_code}")


class GmailUnauthorizedError(GmailApiError):
    """Gmail rejected the bearer token (HTTP 401)."""


def build_sender_query(sender: str) -> str:
    """Inbox search restricted to one sender, ready to append to the URL."""
    return quote(f"in:inbox from:{sender}", safe=":")


class GmailClient:
    """Search the connected mailbox and fetch full messages."""

    def __init__(
        self,
        settings: GmailSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.api_base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self, credentials: Credentials) -> httpx.AsyncClient:
        headers: Dict[str, str] = {"Accept": "application/json"}
        credentials.apply(headers)
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def list_message_ids(
        self,
        credentials: Credentials,
        sender: str,
        *,
        max_results: Optional[int] = None,
    ) -> List[str]:
        """Ids of inbox messages from ``sender``, at most ``max_results`` of them."""
        limit = max_results or self._settings.max_results
        url = f"/users/me/messages?q={build_sender_query(sender)}&maxResults={limit}"
        async with self._client(credentials) as client:
            response = await client.get(url)
        self._raise_for_status(response)
        messages = response.json().get("messages") or []
        return [message["id"] for message in messages[:limit] if message.get("id")]

    async def fetch_messages(
        self, credentials: Credentials, message_ids: Sequence[str]
    ) -> List[Dict[str, Any]]:
        """Fetch messages concurrently; failed fetches are logged and dropped.

        Results keep the order of ``message_ids``.
        """
        if not message_ids:
            return []
        semaphore = asyncio.Semaphore(self._settings.max_results)

        async with self._client(credentials) as client:

            async def _fetch(message_id: str) -> Optional[Dict[str, Any]]:
                async with semaphore:
                    try:
                        return await self._get_message(client, message_id)
                    except (GmailApiError, httpx.HTTPError, ValueError) as exc:
                        logger.warning("Failed to fetch email %s: %s", message_id, exc)
                        return None

            results = await asyncio.gather(*(_fetch(message_id) for message_id in message_ids))

        return [message for message in results if message is not None]

    async def _get_message(self, client: httpx.AsyncClient, message_id: str) -> Dict[str, Any]:
        response = await client.get(
            f"/users/me/messages/{quote(message_id, safe='')}", params={"format": "full"}
        )
        self._raise_for_status(response)
        return response.json()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            payload = response.json()
        except ValueError:
            payload = {"error": {"message": response.text}}
        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise GmailUnauthorizedError(response.status_code, payload)
        raise GmailApiError(response.status_code, payload)


__all__ = [
    "GmailApiError",
    "GmailClient",
    "GmailUnauthorizedError",
    "build_sender_query",
]
