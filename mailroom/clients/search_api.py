"""
Client for the mailroom search endpoint, used by scripts and other services.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from mailroom.utils.http import RetryConfig, call_with_retry


class SearchRequestError(Exception):
    """The search endpoint reported a failure."""

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[str] = None,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.kind = kind
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(message)


class SearchReauthorizationRequired(SearchRequestError):
    """Google credentials must be renewed by an admin; retrying will not help."""


def _is_retryable(exc: BaseException) -> bool:
    return not isinstance(exc, SearchReauthorizationRequired)


class SearchApiClient:
    """Calls ``POST /api/search-emails`` with retries for transient failures."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._retry_config = retry_config or RetryConfig()
        self._timeout = timeout
        self._transport = transport

    async def search_emails(self, sender: str) -> Dict[str, Any]:
        """Return the ``{emails, count, message}`` payload for ``sender``."""
        return await call_with_retry(
            self._search_once,
            sender,
            retry_config=self._retry_config,
            retry_on=(SearchRequestError, httpx.TransportError),
            is_retryable=_is_retryable,
        )

    async def _search_once(self, sender: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self._access_token}"},
        ) as client:
            response = await client.post("/api/search-emails", json={"searchEmail": sender})

        try:
            payload = response.json()
        except ValueError:
            payload = {"error": response.text or f"HTTP {response.status_code}"}
        if not isinstance(payload, dict):
            payload = {"error": f"Unexpected response body: {payload!r}"}

        # Older deployments answered 200 with an embedded error, so check both.
        if response.is_success and not payload.get("error"):
            return payload

        message = str(payload.get("error") or f"HTTP {response.status_code}")
        kind = payload.get("kind")
        error_cls = SearchRequestError
        if kind == "reauthorize_required" or "reauthorize" in message.lower():
            error_cls = SearchReauthorizationRequired
        raise error_cls(
            message, kind=kind, status_code=response.status_code, payload=payload
        )


__all__ = ["SearchApiClient", "SearchReauthorizationRequired", "SearchRequestError"]
