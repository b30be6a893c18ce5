"""
Sender search against the connected Gmail inbox.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from google.oauth2.credentials import Credentials

from mailroom.clients.gmail import GmailApiError, GmailClient, GmailUnauthorizedError
from mailroom.core.config import GmailSettings
from mailroom.core.exceptions import (
    MissingParameterError,
    NoActiveConfigurationError,
    ReauthorizeRequiredError,
    UpstreamError,
)
from mailroom.models.email import Email
from mailroom.models.oauth import OAuthConfiguration
from mailroom.services.credential_store import CredentialStore
from mailroom.services.email_cache import EmailCache
from mailroom.services.google_tokens import GoogleTokenService
from mailroom.utils.gmail_payload import normalize_message, sort_by_date_desc

logger = logging.getLogger(__name__)

NO_EMAILS_MESSAGE = "No emails found from this sender"


@dataclass(slots=True)
class SearchResult:
    """Normalized emails, newest first."""

    emails: List[Email] = field(default_factory=list)
    message: str = NO_EMAILS_MESSAGE

    @property
    def count(self) -> int:
        return len(self.emails)


class EmailSearchService:
    """Run an authorized inbox search and cache what it finds.

    The flow is: load the active configuration, make sure its token is fresh,
    list matching message ids, fetch up to ``max_results`` messages
    concurrently, normalize, sort and upsert them.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        token_service: GoogleTokenService,
        gmail_client: GmailClient,
        email_cache: EmailCache,
        gmail_settings: GmailSettings,
    ) -> None:
        self._store = credential_store
        self._tokens = token_service
        self._gmail = gmail_client
        self._cache = email_cache
        self._max_results = gmail_settings.max_results

    async def search(
        self, sender: Optional[str], *, principal_id: Optional[str] = None
    ) -> SearchResult:
        sender = (sender or "").strip()
        if not sender:
            raise MissingParameterError("searchEmail", "Email address is required")

        config = self._store.get_active_config()
        if config is None:
            raise NoActiveConfigurationError()

        credentials = await self._tokens.ensure_fresh(config)
        credentials, message_ids = await self._list_with_reauthorization(
            config, credentials, sender
        )
        if not message_ids:
            return SearchResult(emails=[], message=NO_EMAILS_MESSAGE)

        raw_messages = await self._gmail.fetch_messages(
            credentials, message_ids[: self._max_results]
        )
        emails = sort_by_date_desc(self._normalize(raw_messages))
        self._cache.upsert_many(emails)
        emails = self._cache.apply_visibility(emails, principal_id)

        logger.info("Search for sender returned %d of %d messages", len(emails), len(message_ids))
        message = f"Found {len(emails)} emails" if emails else "No emails found"
        return SearchResult(emails=emails, message=message)

    async def _list_with_reauthorization(
        self, config: OAuthConfiguration, credentials: Credentials, sender: str
    ) -> tuple[Credentials, List[str]]:
        """List ids; a 401 earns exactly one forced refresh and one retry."""
        try:
            return credentials, await self._list_message_ids(credentials, sender)
        except GmailUnauthorizedError as exc:
            if not config.refresh_token:
                raise ReauthorizeRequiredError(
                    "Access token expired.", details=self._error_details(exc)
                ) from exc
            logger.info("Gmail rejected the access token for %s; refreshing once", config.id)

        credentials = await self._tokens.ensure_fresh(
            config, rejected_token=credentials.token
        )
        try:
            return credentials, await self._list_message_ids(credentials, sender)
        except GmailUnauthorizedError as exc:
            raise ReauthorizeRequiredError(
                "Gmail rejected the refreshed access token.",
                details=self._error_details(exc),
            ) from exc

    async def _list_message_ids(self, credentials: Credentials, sender: str) -> List[str]:
        try:
            return await self._gmail.list_message_ids(
                credentials, sender, max_results=self._max_results
            )
        except GmailUnauthorizedError:
            raise
        except GmailApiError as exc:
            logger.error("Gmail API error %s: %s", exc.status_code, exc)
            raise UpstreamError(
                f"Failed to fetch emails from Gmail API: {exc}",
                details=self._error_details(exc),
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Gmail API request failed: %s", exc)
            raise UpstreamError(f"Failed to reach Gmail API: {exc}") from exc

    @staticmethod
    def _normalize(raw_messages: List[Dict[str, Any]]) -> List[Email]:
        emails: List[Email] = []
        for message in raw_messages:
            try:
                emails.append(normalize_message(message))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed message %s: %s", message.get("id"), exc)
        return emails

    @staticmethod
    def _error_details(exc: GmailApiError) -> Dict[str, Any]:
        return {"status": exc.status_code, "errorDetails": exc.payload}


__all__ = ["EmailSearchService", "NO_EMAILS_MESSAGE", "SearchResult"]
