"""Cache of fetched Gmail messages with per-principal visibility."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from mailroom.clients.sqlite_store import SQLiteStore
from mailroom.core.exceptions import NotFoundError
from mailroom.models.email import Email

logger = logging.getLogger(__name__)


class EmailCache:
    """Upserts messages by provider id and layers each viewer's hidden flags on top."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def upsert_many(self, emails: Iterable[Email]) -> int:
        """Best-effort upsert; failures are logged and skipped. Returns rows written."""
        written = 0
        for email in emails:
            try:
                self._store.upsert_email(
                    {
                        "id": email.id,
                        "from_address": email.from_address,
                        "to_address": email.to_address,
                        "subject": email.subject,
                        "body": email.body,
                        "date": email.date.astimezone(timezone.utc).isoformat() if email.date else None,
                        "is_read": int(email.is_read),
                    }
                )
            except sqlite3.Error as exc:
                logger.warning("Error storing email %s: %s", email.id, exc)
                continue
            written += 1
        return written

    def apply_visibility(self, emails: List[Email], principal_id: Optional[str]) -> List[Email]:
        if not principal_id or not emails:
            return emails
        hidden = self._store.hidden_email_ids(principal_id, (email.id for email in emails))
        return [
            email.model_copy(update={"is_hidden": email.id in hidden}) for email in emails
        ]

    def list_emails(
        self,
        *,
        principal_id: str,
        sender: Optional[str] = None,
        include_hidden: bool = True,
    ) -> List[Email]:
        rows = self._store.list_emails(
            sender=sender, principal_id=principal_id, include_hidden=include_hidden
        )
        return [self._to_model(row) for row in rows]

    def toggle_visibility(self, email_id: str, principal_id: str) -> Email:
        hidden = self._store.toggle_email_visibility(email_id, principal_id)
        if hidden is None:
            raise NotFoundError("Email", email_id)
        row = self._store.get_email(email_id)
        return self._to_model({**row, "is_hidden": hidden})

    @staticmethod
    def _to_model(row: Dict[str, Any]) -> Email:
        return Email(
            id=row["id"],
            from_address=row["from_address"],
            to_address=row["to_address"],
            subject=row["subject"],
            body=row["body"],
            date=datetime.fromisoformat(row["date"]) if row.get("date") else None,
            is_read=bool(row["is_read"]),
            is_hidden=bool(row.get("is_hidden", False)),
        )


__all__ = ["EmailCache"]
