try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone

import pytest

from mailroom.clients.sqlite_store import SQLiteStore
from mailroom.core.exceptions import NotFoundError
from mailroom.models.email import Email
from mailroom.services.email_cache import EmailCache


def _email(email_id: str, sender: str, day: int, subject: str = "Subject") -> Email:
    return Email(
        id=email_id,
        from_address=sender,
        to_address="me@example.com",
        subject=subject,
        body=f"body {email_id}",
        date=datetime(2024, 3, day, 12, 0, tzinfo=timezone(timedelta(hours=2))),
    )


def test_upsert_overwrites_content_but_keeps_visibility(sqlite_store: SQLiteStore) -> None:
    cache = EmailCache(sqlite_store)
    cache.upsert_many([_email("m1", "alerts@example.com", 1, subject="Old")])
    cache.toggle_visibility("m1", "user-1")

    written = cache.upsert_many([_email("m1", "alerts@example.com", 1, subject="New")])

    assert written == 1
    (email,) = cache.list_emails(principal_id="user-1")
    assert email.subject == "New"
    assert email.is_hidden is True
    assert email.date == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def test_list_emails_filters_by_sender_and_orders_newest_first(sqlite_store: SQLiteStore) -> None:
    cache = EmailCache(sqlite_store)
    cache.upsert_many(
        [
            _email("a", "Alerts <alerts@example.com>", 1),
            _email("b", "news@example.org", 2),
            _email("c", "ALERTS@example.com", 3),
        ]
    )

    emails = cache.list_emails(principal_id="user-1", sender="alerts@example.com")

    assert [email.id for email in emails] == ["c", "a"]


def test_sender_filter_treats_underscore_and_percent_literally(
    sqlite_store: SQLiteStore,
) -> None:
    cache = EmailCache(sqlite_store)
    cache.upsert_many(
        [
            _email("a", "john_doe@x.com", 1),
            _email("b", "johnXdoe@x.com", 2),
            _email("c", "100%off@x.com", 3),
            _email("d", "100Xoff@x.com", 4),
        ]
    )

    assert [e.id for e in cache.list_emails(principal_id="user-1", sender="john_doe@x.com")] == ["a"]
    assert [e.id for e in cache.list_emails(principal_id="user-1", sender="100%off@x.com")] == ["c"]


def test_toggle_twice_restores_visibility_and_hidden_filter(sqlite_store: SQLiteStore) -> None:
    cache = EmailCache(sqlite_store)
    cache.upsert_many([_email("m1", "alerts@example.com", 1), _email("m2", "alerts@example.com", 2)])

    assert cache.toggle_visibility("m1", "user-1").is_hidden is True
    assert [e.id for e in cache.list_emails(principal_id="user-1", include_hidden=False)] == ["m2"]
    assert cache.toggle_visibility("m1", "user-1").is_hidden is False
    assert len(cache.list_emails(principal_id="user-1", include_hidden=False)) == 2


def test_toggle_unknown_email_raises(sqlite_store: SQLiteStore) -> None:
    with pytest.raises(NotFoundError):
        EmailCache(sqlite_store).toggle_visibility("missing", "user-1")
