"""Normalization of Gmail ``format=full`` message resources."""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterable, List, Optional

from mailroom.models.email import Email

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def decode_base64url(data: Optional[str]) -> str:
    """Decode Gmail's URL-safe base64 body data into text.

    Gmail strips padding, so it is restored before decoding. Undecodable input
    yields an empty string.
    """
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError):
        return ""
    return raw.decode("utf-8", errors="replace")


def _walk_parts(part: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    for child in part.get("parts") or []:
        yield child
        yield from _walk_parts(child)


def _find_part_data(payload: Dict[str, Any], mime_type: str) -> Optional[str]:
    for part in _walk_parts(payload):
        if part.get("mimeType") == mime_type:
            data = (part.get("body") or {}).get("data")
            if data:
                return data
    return None


def extract_body(payload: Optional[Dict[str, Any]]) -> str:
    """Return the message text, preferring text/plain over text/html.

    Single-part messages carry their data on the payload itself.
    """
    if not payload:
        return ""
    if payload.get("parts"):
        for mime_type in ("text/plain", "text/html"):
            data = _find_part_data(payload, mime_type)
            if data:
                return decode_base64url(data)
    return decode_base64url((payload.get("body") or {}).get("data"))


def _header(headers: List[Dict[str, str]], name: str) -> Optional[str]:
    wanted = name.lower()
    for header in headers:
        if (header.get("name") or "").lower() == wanted:
            return header.get("value")
    return None


def parse_message_date(raw_date: Optional[str], internal_date: Optional[str] = None) -> Optional[datetime]:
    parsed: Optional[datetime] = None
    if raw_date:
        try:
            parsed = parsedate_to_datetime(raw_date)
        except (TypeError, ValueError, IndexError):
            parsed = None
    if parsed is None and internal_date:
        try:
            parsed = datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None
    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_message(message: Dict[str, Any]) -> Email:
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    return Email(
        id=message["id"],
        from_address=_header(headers, "From") or "",
        to_address=_header(headers, "To") or "",
        subject=_header(headers, "Subject") or "No Subject",
        body=extract_body(payload),
        date=parse_message_date(_header(headers, "Date"), message.get("internalDate")),
        is_read="UNREAD" not in (message.get("labelIds") or []),
        is_hidden=False,
    )


def sort_by_date_desc(emails: Iterable[Email]) -> List[Email]:
    """Newest first; undated messages go last."""
    return sorted(emails, key=lambda email: email.date or _EPOCH, reverse=True)


__all__ = [
    "decode_base64url",
    "extract_body",
    "normalize_message",
    "parse_message_date",
    "sort_by_date_desc",
]
