"""Schemas for the sender search and the cached email listing."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from mailroom.models.email import Email

from .base import CamelModel


class SearchEmailsRequest(CamelModel):
    search_email: Optional[str] = Field(
        None, description="Sender address to look for in the inbox."
    )


class EmailOut(CamelModel):
    id: str
    from_address: str = Field(..., alias="from")
    to_address: str = Field(..., alias="to")
    subject: str
    body: str
    date: Optional[datetime] = None
    is_read: bool
    is_hidden: bool

    @classmethod
    def from_model(cls, email: Email) -> "EmailOut":
        return cls(
            id=email.id,
            from_address=email.from_address,
            to_address=email.to_address,
            subject=email.subject,
            body=email.body,
            date=email.date,
            is_read=email.is_read,
            is_hidden=email.is_hidden,
        )


class SearchEmailsResponse(CamelModel):
    emails: List[EmailOut] = Field(default_factory=list)
    count: int = 0
    message: str


__all__ = ["EmailOut", "SearchEmailsRequest", "SearchEmailsResponse"]
