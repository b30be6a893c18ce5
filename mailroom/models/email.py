"""
Cached Gmail message model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Email(BaseModel):
    """A normalized Gmail message keyed by its provider message id."""

    id: str
    from_address: str = ""
    to_address: str = ""
    subject: str = "No Subject"
    body: str = ""
    date: Optional[datetime] = None
    is_read: bool = False
    is_hidden: bool = False


__all__ = ["Email"]
