"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from mailroom.clients.sqlite_store import SQLiteStore
from mailroom.services.credential_store import CredentialStore
from mailroom.services.token_cipher import TokenCipherService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "mailroom.db"))


@pytest.fixture
def token_cipher() -> TokenCipherService:
    return TokenCipherService(secret="secret-key")


@pytest.fixture
def credential_store(sqlite_store: SQLiteStore, token_cipher: TokenCipherService) -> CredentialStore:
    return CredentialStore(sqlite_store, token_cipher)
