from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from mailroom.clients.sqlite_store import SQLiteStore
from mailroom.core.exceptions import MissingParameterError, NotFoundError
from mailroom.models.oauth import DEFAULT_AUTH_URI, DEFAULT_CERT_URL, DEFAULT_TOKEN_URI
from mailroom.services.credential_store import CredentialStore


def _active_ids(store: CredentialStore) -> list[str]:
    return [config.id for config in store.list_configs() if config.is_active]


def test_create_config_fills_google_defaults_and_activates(credential_store: CredentialStore) -> None:
    config = credential_store.create_config(client_id="client", client_secret="secret")

    assert config.is_active
    assert config.auth_uri == DEFAULT_AUTH_URI
    assert config.token_uri == DEFAULT_TOKEN_URI
    assert config.auth_provider_cert_url == DEFAULT_CERT_URL
    assert config.access_token is None
    assert config.refresh_token is None
    assert credential_store.get_active_config().id == config.id


def test_create_config_requires_client_credentials(credential_store: CredentialStore) -> None:
    with pytest.raises(MissingParameterError) as excinfo:
        credential_store.create_config(client_id="client", client_secret="")

    assert excinfo.value.message == "Client ID and Secret are required"


def test_client_secret_is_encrypted_at_rest(
    credential_store: CredentialStore, sqlite_store: SQLiteStore
) -> None:
    config = credential_store.create_config(client_id="client", client_secret="very-secret")

    row = sqlite_store.get_config(config.id)
    assert row["client_secret_encrypted"] != "very-secret"
    assert credential_store.get_config(config.id).client_secret == "very-secret"


def test_at_most_one_configuration_is_active(credential_store: CredentialStore) -> None:
    first = credential_store.create_config(client_id="one", client_secret="s1")
    second = credential_store.create_config(client_id="two", client_secret="s2")
    assert _active_ids(credential_store) == [second.id]

    third = credential_store.create_config(client_id="three", client_secret="s3", activate=False)
    assert _active_ids(credential_store) == [second.id]

    credential_store.activate_config(first.id)
    assert _active_ids(credential_store) == [first.id]

    credential_store.update_config(third.id, is_active=True)
    assert _active_ids(credential_store) == [third.id]

    credential_store.update_config(third.id, is_active=False)
    assert _active_ids(credential_store) == []

    credential_store.activate_config(second.id)
    credential_store.delete_config(second.id)
    assert credential_store.get_active_config() is None


def test_database_rejects_a_second_active_row(sqlite_store: SQLiteStore) -> None:
    now = datetime.now(timezone.utc).isoformat()
    for config_id in ("a", "b"):
        sqlite_store.insert_config(
            {
                "id": config_id,
                "client_id": config_id,
                "client_secret_encrypted": "x",
                "auth_uri": DEFAULT_AUTH_URI,
                "token_uri": DEFAULT_TOKEN_URI,
                "auth_provider_cert_url": DEFAULT_CERT_URL,
                "created_at": now,
                "updated_at": now,
            },
            activate=config_id == "a",
        )

    conn = sqlite3.connect(sqlite_store._db_path)
    try:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("UPDATE google_auth_configs SET is_active = 1 WHERE id = 'b'")
    finally:
        conn.close()


def test_update_config_changes_fields_and_secret(credential_store: CredentialStore) -> None:
    config = credential_store.create_config(client_id="client", client_secret="old")

    updated = credential_store.update_config(
        config.id, project_id="proj-1", client_secret="new", client_id=None
    )

    assert updated.project_id == "proj-1"
    assert updated.client_secret == "new"
    assert updated.client_id == "client"
    assert updated.is_active


def test_unknown_configuration_operations_raise_not_found(credential_store: CredentialStore) -> None:
    with pytest.raises(NotFoundError):
        credential_store.activate_config("missing")
    with pytest.raises(NotFoundError):
        credential_store.update_config("missing", project_id="p")
    with pytest.raises(NotFoundError):
        credential_store.delete_config("missing")
    assert credential_store.get_config("missing") is None


def test_save_tokens_keeps_previous_refresh_token_when_omitted(
    credential_store: CredentialStore,
) -> None:
    config = credential_store.create_config(client_id="client", client_secret="secret")
    expiry = datetime.now(timezone.utc) + timedelta(hours=1)

    credential_store.save_tokens(
        config.id, access_token="access-1", refresh_token="refresh-1", token_expiry=expiry
    )
    credential_store.save_tokens(
        config.id, access_token="access-2", refresh_token=None, token_expiry=expiry
    )

    stored = credential_store.get_config(config.id)
    assert stored.access_token == "access-2"
    assert stored.refresh_token == "refresh-1"
    assert stored.token_expiry == expiry


def test_import_client_secrets_reads_the_web_section(credential_store: CredentialStore) -> None:
    document = {
        "web": {
            "client_id": "web-client.apps.googleusercontent.com",
            "project_id": "inbox-project",
            "auth_uri": "https://accounts.example.com/auth",
            "token_uri": "https://tokens.example.com/token",
            "auth_provider_x509_cert_url": "https://certs.example.com",
            "client_secret": "web-secret",
        }
    }

    config = credential_store.import_client_secrets(document)

    assert config.client_id == "web-client.apps.googleusercontent.com"
    assert config.project_id == "inbox-project"
    assert config.token_uri == "https://tokens.example.com/token"
    assert config.auth_provider_cert_url == "https://certs.example.com"
    assert config.client_secret == "web-secret"
    assert config.is_active


@pytest.mark.parametrize("document", [{}, {"installed": {"client_id": "x"}}, {"web": "nope"}])
def test_import_client_secrets_rejects_other_documents(
    credential_store: CredentialStore, document: dict
) -> None:
    with pytest.raises(MissingParameterError) as excinfo:
        credential_store.import_client_secrets(document)

    assert "'web' object" in excinfo.value.message
