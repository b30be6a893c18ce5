"""SQLite-backed persistence for OAuth configurations, access tokens and cached emails."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

_CONFIG_COLUMNS = (
    "id",
    "client_id",
    "client_secret_encrypted",
    "project_id",
    "auth_uri",
    "token_uri",
    "auth_provider_cert_url",
    "access_token_encrypted",
    "refresh_token_encrypted",
    "token_expiry",
    "is_active",
    "created_at",
    "updated_at",
)

_EMAIL_COLUMNS = (
    "id",
    "from_address",
    "to_address",
    "subject",
    "body",
    "date",
    "is_read",
)


def _escape_like(value: str) -> str:
    """Make ``value`` match literally inside a ``LIKE ... ESCAPE '\\'`` pattern."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStore:
    """Relational store with one table per record type.

    Connections are opened per operation; every multi-statement write runs in
    a single ``with conn`` block so it commits or rolls back as a unit.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS google_auth_configs (
                    id TEXT PRIMARY KEY,
                    client_id TEXT NOT NULL,
                    client_secret_encrypted TEXT NOT NULL,
                    project_id TEXT,
                    auth_uri TEXT NOT NULL,
                    token_uri TEXT NOT NULL,
                    auth_provider_cert_url TEXT NOT NULL,
                    access_token_encrypted TEXT,
                    refresh_token_encrypted TEXT,
                    token_expiry TEXT,
                    is_active INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE UNIQUE INDEX IF NOT EXISTS google_auth_configs_single_active
                    ON google_auth_configs (is_active) WHERE is_active = 1;

                CREATE TABLE IF NOT EXISTS access_tokens (
                    id TEXT PRIMARY KEY,
                    token_hash TEXT NOT NULL UNIQUE,
                    token_encrypted TEXT NOT NULL,
                    is_blocked INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS emails (
                    id TEXT PRIMARY KEY,
                    from_address TEXT NOT NULL,
                    to_address TEXT NOT NULL,
                    subject TEXT NOT NULL,
                    body TEXT NOT NULL,
                    date TEXT,
                    is_read INTEGER NOT NULL DEFAULT 0,
                    fetched_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS email_visibility (
                    email_id TEXT NOT NULL REFERENCES emails (id) ON DELETE CASCADE,
                    principal_id TEXT NOT NULL,
                    hidden INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (email_id, principal_id)
                );

                CREATE TABLE IF NOT EXISTS admin_credentials (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    username TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    # -- OAuth configurations -------------------------------------------------

    def insert_config(self, row: Dict[str, Any], *, activate: bool) -> None:
        values = {column: row.get(column) for column in _CONFIG_COLUMNS}
        values["is_active"] = 0
        placeholders = ", ".join("?" for _ in _CONFIG_COLUMNS)
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO google_auth_configs ({', '.join(_CONFIG_COLUMNS)}) "
                f"VALUES ({placeholders})",
                tuple(values[column] for column in _CONFIG_COLUMNS),
            )
            if activate:
                self._activate(conn, values["id"])

    def update_config(self, config_id: str, fields: Dict[str, Any]) -> bool:
        """Apply a partial update; ``is_active=True`` deactivates every other row."""
        updates = {key: value for key, value in fields.items() if key in _CONFIG_COLUMNS}
        updates.pop("id", None)
        is_active = updates.pop("is_active", None)
        activate = bool(is_active)
        if is_active is not None and not activate:
            updates["is_active"] = 0
        updates["updated_at"] = _now_iso()
        assignments = ", ".join(f"{column} = ?" for column in updates)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE google_auth_configs SET {assignments} WHERE id = ?",
                (*updates.values(), config_id),
            )
            if cursor.rowcount == 0:
                return False
            if activate:
                self._activate(conn, config_id)
        return True

    def activate_config(self, config_id: str) -> bool:
        with self._connect() as conn:
            exists = conn.execute(
                "SELECT 1 FROM google_auth_configs WHERE id = ?", (config_id,)
            ).fetchone()
            if not exists:
                return False
            self._activate(conn, config_id)
        return True

    @staticmethod
    def _activate(conn: sqlite3.Connection, config_id: str) -> None:
        # Deactivate first so the partial unique index never sees two active rows.
        now = _now_iso()
        conn.execute(
            "UPDATE google_auth_configs SET is_active = 0, updated_at = ? "
            "WHERE is_active = 1 AND id != ?",
            (now, config_id),
        )
        conn.execute(
            "UPDATE google_auth_configs SET is_active = 1, updated_at = ? WHERE id = ?",
            (now, config_id),
        )

    def delete_config(self, config_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM google_auth_configs WHERE id = ?", (config_id,)
            )
        return cursor.rowcount > 0

    def get_config(self, config_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM google_auth_configs WHERE id = ?", (config_id,)
            ).fetchone()
        return dict(row) if row else None

    def get_active_config(self) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM google_auth_configs WHERE is_active = 1 LIMIT 1"
            ).fetchone()
        return dict(row) if row else None

    def list_configs(self) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM google_auth_configs ORDER BY created_at"
            ).fetchall()
        return [dict(row) for row in rows]

    # -- Application access tokens -------------------------------------------

    def insert_access_token(self, row: Dict[str, Any]) -> None:
        """Insert a token row; raises ``sqlite3.IntegrityError`` on duplicates."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO access_tokens (id, token_hash, token_encrypted, is_blocked, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    row["id"],
                    row["token_hash"],
                    row["token_encrypted"],
                    int(row.get("is_blocked", False)),
                    row["created_at"],
                ),
            )

    def get_access_token(self, token_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM access_tokens WHERE id = ?", (token_id,)
            ).fetchone()
        return dict(row) if row else None

    def find_access_token_by_hash(self, token_hash: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM access_tokens WHERE token_hash = ?", (token_hash,)
            ).fetchone()
        return dict(row) if row else None

    def list_access_tokens(self) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM access_tokens ORDER BY created_at"
            ).fetchall()
        return [dict(row) for row in rows]

    def set_access_token_blocked(self, token_id: str, blocked: bool) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE access_tokens SET is_blocked = ? WHERE id = ?",
                (int(blocked), token_id),
            )
        return cursor.rowcount > 0

    def delete_access_token(self, token_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM access_tokens WHERE id = ?", (token_id,))
        return cursor.rowcount > 0

    # -- Email cache ----------------------------------------------------------

    def upsert_email(self, row: Dict[str, Any]) -> None:
        """Insert or overwrite a cached message; visibility rows are untouched."""
        values = tuple(row.get(column) for column in _EMAIL_COLUMNS)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO emails (id, from_address, to_address, subject, body, date, is_read, fetched_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    from_address = excluded.from_address,
                    to_address = excluded.to_address,
                    subject = excluded.subject,
                    body = excluded.body,
                    date = excluded.date,
                    is_read = excluded.is_read,
                    fetched_at = excluded.fetched_at
                """,
                (*values, _now_iso()),
            )

    def get_email(self, email_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM emails WHERE id = ?", (email_id,)).fetchone()
        return dict(row) if row else None

    def list_emails(
        self,
        *,
        sender: Optional[str] = None,
        principal_id: Optional[str] = None,
        include_hidden: bool = True,
    ) -> List[Dict[str, Any]]:
        query = [
            "SELECT e.*, COALESCE(v.hidden, 0) AS is_hidden FROM emails e",
            "LEFT JOIN email_visibility v ON v.email_id = e.id AND v.principal_id = ?",
        ]
        params: List[Any] = [principal_id or ""]
        conditions = []
        if sender:
            conditions.append("LOWER(e.from_address) LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(sender.lower())}%")
        if not include_hidden:
            conditions.append("COALESCE(v.hidden, 0) = 0")
        if conditions:
            query.append("WHERE " + " AND ".join(conditions))
        query.append("ORDER BY e.date DESC")
        with self._connect() as conn:
            rows = conn.execute(" ".join(query), params).fetchall()
        return [dict(row) for row in rows]

    def hidden_email_ids(self, principal_id: str, email_ids: Iterable[str]) -> set[str]:
        ids = list(email_ids)
        if not ids:
            return set()
        placeholders = ", ".join("?" for _ in ids)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT email_id FROM email_visibility WHERE principal_id = ? "
                f"AND hidden = 1 AND email_id IN ({placeholders})",
                (principal_id, *ids),
            ).fetchall()
        return {row["email_id"] for row in rows}

    def toggle_email_visibility(self, email_id: str, principal_id: str) -> Optional[bool]:
        """Flip the hidden flag for one principal; ``None`` when the email is unknown."""
        with self._connect() as conn:
            exists = conn.execute("SELECT 1 FROM emails WHERE id = ?", (email_id,)).fetchone()
            if not exists:
                return None
            current = conn.execute(
                "SELECT hidden FROM email_visibility WHERE email_id = ? AND principal_id = ?",
                (email_id, principal_id),
            ).fetchone()
            hidden = not (current and current["hidden"])
            conn.execute(
                """
                INSERT INTO email_visibility (email_id, principal_id, hidden)
                VALUES (?, ?, ?)
                ON CONFLICT(email_id, principal_id) DO UPDATE SET hidden = excluded.hidden
                """,
                (email_id, principal_id, int(hidden)),
            )
        return hidden

    # -- Admin credentials ----------------------------------------------------

    def get_admin_credentials(self) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM admin_credentials WHERE id = 1").fetchone()
        return dict(row) if row else None

    def put_admin_credentials(self, username: str, password_hash: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO admin_credentials (id, username, password_hash, updated_at)
                VALUES (1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    username = excluded.username,
                    password_hash = excluded.password_hash,
                    updated_at = excluded.updated_at
                """,
                (username, password_hash, _now_iso()),
            )


__all__ = ["SQLiteStore"]
