"""SQLite credential store — one linked Google account per user."""

import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

from mail_memories.storage.models import ALL_TABLES, GOOGLE_PROVIDER_ID, Credential

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = Path("data/mail_memories.db")

_SELECT_COLUMNS = (
    "id, user_id, provider_id, account_id, access_token, refresh_token, "
    "access_token_expires_at, scope, created_at, updated_at"
)


def _to_db(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CredentialStore:
    """Wraps SQLite for the per-user, per-provider OAuth credential rows.

    Usage::

        store = CredentialStore()
        credential = store.get_credential("user_1")
        store.update_tokens(credential.id, access_token="...", ...)
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._path = Path(db_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def close(self) -> None:
        """Close the underlying database connection."""
        self._conn.close()

    # ── Read API ────────────────────────────────────────────────────────────────

    def get_credential(
        self, user_id: str, provider_id: str = GOOGLE_PROVIDER_ID
    ) -> Credential | None:
        """Return the user's linked account for provider_id, or None if not linked."""
        row = self._conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM account WHERE user_id = ? AND provider_id = ? LIMIT 1",
            (user_id, provider_id),
        ).fetchone()
        return self._row_to_credential(row) if row else None

    def get_credential_by_id(self, credential_id: str) -> Credential | None:
        """Return the account row with the given primary key, or None."""
        row = self._conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM account WHERE id = ?",
            (credential_id,),
        ).fetchone()
        return self._row_to_credential(row) if row else None

    # ── Write API ───────────────────────────────────────────────────────────────

    def link_account(
        self,
        user_id: str,
        *,
        access_token: str | None,
        refresh_token: str | None,
        expires_in: int | None = None,
        scope: str | None = None,
        account_id: str = "",
        provider_id: str = GOOGLE_PROVIDER_ID,
    ) -> Credential:
        """Insert or replace the user's link to provider_id and return the stored row.

        Re-linking keeps the row id and created_at so existing references stay
        valid. ``expires_in`` of None stores no expiry.
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=expires_in) if expires_in is not None else None
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO account
                    (id, user_id, provider_id, account_id, access_token,
                     refresh_token, access_token_expires_at, scope,
                     created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, provider_id) DO UPDATE SET
                    account_id              = excluded.account_id,
                    access_token            = excluded.access_token,
                    refresh_token           = excluded.refresh_token,
                    access_token_expires_at = excluded.access_token_expires_at,
                    scope                   = excluded.scope,
                    updated_at              = excluded.updated_at
                """,
                (
                    uuid.uuid4().hex,
                    user_id,
                    provider_id,
                    account_id,
                    access_token,
                    refresh_token,
                    _to_db(expires_at),
                    scope,
                    _to_db(now),
                    _to_db(now),
                ),
            )
        credential = self.get_credential(user_id, provider_id)
        if credential is None:
            raise RuntimeError(f"Account row for user {user_id!r} missing right after upsert")
        logger.info("Linked %s account for user %s", provider_id, user_id)
        return credential

    def update_tokens(
        self,
        credential_id: str,
        *,
        access_token: str,
        access_token_expires_at: datetime,
        refresh_token: str | None,
        scope: str | None,
        updated_at: datetime,
    ) -> bool:
        """Write a refreshed token set in one statement keyed by the row id.

        Returns False if no row matched (the account was unlinked meanwhile).
        """
        with self._conn:
            cursor = self._conn.execute(
                """
                UPDATE account SET
                    access_token            = ?,
                    access_token_expires_at = ?,
                    refresh_token           = ?,
                    scope                   = ?,
                    updated_at              = ?
                WHERE id = ?
                """,
                (
                    access_token,
                    _to_db(access_token_expires_at),
                    refresh_token,
                    scope,
                    _to_db(updated_at),
                    credential_id,
                ),
            )
        if cursor.rowcount == 0:
            logger.warning("Token update matched no account row (id=%s)", credential_id)
            return False
        return True

    def unlink_account(self, user_id: str, provider_id: str = GOOGLE_PROVIDER_ID) -> bool:
        """Delete the user's link to provider_id. Returns True if a row was removed."""
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM account WHERE user_id = ? AND provider_id = ?",
                (user_id, provider_id),
            )
        return cursor.rowcount > 0

    # ── Private ─────────────────────────────────────────────────────────────────

    def _create_tables(self) -> None:
        with self._conn:
            for ddl in ALL_TABLES:
                self._conn.execute(ddl)

    @staticmethod
    def _row_to_credential(row: sqlite3.Row) -> Credential:
        d = dict(row)
        return Credential(
            id=d["id"],
            user_id=d["user_id"],
            provider_id=d["provider_id"],
            account_id=d["account_id"],
            access_token=d["access_token"],
            refresh_token=d["refresh_token"],
            access_token_expires_at=_from_db(d["access_token_expires_at"]),
            scope=d["scope"],
            created_at=_from_db(d["created_at"]),
            updated_at=_from_db(d["updated_at"]),
        )
