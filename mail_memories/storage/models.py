"""SQLite schema and typed row for linked provider accounts."""

from dataclasses import dataclass
from datetime import datetime

#: The only mail provider the app supports.
GOOGLE_PROVIDER_ID = "google"


# ── DDL ────────────────────────────────────────────────────────────────────────

_CREATE_ACCOUNT = """
CREATE TABLE IF NOT EXISTS account (
    id                       TEXT PRIMARY KEY,
    user_id                  TEXT NOT NULL,
    provider_id              TEXT NOT NULL,
    account_id               TEXT NOT NULL DEFAULT '',
    access_token             TEXT,
    refresh_token            TEXT,
    access_token_expires_at  TEXT,
    scope                    TEXT,
    created_at               TEXT NOT NULL,
    updated_at               TEXT NOT NULL
)
"""

_CREATE_ACCOUNT_USER_PROVIDER_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS account_user_provider
    ON account (user_id, provider_id)
"""

#: All DDL statements in creation order.
ALL_TABLES: list[str] = [
    _CREATE_ACCOUNT,
    _CREATE_ACCOUNT_USER_PROVIDER_INDEX,
]


# ── Row type ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Credential:
    """A row from the account table.

    ``access_token_expires_at`` of None means the expiry is unknown and the
    token is treated as valid.
    """

    id: str
    user_id: str
    provider_id: str
    access_token: str | None
    refresh_token: str | None
    access_token_expires_at: datetime | None
    scope: str | None
    account_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
