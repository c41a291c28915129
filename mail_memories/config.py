"""Runtime settings read from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_HTTP_TIMEOUT = 10.0
_DEFAULT_REQUEST_DEADLINE = 30.0


def _parse_seconds(name: str, default: float) -> float:
    """Read a positive number of seconds from env. Falls back to default on bad input."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s %r; defaulting to %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Non-positive %s %r; defaulting to %s", name, raw, default)
        return default
    return value


@dataclass
class Settings:
    """Google OAuth client credentials plus network and storage tuning.

    Missing OAuth credentials are allowed: token refresh then soft-fails and
    the user is asked to reconnect.
    """

    google_client_id: str = ""
    google_client_secret: str = ""
    db_path: Path = field(default_factory=lambda: Path("data/mail_memories.db"))
    http_timeout: float = _DEFAULT_HTTP_TIMEOUT
    request_deadline: float = _DEFAULT_REQUEST_DEADLINE
    prefer_ipv4: bool = False
    log_level: str = "WARNING"

    @property
    def has_oauth_client(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from environment variables."""
        return cls(
            google_client_id=os.environ.get("GOOGLE_CLIENT_ID", ""),
            google_client_secret=os.environ.get("GOOGLE_CLIENT_SECRET", ""),
            db_path=Path(os.environ.get("MAIL_MEMORIES_DB_PATH", "data/mail_memories.db")),
            http_timeout=_parse_seconds("MAIL_MEMORIES_HTTP_TIMEOUT", _DEFAULT_HTTP_TIMEOUT),
            request_deadline=_parse_seconds(
                "MAIL_MEMORIES_REQUEST_DEADLINE", _DEFAULT_REQUEST_DEADLINE
            ),
            prefer_ipv4=os.environ.get("MAIL_MEMORIES_PREFER_IPV4", "false").lower() == "true",
            log_level=os.environ.get("MAIL_MEMORIES_LOG_LEVEL", "WARNING").upper(),
        )
