"""Token lifecycle — hand out a usable Gmail access token or None."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable

from mail_memories.auth.oauth import GoogleOAuthClient
from mail_memories.storage.models import Credential

logger = logging.getLogger(__name__)

#: Tokens expiring within this window are refreshed before use.
REFRESH_BUFFER = timedelta(seconds=60)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class TokenStore(Protocol):
    """The slice of CredentialStore the token manager writes through."""

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
        ...


class TokenManager:
    """Resolves a valid bearer token for a linked Google account.

    Every expected failure (no token, no refresh token, OAuth client not
    configured, Google rejecting the refresh) comes back as None; the caller
    decides to ask the user to reconnect.  Transport errors propagate.

    Usage::

        manager = TokenManager(store, GoogleOAuthClient(http, client_id, secret))
        token = await manager.resolve_token(credential)
    """

    def __init__(
        self,
        store: TokenStore,
        oauth: GoogleOAuthClient,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._oauth = oauth
        self._clock = clock

    async def resolve_token(self, credential: Credential) -> str | None:
        """Return the stored access token if it is still good, else refresh it."""
        if not credential.access_token:
            logger.info("Credential %s has no access token", credential.id)
            return None

        expires_at = credential.access_token_expires_at
        if expires_at is None:
            return credential.access_token

        if expires_at - self._clock() > REFRESH_BUFFER:
            return credential.access_token

        logger.debug("Access token for credential %s expires at %s; refreshing",
                     credential.id, expires_at.isoformat())
        return await self.refresh(credential)

    async def refresh(self, credential: Credential) -> str | None:
        """Mint a new access token via the refresh_token grant and persist it.

        The stored refresh token and scope are kept when Google's response
        leaves them out.  Nothing is written unless Google accepts the grant.
        """
        if not credential.refresh_token:
            logger.warning("Credential %s has no refresh token; reconnect required",
                           credential.id)
            return None

        grant = await self._oauth.refresh_access_token(credential.refresh_token)
        if grant is None:
            return None

        now = self._clock()
        self._store.update_tokens(
            credential.id,
            access_token=grant.access_token,
            access_token_expires_at=now + timedelta(seconds=grant.expires_in),
            refresh_token=grant.refresh_token or credential.refresh_token,
            scope=grant.scope or credential.scope,
            updated_at=now,
        )
        logger.info("Refreshed access token for credential %s (expires in %ds)",
                    credential.id, grant.expires_in)
        return grant.access_token
