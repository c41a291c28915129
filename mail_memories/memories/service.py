"""Request-level entry point: user id in, tagged MemoriesResult out."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

import httpx

from mail_memories.auth.oauth import GoogleOAuthClient
from mail_memories.auth.token_manager import TokenManager
from mail_memories.config import Settings
from mail_memories.gmail.api_client import GmailApiClient, GmailApiError
from mail_memories.gmail.types import MemoriesResult
from mail_memories.http import build_http_client
from mail_memories.memories.fetcher import MemoryFetcher
from mail_memories.storage.db import CredentialStore
from mail_memories.storage.models import Credential

logger = logging.getLogger(__name__)

NOT_CONNECTED_MESSAGE = "Reconnect Gmail to load your memories."
REAUTH_MESSAGE = "Reconnect Gmail to refresh access."
UNREACHABLE_MESSAGE = "We could not reach Gmail right now."

_UNAUTHORIZED = 401


class MemoriesService:
    """Composes credential lookup, token resolution and the memory fetch.

    Never raises for expected conditions: missing links and unusable tokens
    become NEEDS_CONNECTION, Gmail and network failures become ERROR.  A 401
    from Gmail triggers exactly one forced refresh and one retried fetch.

    Usage::

        service = MemoriesService(store, token_manager, fetcher)
        result = await service.get_memories_for_today("user_1")
    """

    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenManager,
        fetcher: MemoryFetcher,
        request_deadline: float | None = None,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._fetcher = fetcher
        self._deadline = request_deadline

    @property
    def reference_date(self) -> date:
        return self._fetcher.reference_date()

    async def get_memories_for_today(self, user_id: str) -> MemoriesResult:
        credential = self._store.get_credential(user_id)
        if credential is None:
            logger.info("User %s has no linked Gmail account", user_id)
            return MemoriesResult.needs_connection(NOT_CONNECTED_MESSAGE)

        try:
            async with asyncio.timeout(self._deadline):
                result = await self._load(credential)
        except TimeoutError:
            logger.error("Memories request for user %s exceeded %ss deadline",
                         user_id, self._deadline)
            return MemoriesResult.error(UNREACHABLE_MESSAGE)
        except httpx.HTTPError as exc:
            logger.error("Network failure loading memories for user %s: %s",
                         user_id, type(exc).__name__)
            return MemoriesResult.error(UNREACHABLE_MESSAGE)

        logger.info("Memories for user %s: %s (%d items)",
                    user_id, result.status.value, len(result.items))
        return result

    async def _load(self, credential: Credential) -> MemoriesResult:
        token = await self._tokens.resolve_token(credential)
        if token is None:
            return MemoriesResult.needs_connection(REAUTH_MESSAGE)

        try:
            return MemoriesResult.ok(await self._fetcher.fetch_memories(token))
        except GmailApiError as exc:
            if exc.status != _UNAUTHORIZED:
                logger.error("Gmail request failed with status %s", exc.status)
                return MemoriesResult.error(UNREACHABLE_MESSAGE)

        logger.warning("Gmail rejected token for credential %s; forcing refresh", credential.id)
        return await self._retry_with_fresh_token(credential)

    async def _retry_with_fresh_token(self, credential: Credential) -> MemoriesResult:
        # resolve_token may already have rotated the stored refresh token
        latest = self._store.get_credential_by_id(credential.id) or credential
        token = await self._tokens.refresh(latest)
        if token is None:
            return MemoriesResult.needs_connection(REAUTH_MESSAGE)

        try:
            return MemoriesResult.ok(await self._fetcher.fetch_memories(token))
        except (GmailApiError, httpx.HTTPError) as exc:
            logger.warning("Retry after refresh failed: %s", exc)
            return MemoriesResult.needs_connection(REAUTH_MESSAGE)


@asynccontextmanager
async def memories_service(
    settings: Settings | None = None,
    *,
    store: CredentialStore | None = None,
) -> AsyncIterator[MemoriesService]:
    """Async context manager that yields a fully wired MemoriesService.

    Builds the shared HTTP client from settings and closes it on exit.  The
    credential store is opened from ``settings.db_path`` unless one is passed
    in, in which case the caller keeps ownership of it.

    Example::

        async with memories_service() as service:
            result = await service.get_memories_for_today("user_1")
    """
    settings = settings or Settings.from_env()
    owns_store = store is None
    credential_store = store if store is not None else CredentialStore(settings.db_path)
    http = build_http_client(settings)
    try:
        oauth = GoogleOAuthClient(
            http, settings.google_client_id, settings.google_client_secret
        )
        yield MemoriesService(
            store=credential_store,
            tokens=TokenManager(credential_store, oauth),
            fetcher=MemoryFetcher(GmailApiClient(http)),
            request_deadline=settings.request_deadline,
        )
    finally:
        await http.aclose()
        if owns_store:
            credential_store.close()


async def get_memories_for_today(
    user_id: str, settings: Settings | None = None
) -> MemoriesResult:
    """One-shot helper: wire a service, run one request, tear it down."""
    async with memories_service(settings) as service:
        return await service.get_memories_for_today(user_id)
