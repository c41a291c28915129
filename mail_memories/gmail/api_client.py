"""Gmail REST client — read-only message search and metadata lookups."""

import logging
from typing import Any

import httpx

from mail_memories.gmail.types import MessageDetail, MessageList

logger = logging.getLogger(__name__)

GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"

#: Headers requested with every metadata lookup.
METADATA_HEADERS: tuple[str, ...] = ("Subject", "To", "From", "Date")


class GmailApiError(Exception):
    """Raised when a Gmail API call returns a non-2xx status or an unreadable body."""

    def __init__(self, status: int, path: str = "") -> None:
        super().__init__(f"Gmail API request failed ({status})")
        self.status = status
        self.path = path


class GmailApiClient:
    """Thin async wrapper around the two Gmail endpoints the app needs.

    Does not own the HTTP client: the caller builds it (see
    ``mail_memories.http.build_http_client``) and closes it.  The bearer
    token is passed per call so one client can serve a retried fetch with a
    freshly refreshed token.

    Usage::

        gmail = GmailApiClient(http)
        listing = await gmail.list_messages(token, "from:me after:2020/01/01", 6)
        detail = await gmail.get_message_metadata(token, listing["messages"][0]["id"])
    """

    def __init__(self, http: httpx.AsyncClient, base_url: str = GMAIL_API_BASE) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def list_messages(
        self, access_token: str, query: str, max_results: int
    ) -> MessageList:
        """Search messages. Returns ``{"messages": [{"id", "threadId"}, ...]}``.

        Gmail omits the ``messages`` key entirely when nothing matches.
        """
        params = {
            "q": query,
            "maxResults": str(max_results),
            "includeSpamTrash": "false",
        }
        return await self._get_json(access_token, "/messages", params)

    async def get_message_metadata(self, access_token: str, message_id: str) -> MessageDetail:
        """Fetch one message's headers, snippet and internalDate (no body)."""
        params: list[tuple[str, str]] = [("format", "metadata")]
        params.extend(("metadataHeaders", name) for name in METADATA_HEADERS)
        return await self._get_json(access_token, f"/messages/{message_id}", params)

    async def _get_json(self, access_token: str, path: str, params: Any) -> dict[str, Any]:
        logger.debug("Gmail → GET %s %s", path, params)
        response = await self._http.get(
            f"{self._base_url}{path}",
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.is_success:
            logger.debug("Gmail ← %s for %s", response.status_code, path)
            raise GmailApiError(response.status_code, path)
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Gmail returned a non-JSON-object body for %s", path)
            raise GmailApiError(response.status_code, path)
        return data
