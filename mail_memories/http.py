"""Shared HTTP client construction for Gmail and Google OAuth calls."""

import httpx

from mail_memories.config import Settings


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Return an AsyncClient configured from settings.

    The same instance is handed to GmailApiClient and GoogleOAuthClient so
    timeouts and network tuning live in one place instead of process globals.
    The caller owns the client and must ``aclose()`` it.
    """
    # Binding the local side to 0.0.0.0 restricts connects to IPv4 addresses
    transport = httpx.AsyncHTTPTransport(
        local_address="0.0.0.0" if settings.prefer_ipv4 else None,
    )
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout),
        transport=transport,
    )
