"""Google OAuth token endpoint client (refresh_token grant only)."""

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class TokenGrant:
    """A successful refresh response from Google's token endpoint."""

    access_token: str
    expires_in: int                  # seconds
    refresh_token: str | None = None  # Google usually omits this on refresh
    scope: str | None = None


class GoogleOAuthClient:
    """Exchanges a refresh token for a new access token.

    Rejections (any non-2xx) are reported as ``None`` rather than raised;
    network-level failures propagate as ``httpx.HTTPError``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        token_url: str = GOOGLE_TOKEN_URL,
    ) -> None:
        self._http = http
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant | None:
        """POST the refresh_token grant. Returns None when Google rejects it
        or answers with a body that carries no access token.
        """
        if not self.is_configured:
            logger.warning("Google OAuth client id/secret not configured; cannot refresh")
            return None

        response = await self._http.post(
            self._token_url,
            data={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if not response.is_success:
            logger.warning(
                "OAuth token refresh rejected status=%s error=%s",
                response.status_code,
                _error_code(response),
            )
            return None

        grant = _parse_grant(response)
        if grant is None:
            logger.warning(
                "OAuth token refresh returned an unusable body status=%s",
                response.status_code,
            )
        return grant


def _parse_grant(response: httpx.Response) -> TokenGrant | None:
    """Build a TokenGrant from a 2xx body, or None if it has no access token."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    access_token = data.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        return None
    try:
        expires_in = int(data.get("expires_in", 3600))
    except (TypeError, ValueError):
        expires_in = 3600
    return TokenGrant(
        access_token=access_token,
        expires_in=expires_in,
        refresh_token=data.get("refresh_token") or None,
        scope=data.get("scope") or None,
    )


def _error_code(response: httpx.Response) -> str | None:
    """Google's ``{"error": "invalid_grant", ...}`` code, if the body has one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return None
