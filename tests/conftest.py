"""Shared pytest fixtures — a fake Google backend served through httpx.MockTransport."""

import re
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from mail_memories.storage.models import Credential

_AFTER = re.compile(r"after:(\d{4}/\d{2}/\d{2})")


def make_detail(
    id: str,
    internal_ms: int | None = None,
    *,
    thread_id: str | None = None,
    subject: str | None = "Hello",
    to: str | None = "Bob <bob@example.com>",
    date_header: str | None = None,
    snippet: str | None = "snippet...",
) -> dict[str, Any]:
    """A Gmail ``format=metadata`` message body."""
    headers = []
    if subject is not None:
        headers.append({"name": "Subject", "value": subject})
    if to is not None:
        headers.append({"name": "To", "value": to})
    headers.append({"name": "From", "value": "me@example.com"})
    if date_header is not None:
        headers.append({"name": "Date", "value": date_header})
    detail: dict[str, Any] = {
        "id": id,
        "threadId": thread_id if thread_id is not None else f"thread_{id}",
        "payload": {"headers": headers},
    }
    if internal_ms is not None:
        detail["internalDate"] = str(internal_ms)
    if snippet is not None:
        detail["snippet"] = snippet
    return detail


def utc_ms(*args: int) -> int:
    """Epoch millis for a UTC wall-clock time, e.g. ``utc_ms(2021, 10, 19, 12)``."""
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def make_credential(**overrides: Any) -> Credential:
    fields: dict[str, Any] = {
        "id": "cred_1",
        "user_id": "user_1",
        "provider_id": "google",
        "access_token": "tok_valid",
        "refresh_token": "refresh_1",
        "access_token_expires_at": None,
        "scope": "https://www.googleapis.com/auth/gmail.readonly",
    }
    fields.update(overrides)
    return Credential(**fields)


class FakeGoogle:
    """Routes Gmail list/detail and OAuth token requests to canned data.

    * ``days`` maps the ``after:`` date of a search to the message details
      Gmail should return for that day.
    * Bearer tokens not in ``valid_tokens`` get a 401; tokens in
      ``rejected_for_details`` pass searches but get a 401 on lookups.
    * ``token_responses`` is consumed in order by POSTs to the token endpoint.
    """

    def __init__(self) -> None:
        self.days: dict[str, list[dict[str, Any]]] = {}
        self.valid_tokens: set[str] = {"tok_valid"}
        self.rejected_for_details: set[str] = set()
        self.list_status: int = 200
        self.detail_status: dict[str, int] = {}
        self.token_responses: list[tuple[int, dict[str, Any]]] = []
        self.requests: list[httpx.Request] = []
        self.token_requests: list[dict[str, str]] = []

    # ── Inspection helpers ───────────────────────────────────────────────────

    def list_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/messages")]

    def detail_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/messages/" in r.url.path]

    # ── Transport handler ────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "oauth2.googleapis.com":
            return self._token(request)

        bearer = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if bearer not in self.valid_tokens:
            return httpx.Response(401, json={"error": {"code": 401}})

        if request.url.path.endswith("/messages"):
            if self.list_status != 200:
                return httpx.Response(self.list_status, json={"error": {"code": self.list_status}})
            match = _AFTER.search(request.url.params["q"])
            day = match.group(1) if match else ""
            limit = int(request.url.params["maxResults"])
            found = self.days.get(day, [])[:limit]
            if not found:
                return httpx.Response(200, json={"resultSizeEstimate": 0})
            return httpx.Response(
                200, json={"messages": [{"id": d["id"], "threadId": d["threadId"]} for d in found]}
            )

        if bearer in self.rejected_for_details:
            return httpx.Response(401, json={"error": {"code": 401}})
        message_id = request.url.path.rsplit("/", 1)[1]
        status = self.detail_status.get(message_id, 200)
        if status != 200:
            return httpx.Response(status, json={"error": {"code": status}})
        for details in self.days.values():
            for detail in details:
                if detail["id"] == message_id:
                    return httpx.Response(200, json=detail)
        return httpx.Response(404, json={"error": {"code": 404}})

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.token_requests.append(form)
        if not self.token_responses:
            return httpx.Response(400, json={"error": "invalid_grant"})
        status, body = self.token_responses.pop(0)
        if status == 200 and "access_token" in body:
            self.valid_tokens.add(body["access_token"])
        return httpx.Response(status, json=body)


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
async def http(google: FakeGoogle) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(google.handler)) as client:
        yield client
