"""Helpers that turn Gmail metadata responses into MemoryItem fields."""

from datetime import date, datetime, timedelta, tzinfo
from email.utils import parsedate_to_datetime
from typing import Any

from mail_memories.gmail.types import MemoryItem, MessageDetail

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

NO_SUBJECT = "(No subject)"
UNKNOWN_RECIPIENT = "Unknown recipient"
GMAIL_WEB_BASE = "https://mail.google.com/mail/u/0/#inbox"


def format_gmail_date(value: date) -> str:
    """``YYYY/MM/DD`` as accepted by Gmail's after:/before: operators."""
    return f"{value.year:04d}/{value.month:02d}/{value.day:02d}"


def format_display_date(value: date) -> str:
    """``Oct 19, 2021``."""
    return f"{_MONTHS[value.month - 1]} {value.day}, {value.year}"


def format_month_day(value: date) -> str:
    """``Oct 19``."""
    return f"{_MONTHS[value.month - 1]} {value.day}"


def day_window(today: date, offset: int, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` for today's month/day, ``offset`` years back.

    Feb 29 in a non-leap year rolls over to Mar 1.  With ``tz`` of None the
    window is in the machine's local time.
    """
    first_of_month = date(today.year - offset, today.month, 1)
    start_day = first_of_month + timedelta(days=today.day - 1)
    start = datetime(start_day.year, start_day.month, start_day.day, tzinfo=tz)
    if tz is None:
        start = start.astimezone()
    return start, start + timedelta(days=1)


def build_day_query(start: datetime, end: datetime) -> str:
    """Gmail search for mail the user sent inside ``[start, end)``."""
    return f"from:me after:{format_gmail_date(start)} before:{format_gmail_date(end)}"


def header_value(headers: list[dict[str, Any]] | None, name: str) -> str:
    """Case-insensitive header lookup; empty string when absent."""
    wanted = name.lower()
    for header in headers or []:
        if str(header.get("name", "")).lower() == wanted:
            return str(header.get("value", ""))
    return ""


def message_timestamp_ms(detail: MessageDetail, fallback: datetime) -> int:
    """Epoch millis for a message: internalDate, else the Date header, else fallback."""
    internal = detail.get("internalDate")
    if internal:
        try:
            return int(internal)
        except (TypeError, ValueError):
            pass

    headers = (detail.get("payload") or {}).get("headers")
    date_header = header_value(headers, "Date")
    if date_header:
        try:
            parsed = parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            return int(parsed.timestamp() * 1000)

    return int(fallback.timestamp() * 1000)


def to_datetime(timestamp_ms: int, tz: tzinfo | None = None) -> datetime:
    """Epoch millis → aware datetime in ``tz`` (local time when None)."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=tz).astimezone(tz)


def gmail_link(detail: MessageDetail) -> str:
    """Web link to the message's thread (falls back to the message id)."""
    thread_id = detail.get("threadId") or detail.get("id", "")
    return f"{GMAIL_WEB_BASE}/{thread_id}"


def build_memory_item(
    detail: MessageDetail, fallback: datetime, tz: tzinfo | None = None
) -> tuple[int, MemoryItem]:
    """Return ``(sort_key_ms, MemoryItem)`` for one metadata response.

    The year comes from the message's own timestamp, not the year that was
    searched.
    """
    headers = (detail.get("payload") or {}).get("headers") or []
    timestamp_ms = message_timestamp_ms(detail, fallback)
    sent_at = to_datetime(timestamp_ms, tz)
    item = MemoryItem(
        id=str(detail.get("id", "")),
        subject=header_value(headers, "Subject") or NO_SUBJECT,
        snippet=str(detail.get("snippet") or ""),
        to=header_value(headers, "To") or UNKNOWN_RECIPIENT,
        date=format_display_date(sent_at),
        year=f"{sent_at.year:04d}",
        gmail_link=gmail_link(detail),
    )
    return timestamp_ms, item
