"""Data types shared by the Gmail client and the memories pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Raw JSON bodies from the Gmail REST API
MessageList = dict[str, Any]
MessageDetail = dict[str, Any]


@dataclass(frozen=True)
class MemoryItem:
    """One email the user sent on today's date in a previous year.

    Built from a ``format=metadata`` message response; never mutated after
    construction and never persisted.
    """

    id: str
    subject: str
    snippet: str
    to: str
    date: str         # display date, e.g. "Oct 19, 2021"
    year: str         # four digits, from the message's own timestamp
    gmail_link: str


class MemoriesStatus(str, Enum):
    """Outcome tag for a memories request."""

    OK = "ok"
    NEEDS_CONNECTION = "needs-connection"
    ERROR = "error"


@dataclass(frozen=True)
class MemoriesResult:
    """Tagged outcome of ``get_memories_for_today``.

    ``items`` is only meaningful when ``status`` is OK; ``message`` is only
    set for the other two tags.  Use the classmethods to construct.
    """

    status: MemoriesStatus
    items: list[MemoryItem] = field(default_factory=list)
    message: str = ""

    @classmethod
    def ok(cls, items: list[MemoryItem]) -> "MemoriesResult":
        return cls(status=MemoriesStatus.OK, items=list(items))

    @classmethod
    def needs_connection(cls, message: str) -> "MemoriesResult":
        return cls(status=MemoriesStatus.NEEDS_CONNECTION, message=message)

    @classmethod
    def error(cls, message: str) -> "MemoriesResult":
        return cls(status=MemoriesStatus.ERROR, message=message)

    @property
    def is_ok(self) -> bool:
        return self.status is MemoriesStatus.OK

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form for JSON output; only the fields the tag carries."""
        if self.is_ok:
            return {
                "status": self.status.value,
                "items": [
                    {
                        "id": m.id,
                        "subject": m.subject,
                        "snippet": m.snippet,
                        "to": m.to,
                        "date": m.date,
                        "year": m.year,
                        "gmailLink": m.gmail_link,
                    }
                    for m in self.items
                ],
            }
        return {"status": self.status.value, "message": self.message}
