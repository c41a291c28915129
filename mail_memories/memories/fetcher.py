"""MemoryFetcher — "on this day" search across the lookback window."""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, tzinfo

from mail_memories.gmail.api_client import GmailApiClient
from mail_memories.gmail.types import MemoryItem
from mail_memories.memories.normalize import build_day_query, build_memory_item, day_window

logger = logging.getLogger(__name__)

YEARS_BACK = 8
MAX_RESULTS_PER_YEAR = 6


class MemoryFetcher:
    """Finds mail the user sent on today's date in each of the last N years.

    Years are searched one after another; the metadata lookups for a single
    year run concurrently, so at most ``max_results_per_year`` requests are
    in flight at once.  The first failing lookup cancels the rest of its year
    and aborts the whole fetch.

    Usage::

        fetcher = MemoryFetcher(GmailApiClient(http))
        items = await fetcher.fetch_memories(access_token)
    """

    def __init__(
        self,
        gmail: GmailApiClient,
        years_back: int = YEARS_BACK,
        max_results_per_year: int = MAX_RESULTS_PER_YEAR,
        today: Callable[[], date] = date.today,
        tz: tzinfo | None = None,
    ) -> None:
        self._gmail = gmail
        self._years_back = years_back
        self._max_results = max_results_per_year
        self._today = today
        self._tz = tz

    def reference_date(self) -> date:
        """The day whose anniversaries are searched."""
        return self._today()

    async def fetch_memories(self, access_token: str) -> list[MemoryItem]:
        """Return every matching message, most recent first."""
        today = self._today()
        collected: list[tuple[int, MemoryItem]] = []

        for offset in range(1, self._years_back + 1):
            start, end = day_window(today, offset, self._tz)
            query = build_day_query(start, end)

            listing = await self._gmail.list_messages(access_token, query, self._max_results)
            refs = (listing.get("messages") or [])[: self._max_results]
            if not refs:
                continue

            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [
                        group.create_task(self._gmail.get_message_metadata(access_token, ref["id"]))
                        for ref in refs
                    ]
            except BaseExceptionGroup as exc:
                # the group has cancelled and awaited the sibling lookups
                raise exc.exceptions[0] from None

            details = [task.result() for task in tasks]
            for detail in details:
                collected.append(build_memory_item(detail, start, self._tz))
            logger.debug("%d message(s) for %s", len(details), start.date().isoformat())

        collected.sort(key=lambda pair: pair[0], reverse=True)
        logger.info("Found %d memories across %d years", len(collected), self._years_back)
        return [item for _, item in collected]
