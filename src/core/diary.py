"""Diary pages: one document page and one chat thread per local date."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
import logging
from typing import Awaitable, Callable, Optional

from core.models import DiaryEntry
from core.ports import DiaryStorePort, DocumentPort

LOGGER = logging.getLogger(__name__)

ThreadFactory = Callable[[str], Awaitable[int]]


def today_local(tz: tzinfo, now: Optional[datetime] = None) -> date:
    """Return the current calendar date in the given timezone."""

    now = now or datetime.now(timezone.utc)
    return now.astimezone(tz).date()


def diary_title(day: date, title_format: str) -> str:
    return day.strftime(title_format)


@dataclass(frozen=True)
class OpenedDiary:
    entry: DiaryEntry
    created: bool


class DiaryBook:
    """Finds or creates the diary entry for a date."""

    def __init__(self, store: DiaryStorePort, document: DocumentPort, title_format: str) -> None:
        self._store = store
        self._document = document
        self._title_format = title_format

    async def open(self, day: date, create_thread: ThreadFactory) -> OpenedDiary:
        """Return the entry for `day`, creating page and thread if needed.

        An existing page with the same title is reused so a lost index does
        not produce duplicate pages.
        """

        existing = await self._store.get_entry_by_date(day)
        if existing is not None:
            return OpenedDiary(entry=existing, created=False)

        title = diary_title(day, self._title_format)
        found = await self._document.find_page_by_title(title)
        if found is not None:
            page_id, page_url = found
            LOGGER.info("Reusing existing diary page %s for %s", page_id, title)
        else:
            page_id, page_url = await self._document.create_page(title)
            LOGGER.info("Created diary page %s for %s", page_id, title)

        thread_id = await create_thread(title)
        entry = DiaryEntry(
            thread_id=thread_id,
            page_id=page_id,
            page_url=page_url,
            date=day,
            created_at=datetime.now(timezone.utc),
        )
        await self._store.upsert_entry(entry)
        return OpenedDiary(entry=entry, created=True)
