"""Telegram event handlers for the diary group.

Handlers translate Telethon events into core calls and surface failures as
replies to the originating message. All filtering of what gets synced stays
in the core processor.
"""

from __future__ import annotations

from collections import deque
import logging

from adapters.reply_formatting import format_diary_opened, format_report_failures, format_sync_error
from adapters.telegram_mapper import build_chat_message
from adapters.telegram_threads import ForumThreads
from core.config import DiaryConfig
from core.diary import DiaryBook, diary_title, today_local
from core.errors import RemoteCallError
from core.processor import DiaryProcessor

LOGGER = logging.getLogger(__name__)

# Replies older than this are no longer recognised as our own.
OWN_REPLY_HISTORY = 512


class DiaryEventHandler:
    """Routes new/edited/deleted messages of the diary group."""

    def __init__(
        self,
        config: DiaryConfig,
        processor: DiaryProcessor,
        book: DiaryBook,
        threads: ForumThreads,
        reply_history: int = OWN_REPLY_HISTORY,
    ) -> None:
        self._config = config
        self._processor = processor
        self._book = book
        self._threads = threads
        # Replies we post land in the same threads; never sync them back.
        self._own_replies: set[int] = set()
        self._reply_order: deque[int] = deque()
        self._reply_history = reply_history

    def _is_open_command(self, text: str) -> bool:
        words = text.strip().split(maxsplit=1)
        return bool(words) and words[0] == self._config.open_command

    async def _reply(self, message_id: int, text: str) -> None:
        sent = await self._threads.reply(message_id, text)
        sent_id = getattr(sent, "id", None)
        if sent_id is not None:
            self._remember_reply(sent_id)

    def _remember_reply(self, sent_id: int) -> None:
        self._own_replies.add(sent_id)
        self._reply_order.append(sent_id)
        while len(self._reply_order) > self._reply_history:
            self._own_replies.discard(self._reply_order.popleft())

    async def open_diary(self, message_id: int) -> None:
        """Open (or report) today's diary thread and page."""

        day = today_local(self._config.timezone)
        title = diary_title(day, self._config.title_format)
        try:
            opened = await self._book.open(day, self._threads.create_thread)
        except RemoteCallError as exc:
            LOGGER.error("Failed to open diary for %s: %s", title, exc)
            await self._reply(message_id, format_sync_error("open diary", exc))
            return
        await self._reply(message_id, format_diary_opened(opened.entry, title, opened.created))

    async def on_new_message(self, event) -> None:
        message = event.message
        if message.id in self._own_replies:
            return
        if self._is_open_command(message.raw_text or ""):
            await self.open_diary(message.id)
            return

        chat_message = await build_chat_message(message)
        try:
            await self._processor.handle_new(chat_message)
        except RemoteCallError as exc:
            LOGGER.error("Failed to sync message %s: %s", message.id, exc)
            await self._reply(message.id, format_sync_error("create", exc))

    async def on_message_edited(self, event) -> None:
        message = event.message
        if message.id in self._own_replies:
            return
        chat_message = await build_chat_message(message, with_media=False)
        report = await self._processor.handle_edit(chat_message)
        if report is not None and report.failures:
            await self._reply(message.id, format_report_failures("update", report))

    async def on_message_deleted(self, event) -> None:
        # The original message is gone, so failures can only be logged.
        for report in await self._processor.handle_delete(event.deleted_ids):
            for failure in report.failures:
                LOGGER.warning(
                    "Stale block %s left for deleted message %s: %s",
                    failure.block_id,
                    report.message_id,
                    failure.error,
                )
