"""Core chat event processing.

This module is integration-agnostic. It routes new, edited and deleted chat
messages to the syncer, using the diary index to find the target page.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from core.models import ChatMessage, DiaryEntry
from core.ports import DiaryStorePort
from core.syncer import MessageSyncer, SyncReport

LOGGER = logging.getLogger(__name__)


class DiaryProcessor:
    """Orchestrates thread lookup and message synchronization."""

    def __init__(self, store: DiaryStorePort, syncer: MessageSyncer) -> None:
        self._store = store
        self._syncer = syncer

    async def _entry_for(self, message: ChatMessage) -> Optional[DiaryEntry]:
        # Messages outside a diary thread (general topic, other chats) are ignored.
        if message.thread_id is None:
            return None
        return await self._store.get_entry_by_thread(message.thread_id)

    async def handle_new(self, message: ChatMessage) -> Optional[SyncReport]:
        """Sync a new message if it was posted in a diary thread."""

        entry = await self._entry_for(message)
        if entry is None:
            return None
        report = await self._syncer.sync_new(entry.page_id, message)
        LOGGER.info("New message %s in thread %s: %s", message.id, message.thread_id, report.status.value)
        return report

    async def handle_edit(self, message: ChatMessage) -> Optional[SyncReport]:
        """Reflect an edited message in its diary page."""

        entry = await self._entry_for(message)
        if entry is None:
            return None
        report = await self._syncer.sync_edit(message)
        LOGGER.info("Edited message %s in thread %s: %s", message.id, message.thread_id, report.status.value)
        return report

    async def handle_delete(self, message_ids: Iterable[int]) -> List[SyncReport]:
        """Remove deleted messages from their diary pages.

        Deletion events do not say which thread a message lived in, so the
        block index alone decides what there is to delete.
        """

        reports: List[SyncReport] = []
        for message_id in message_ids:
            report = await self._syncer.sync_delete(message_id)
            if report.block_ids or report.failures:
                LOGGER.info("Deleted message %s: %s", message_id, report.status.value)
            reports.append(report)
        return reports
