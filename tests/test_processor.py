from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Optional

from core.models import ChatMessage, DiaryEntry
from core.processor import DiaryProcessor
from core.syncer import SyncReport, SyncStatus


class FakeStore:
    def __init__(self, entries: dict[int, DiaryEntry]) -> None:
        self.entries = entries

    async def get_entry_by_thread(self, thread_id: int) -> Optional[DiaryEntry]:
        return self.entries.get(thread_id)


class FakeSyncer:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def sync_new(self, page_id: str, message: ChatMessage) -> SyncReport:
        self.calls.append(("new", page_id, message.id))
        return SyncReport(message.id, SyncStatus.SYNCED, block_ids=["b1"])

    async def sync_edit(self, message: ChatMessage) -> SyncReport:
        self.calls.append(("edit", message.id))
        return SyncReport(message.id, SyncStatus.UPDATED)

    async def sync_delete(self, message_id: int) -> SyncReport:
        self.calls.append(("delete", message_id))
        if message_id == 2:
            return SyncReport(message_id, SyncStatus.DELETED, block_ids=["b1"])
        return SyncReport(message_id, SyncStatus.NOTHING_TO_DELETE)


def _entry(thread_id: int) -> DiaryEntry:
    return DiaryEntry(
        thread_id=thread_id,
        page_id=f"page-{thread_id}",
        page_url=f"https://notion.so/page-{thread_id}",
        date=date(2024, 1, 1),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def _processor() -> tuple[DiaryProcessor, FakeSyncer]:
    syncer = FakeSyncer()
    return DiaryProcessor(FakeStore({10: _entry(10)}), syncer), syncer


def test_new_message_in_diary_thread_is_synced() -> None:
    processor, syncer = _processor()
    report = asyncio.run(processor.handle_new(ChatMessage(id=1, thread_id=10, content="hi")))
    assert report is not None and report.status is SyncStatus.SYNCED
    assert syncer.calls == [("new", "page-10", 1)]


def test_messages_outside_diary_threads_are_ignored() -> None:
    processor, syncer = _processor()

    async def scenario():
        return [
            await processor.handle_new(ChatMessage(id=1, thread_id=None, content="general")),
            await processor.handle_new(ChatMessage(id=2, thread_id=99, content="other topic")),
            await processor.handle_edit(ChatMessage(id=3, thread_id=99, content="edit")),
        ]

    assert asyncio.run(scenario()) == [None, None, None]
    assert syncer.calls == []


def test_edit_in_diary_thread() -> None:
    processor, syncer = _processor()
    report = asyncio.run(processor.handle_edit(ChatMessage(id=1, thread_id=10, content="changed")))
    assert report is not None and report.status is SyncStatus.UPDATED
    assert syncer.calls == [("edit", 1)]


def test_delete_routes_every_id_through_the_index() -> None:
    processor, syncer = _processor()
    reports = asyncio.run(processor.handle_delete([1, 2]))
    assert [report.status for report in reports] == [SyncStatus.NOTHING_TO_DELETE, SyncStatus.DELETED]
    assert syncer.calls == [("delete", 1), ("delete", 2)]
