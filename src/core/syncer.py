"""Message synchronization lifecycle (create / update / delete).

This module is integration-agnostic. It only relies on ports for storage,
the document platform and image conversion.

Ordering rules:
1) Attachments and text blocks of one message go out in a single append call
2) Index records are written only after the remote write fully succeeded
3) Edits touch only paragraph blocks; bookmarks, embeds and files stay as created
4) Deletes are best-effort per block and keep records that could not be removed
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import AsyncIterator, Dict, List, Sequence, Tuple

from core.assembler import assemble_blocks, text_blocks
from core.attachments import resolve_attachments
from core.blocks import Block, BlockKind, FileBlock, ImageBlock, RichTextSpan
from core.errors import RemoteCallError
from core.models import ChatMessage, MessageBlockRecord
from core.ports import DiaryStorePort, DocumentPort, ImageConverter
from core.rules_engine import CompiledUrlRules

LOGGER = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    ALREADY_SYNCED = "already_synced"
    UPDATED = "updated"
    NOT_SYNCED = "not_synced"
    DELETED = "deleted"
    NOTHING_TO_DELETE = "nothing_to_delete"


@dataclass(frozen=True)
class RecordFailure:
    block_id: str
    error: str


@dataclass
class SyncReport:
    """Outcome of one lifecycle operation for one message."""

    message_id: int
    status: SyncStatus
    block_ids: List[str] = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class KeyedLock:
    """One asyncio.Lock per key; unused locks are dropped on release."""

    def __init__(self) -> None:
        self._locks: Dict[int, asyncio.Lock] = {}
        self._waiters: Dict[int, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                self._locks.pop(key, None)


class MessageSyncer:
    """Mirrors chat messages into a document and keeps the block index."""

    def __init__(
        self,
        store: DiaryStorePort,
        document: DocumentPort,
        converter: ImageConverter,
        rules: CompiledUrlRules,
        attachments_first: bool = True,
    ) -> None:
        self._store = store
        self._document = document
        self._converter = converter
        self._rules = rules
        self._attachments_first = attachments_first
        self._locks = KeyedLock()

    async def sync_new(self, page_id: str, message: ChatMessage) -> SyncReport:
        """Append a new message to the page and record its blocks.

        Any RemoteCallError propagates and leaves the index untouched.
        """

        if message.is_empty:
            return SyncReport(message.id, SyncStatus.SKIPPED)

        async with self._locks.hold(message.id):
            existing = await self._store.get_message_blocks(message.id)
            if existing:
                LOGGER.info("Message %s already synced, skipping", message.id)
                return SyncReport(
                    message.id,
                    SyncStatus.ALREADY_SYNCED,
                    block_ids=[record.block_id for record in existing],
                )

            attachment_blocks = await self._upload_attachments(message)
            content_blocks = assemble_blocks(message.content, self._rules)
            if self._attachments_first:
                blocks = attachment_blocks + content_blocks
            else:
                blocks = content_blocks + attachment_blocks
            if not blocks:
                return SyncReport(message.id, SyncStatus.SKIPPED)

            block_ids = await self._document.append_blocks(page_id, blocks)
            if len(block_ids) != len(blocks):
                raise RemoteCallError(
                    f"Expected {len(blocks)} block ids for message {message.id}, got {len(block_ids)}"
                )

            records = [
                MessageBlockRecord(
                    message_id=message.id,
                    block_id=block_id,
                    block_kind=block.kind,
                    ordinal=ordinal,
                )
                for ordinal, (block_id, block) in enumerate(zip(block_ids, blocks))
            ]
            await self._store.insert_message_blocks(records)

        LOGGER.info("Synced message %s as %s block(s)", message.id, len(records))
        return SyncReport(message.id, SyncStatus.SYNCED, block_ids=list(block_ids))

    async def _upload_attachments(self, message: ChatMessage) -> List[Block]:
        blocks: List[Block] = []
        for upload in resolve_attachments(message.attachments, self._converter):
            upload_id = await self._document.upload_file(upload.filename, upload.content_type, upload.data)
            if upload.block_kind is BlockKind.IMAGE:
                blocks.append(ImageBlock(file_upload_id=upload_id, name=upload.filename))
            else:
                blocks.append(FileBlock(file_upload_id=upload_id, name=upload.filename))
        return blocks

    async def sync_edit(self, message: ChatMessage) -> SyncReport:
        """Rewrite the paragraph blocks of an already synced message."""

        async with self._locks.hold(message.id):
            records = await self._store.get_message_blocks(message.id)
            if not records:
                return SyncReport(message.id, SyncStatus.NOT_SYNCED)

            text_records = [record for record in records if record.block_kind is BlockKind.TEXT]
            report = SyncReport(message.id, SyncStatus.UPDATED)
            for record, spans in _pair_text_updates(
                text_records, assemble_blocks(message.content, self._rules)
            ):
                try:
                    await self._document.update_text_block(record.block_id, spans)
                except RemoteCallError as exc:
                    LOGGER.error("Failed to update block %s of message %s: %s", record.block_id, message.id, exc)
                    report.failures.append(RecordFailure(record.block_id, str(exc)))
                    continue
                report.block_ids.append(record.block_id)

        LOGGER.info(
            "Updated message %s: %s block(s), %s failure(s)",
            message.id,
            len(report.block_ids),
            len(report.failures),
        )
        return report

    async def sync_delete(self, message_id: int) -> SyncReport:
        """Delete every block recorded for a message."""

        async with self._locks.hold(message_id):
            records = await self._store.get_message_blocks(message_id)
            if not records:
                return SyncReport(message_id, SyncStatus.NOTHING_TO_DELETE)

            report = SyncReport(message_id, SyncStatus.DELETED)
            for record in records:
                try:
                    await self._document.delete_block(record.block_id)
                except RemoteCallError as exc:
                    LOGGER.error("Failed to delete block %s of message %s: %s", record.block_id, message_id, exc)
                    report.failures.append(RecordFailure(record.block_id, str(exc)))
                    continue
                report.block_ids.append(record.block_id)

            if report.failures:
                # Keep failed records so an operator can reconcile them.
                for block_id in report.block_ids:
                    await self._store.delete_block_record(block_id)
            else:
                await self._store.delete_message_blocks(message_id)

        LOGGER.info(
            "Deleted message %s: %s block(s), %s failure(s)",
            message_id,
            len(report.block_ids),
            len(report.failures),
        )
        return report


def _pair_text_updates(
    text_records: Sequence[MessageBlockRecord],
    new_blocks: Sequence[Block],
) -> List[Tuple[MessageBlockRecord, Tuple[RichTextSpan, ...]]]:
    """Match new paragraph contents to existing paragraph records by position.

    Extra new paragraphs are merged into the last existing one, and existing
    paragraphs without new content are cleared.
    """

    new_spans = [block.spans for block in text_blocks(list(new_blocks))]
    if not text_records:
        if new_spans:
            LOGGER.warning("Edited message has text but no paragraph block to update")
        return []

    pairs: List[Tuple[MessageBlockRecord, Tuple[RichTextSpan, ...]]] = []
    last = len(text_records) - 1
    for index, record in enumerate(text_records):
        if index < last:
            spans = new_spans[index] if index < len(new_spans) else ()
        else:
            spans = tuple(span for group in new_spans[index:] for span in group)
        pairs.append((record, spans))
    return pairs
