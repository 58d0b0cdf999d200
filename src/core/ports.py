"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, document and image
conversion adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol, Sequence, Tuple

from core.blocks import Block, RichTextSpan
from core.models import DiaryEntry, MessageBlockRecord


class DiaryStorePort(Protocol):
    """Message-block index and diary bindings."""

    async def get_entry_by_thread(self, thread_id: int) -> Optional[DiaryEntry]:
        ...

    async def get_entry_by_date(self, day: date) -> Optional[DiaryEntry]:
        ...

    async def upsert_entry(self, entry: DiaryEntry) -> None:
        ...

    async def get_message_blocks(self, message_id: int) -> List[MessageBlockRecord]:
        ...

    async def insert_message_blocks(self, records: Sequence[MessageBlockRecord]) -> None:
        ...

    async def delete_block_record(self, block_id: str) -> None:
        ...

    async def delete_message_blocks(self, message_id: int) -> int:
        ...


class DocumentPort(Protocol):
    """Document platform operations required by the syncer."""

    async def create_page(self, title: str) -> Tuple[str, str]:
        ...

    async def find_page_by_title(self, title: str) -> Optional[Tuple[str, str]]:
        ...

    async def append_blocks(self, page_id: str, blocks: Sequence[Block]) -> List[str]:
        ...

    async def update_text_block(self, block_id: str, spans: Sequence[RichTextSpan]) -> None:
        ...

    async def delete_block(self, block_id: str) -> None:
        ...

    async def upload_file(self, filename: str, content_type: str, data: bytes) -> str:
        ...


class ImageConverter(Protocol):
    """Convert image bytes into a universally renderable format."""

    def convert(self, data: bytes) -> bytes:
        ...
