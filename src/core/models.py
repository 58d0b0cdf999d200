"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple

from core.blocks import BlockKind


@dataclass(frozen=True)
class Attachment:
    """An already downloaded attachment."""

    filename: str
    data: bytes = field(repr=False)
    # Content type reported by the transport, if any.
    content_type: Optional[str] = None


@dataclass(frozen=True)
class ChatMessage:
    """Minimal chat message used by the sync pipeline."""

    id: int
    thread_id: Optional[int]
    content: str
    attachments: Tuple[Attachment, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.content and not self.attachments


@dataclass(frozen=True)
class MessageBlockRecord:
    """One remote block created for a chat message."""

    message_id: int
    block_id: str
    block_kind: BlockKind
    ordinal: int


@dataclass(frozen=True)
class DiaryEntry:
    """Binding between a chat thread and the diary page of one date."""

    thread_id: int
    page_id: str
    page_url: str
    date: date
    created_at: datetime
