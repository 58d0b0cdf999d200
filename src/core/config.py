"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Tuple


@dataclass(frozen=True)
class DiaryConfig:
    """Diary thread settings for the chat layer and the diary book."""

    chat: str
    timezone: tzinfo
    title_format: str
    open_command: str
    attachments_first: bool


@dataclass(frozen=True)
class NotionTag:
    """A select or multi-select property set on every new diary page."""

    property: str
    value: str
    multi_select: bool = False


@dataclass(frozen=True)
class NotionConfig:
    """Notion database settings consumed by the Notion adapter."""

    database_id: str
    title_property: str
    tags: Tuple[NotionTag, ...]
    timeout_seconds: float
