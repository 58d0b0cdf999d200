"""Abstract document blocks produced by the core.

Blocks carry no wire format. The Notion adapter is the only place that turns
them into API payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class BlockKind(str, Enum):
    TEXT = "text"
    BOOKMARK = "bookmark"
    EMBED = "embed"
    IMAGE = "image"
    FILE = "file"


@dataclass(frozen=True)
class RichTextSpan:
    """A run of inline text, optionally linked."""

    text: str
    link: Optional[str] = None


@dataclass(frozen=True)
class TextBlock:
    spans: Tuple[RichTextSpan, ...]
    kind: BlockKind = BlockKind.TEXT

    @property
    def plain_text(self) -> str:
        return "".join(span.text for span in self.spans)


@dataclass(frozen=True)
class BookmarkBlock:
    url: str
    kind: BlockKind = BlockKind.BOOKMARK


@dataclass(frozen=True)
class EmbedBlock:
    url: str
    kind: BlockKind = BlockKind.EMBED


@dataclass(frozen=True)
class ImageBlock:
    file_upload_id: str
    name: Optional[str] = None
    kind: BlockKind = BlockKind.IMAGE


@dataclass(frozen=True)
class FileBlock:
    file_upload_id: str
    name: Optional[str] = None
    kind: BlockKind = BlockKind.FILE


Block = Union[TextBlock, BookmarkBlock, EmbedBlock, ImageBlock, FileBlock]
