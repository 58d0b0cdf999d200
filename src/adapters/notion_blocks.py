"""Notion wire format for core blocks.

This is the only place that knows the Notion block JSON shapes, so the core
stays free of wire-format concerns.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence

from core.blocks import (
    Block,
    BookmarkBlock,
    EmbedBlock,
    FileBlock,
    ImageBlock,
    RichTextSpan,
    TextBlock,
)
from core.config import NotionTag

# Notion rejects text objects longer than this.
MAX_TEXT_CONTENT = 2000


def _chunks(text: str, size: int = MAX_TEXT_CONTENT) -> List[str]:
    return [text[start : start + size] for start in range(0, len(text), size)]


def rich_text(spans: Iterable[RichTextSpan]) -> List[dict[str, Any]]:
    """Serialize inline spans, splitting long content into several text objects."""

    items: List[dict[str, Any]] = []
    for span in spans:
        for chunk in _chunks(span.text):
            text: dict[str, Any] = {"content": chunk}
            if span.link:
                text["link"] = {"url": span.link}
            items.append({"type": "text", "text": text})
    return items


def _uploaded_file(block_type: str, upload_id: str, name: Optional[str]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "file_upload",
        "file_upload": {"id": upload_id},
        "caption": [],
    }
    # Only file blocks carry a display name.
    if name and block_type == "file":
        payload["name"] = name
    return {"object": "block", "type": block_type, block_type: payload}


def block_to_notion(block: Block) -> dict[str, Any]:
    """Serialize one block as a Notion block object."""

    if isinstance(block, TextBlock):
        return {
            "object": "block",
            "type": "paragraph",
            "paragraph": {"rich_text": rich_text(block.spans)},
        }
    if isinstance(block, BookmarkBlock):
        return {
            "object": "block",
            "type": "bookmark",
            "bookmark": {"url": block.url, "caption": []},
        }
    if isinstance(block, EmbedBlock):
        return {"object": "block", "type": "embed", "embed": {"url": block.url}}
    if isinstance(block, ImageBlock):
        return _uploaded_file("image", block.file_upload_id, block.name)
    if isinstance(block, FileBlock):
        return _uploaded_file("file", block.file_upload_id, block.name)
    raise TypeError(f"Unsupported block: {block!r}")


def blocks_to_notion(blocks: Sequence[Block]) -> List[dict[str, Any]]:
    return [block_to_notion(block) for block in blocks]


def title_property(title: str) -> dict[str, Any]:
    return {"title": [{"type": "text", "text": {"content": title}}]}


def tag_property(tag: NotionTag) -> dict[str, Any]:
    if tag.multi_select:
        return {"multi_select": [{"name": tag.value}]}
    return {"select": {"name": tag.value}}


def page_properties(title_name: str, title: str, tags: Iterable[NotionTag]) -> dict[str, Any]:
    """Build the properties of a new diary page."""

    properties: dict[str, Any] = {title_name: title_property(title)}
    for tag in tags:
        properties[tag.property] = tag_property(tag)
    return properties
