"""Block assembly: message text to ordered document blocks.

Inline content (plain text and links) accumulates into one paragraph until a
URL needs a standalone block. At that point the paragraph is flushed so the
bookmark or embed lands exactly where the URL appeared in the message.
"""

from __future__ import annotations

from typing import List

from core.blocks import Block, BookmarkBlock, EmbedBlock, RichTextSpan, TextBlock
from core.rules_engine import BlockType, CompiledUrlRules, classify_url
from core.segmenter import PlainSegment, segment


def _flush(pending: List[RichTextSpan], blocks: List[Block]) -> None:
    if not pending:
        return
    blocks.append(TextBlock(spans=tuple(pending)))
    pending.clear()


def _standalone_block(block_type: BlockType, url: str) -> Block:
    if block_type is BlockType.BOOKMARK:
        return BookmarkBlock(url=url)
    return EmbedBlock(url=url)


def assemble_blocks(text: str, rules: CompiledUrlRules) -> List[Block]:
    """Return the blocks for a message text in reading order."""

    blocks: List[Block] = []
    pending: List[RichTextSpan] = []

    for item in segment(text):
        if isinstance(item, PlainSegment):
            if item.text:
                pending.append(RichTextSpan(item.text))
            continue

        url = item.text
        block_types = classify_url(url, rules)
        if not block_types:
            # Nothing to convert into: keep the raw URL readable.
            pending.append(RichTextSpan(url))
            continue

        if BlockType.LINK in block_types:
            pending.append(RichTextSpan(url, link=url))

        standalone = [block_type for block_type in block_types if block_type.standalone]
        if standalone:
            _flush(pending, blocks)
            blocks.extend(_standalone_block(block_type, url) for block_type in standalone)

    _flush(pending, blocks)
    return blocks


def text_blocks(blocks: List[Block]) -> List[TextBlock]:
    """Return only the paragraph blocks, preserving order."""

    return [block for block in blocks if isinstance(block, TextBlock)]
