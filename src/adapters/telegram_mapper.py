"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from telethon.tl.custom import Message

from core.models import Attachment, ChatMessage

LOGGER = logging.getLogger(__name__)


def topic_id_from_message(message: Message) -> Optional[int]:
    """Return the forum topic a message belongs to, or None outside topics."""

    reply_to = getattr(message, "reply_to", None)
    if not reply_to or not getattr(reply_to, "forum_topic", False):
        return None
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    return getattr(reply_to, "reply_to_msg_id", None)


def _attachment_name(message: Message) -> str:
    file = message.file
    name = getattr(file, "name", None)
    if name:
        return name
    # Photos and voice notes have no filename; derive one from the extension.
    ext = getattr(file, "ext", None) or ""
    return f"{message.id}{ext}"


async def download_attachments(message: Message) -> Tuple[Attachment, ...]:
    """Download the message media (if any) into memory."""

    if getattr(message, "file", None) is None:
        return ()
    data = await message.download_media(file=bytes)
    if not data:
        LOGGER.warning("Media of message %s could not be downloaded", message.id)
        return ()
    return (
        Attachment(
            filename=_attachment_name(message),
            data=data,
            content_type=getattr(message.file, "mime_type", None),
        ),
    )


async def build_chat_message(message: Message, with_media: bool = True) -> ChatMessage:
    """Build a core ChatMessage from a Telethon Message.

    Edits only change text, so callers skip the media download for them.
    """

    attachments = await download_attachments(message) if with_media else ()
    return ChatMessage(
        id=message.id,
        thread_id=topic_id_from_message(message),
        content=message.raw_text or "",
        attachments=attachments,
    )
