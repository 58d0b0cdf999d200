"""Telegram forum topic adapter.

Each diary date gets its own topic in the configured forum group; the topic
id is the thread id stored in the diary index.
"""

from __future__ import annotations

import logging

from telethon import errors
from telethon.tl.functions.channels import CreateForumTopicRequest
from telethon.tl.types import MessageActionTopicCreate

from core.errors import RemoteCallError

LOGGER = logging.getLogger(__name__)


def _topic_id_from_updates(updates) -> int:
    for update in getattr(updates, "updates", []) or []:
        message = getattr(update, "message", None)
        if isinstance(getattr(message, "action", None), MessageActionTopicCreate):
            return message.id
    raise RemoteCallError("Forum topic was not created: no topic message in the response")


class ForumThreads:
    """Creates diary topics and posts replies in the diary group."""

    def __init__(self, client, chat) -> None:
        self._client = client
        self._chat = chat

    async def create_thread(self, title: str) -> int:
        """Create a forum topic and return its id."""

        try:
            updates = await self._client(CreateForumTopicRequest(channel=self._chat, title=title))
        except (errors.RPCError, ConnectionError) as exc:
            raise RemoteCallError(f"Failed to create forum topic '{title}': {exc}") from exc
        topic_id = _topic_id_from_updates(updates)
        LOGGER.info("Created forum topic %s (%s)", topic_id, title)
        return topic_id

    async def reply(self, message_id: int, text: str):
        """Reply to a message in the diary group with an HTML body."""

        return await self._client.send_message(
            self._chat,
            text,
            reply_to=message_id,
            parse_mode="html",
            link_preview=False,
        )
