from __future__ import annotations

import asyncio

from adapters.telegram_mapper import build_chat_message, topic_id_from_message


class DummyReply:
    def __init__(
        self,
        forum_topic: bool,
        reply_to_top_id: "int | None",
        reply_to_msg_id: "int | None",
    ) -> None:
        self.forum_topic = forum_topic
        self.reply_to_top_id = reply_to_top_id
        self.reply_to_msg_id = reply_to_msg_id


class DummyFile:
    def __init__(self, name: "str | None", ext: str, mime_type: "str | None") -> None:
        self.name = name
        self.ext = ext
        self.mime_type = mime_type


class DummyMessage:
    def __init__(
        self,
        *,
        message_id: int,
        text: "str | None",
        reply_to=None,
        file: "DummyFile | None" = None,
        media: bytes = b"",
    ) -> None:
        self.id = message_id
        self.raw_text = text
        self.reply_to = reply_to
        self.file = file
        self._media = media
        self.downloads = 0

    async def download_media(self, file=None):
        assert file is bytes
        self.downloads += 1
        return self._media


def test_topic_id_from_reply_to_top_id() -> None:
    reply_to = DummyReply(forum_topic=True, reply_to_top_id=555, reply_to_msg_id=111)
    message = DummyMessage(message_id=10, text="hello", reply_to=reply_to)
    assert topic_id_from_message(message) == 555


def test_topic_id_fallback_to_reply_to_msg_id() -> None:
    reply_to = DummyReply(forum_topic=True, reply_to_top_id=None, reply_to_msg_id=777)
    message = DummyMessage(message_id=10, text="hello", reply_to=reply_to)
    assert topic_id_from_message(message) == 777


def test_no_forum_topic_flag() -> None:
    plain_reply = DummyReply(forum_topic=False, reply_to_top_id=None, reply_to_msg_id=5)
    assert topic_id_from_message(DummyMessage(message_id=10, text="hi", reply_to=plain_reply)) is None
    assert topic_id_from_message(DummyMessage(message_id=10, text="hi")) is None


def test_build_chat_message_with_document() -> None:
    reply_to = DummyReply(forum_topic=True, reply_to_top_id=None, reply_to_msg_id=42)
    message = DummyMessage(
        message_id=11,
        text="caption",
        reply_to=reply_to,
        file=DummyFile(name="IMG_1.HEIC", ext=".heic", mime_type="image/heic"),
        media=b"heic-bytes",
    )

    chat_message = asyncio.run(build_chat_message(message))

    assert chat_message.id == 11
    assert chat_message.thread_id == 42
    assert chat_message.content == "caption"
    assert len(chat_message.attachments) == 1
    attachment = chat_message.attachments[0]
    assert attachment.filename == "IMG_1.HEIC"
    assert attachment.data == b"heic-bytes"
    assert attachment.content_type == "image/heic"


def test_photo_without_name_gets_one() -> None:
    message = DummyMessage(
        message_id=12,
        text=None,
        file=DummyFile(name=None, ext=".jpg", mime_type="image/jpeg"),
        media=b"jpg",
    )
    chat_message = asyncio.run(build_chat_message(message))
    assert chat_message.content == ""
    assert chat_message.attachments[0].filename == "12.jpg"


def test_edits_skip_media_download() -> None:
    message = DummyMessage(
        message_id=13,
        text="edited",
        file=DummyFile(name="a.pdf", ext=".pdf", mime_type="application/pdf"),
        media=b"pdf",
    )
    chat_message = asyncio.run(build_chat_message(message, with_media=False))
    assert chat_message.attachments == ()
    assert message.downloads == 0


def test_failed_download_yields_no_attachment() -> None:
    message = DummyMessage(
        message_id=14,
        text="text",
        file=DummyFile(name="a.pdf", ext=".pdf", mime_type="application/pdf"),
        media=b"",
    )
    assert asyncio.run(build_chat_message(message)).attachments == ()
