"""Attachment classification and upload planning (core domain)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import mimetypes
import os
from typing import Iterable, List, Optional

from core.blocks import BlockKind
from core.errors import ConversionError
from core.models import Attachment
from core.ports import ImageConverter

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp")
HEIC_EXTENSIONS = ("heic", "heif")
GENERIC_CONTENT_TYPE = "application/octet-stream"
CONVERTED_CONTENT_TYPE = "image/jpeg"


class AttachmentKind(str, Enum):
    IMAGE = "image"
    HEIC = "heic"
    OTHER = "other"


@dataclass(frozen=True)
class AttachmentUpload:
    """A file to upload and the kind of block that will show it."""

    block_kind: BlockKind
    filename: str
    content_type: str
    data: bytes = field(repr=False)


def _extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lstrip(".").lower()


def classify_attachment(filename: str) -> AttachmentKind:
    """Classify an attachment by its filename suffix."""

    extension = _extension(filename)
    if extension in IMAGE_EXTENSIONS:
        return AttachmentKind.IMAGE
    if extension in HEIC_EXTENSIONS:
        return AttachmentKind.HEIC
    return AttachmentKind.OTHER


def resolve_content_type(filename: str, declared: Optional[str] = None) -> str:
    """Pick the declared type when specific, else guess from the filename."""

    if declared:
        declared = declared.split(";", 1)[0].strip().lower()
        if declared and declared != GENERIC_CONTENT_TYPE:
            return declared
    guessed, _ = mimetypes.guess_type(filename)
    if guessed:
        return guessed
    # mimetypes has no entry for HEIC on most platforms.
    if classify_attachment(filename) is AttachmentKind.HEIC:
        return f"image/{_extension(filename)}"
    return GENERIC_CONTENT_TYPE


def converted_filename(filename: str) -> str:
    stem, _ = os.path.splitext(filename)
    return f"{stem or 'image'}.jpg"


def resolve_attachment(attachment: Attachment, converter: ImageConverter) -> List[AttachmentUpload]:
    """Return the uploads needed to show one attachment.

    HEIC images are converted to JPEG so every client can render them; the
    original is kept as a file block next to the converted image. When the
    conversion fails only the file block is produced.
    """

    content_type = resolve_content_type(attachment.filename, attachment.content_type)
    original_as_file = AttachmentUpload(
        block_kind=BlockKind.FILE,
        filename=attachment.filename,
        content_type=content_type,
        data=attachment.data,
    )

    kind = classify_attachment(attachment.filename)
    if kind is AttachmentKind.IMAGE:
        return [
            AttachmentUpload(
                block_kind=BlockKind.IMAGE,
                filename=attachment.filename,
                content_type=content_type,
                data=attachment.data,
            )
        ]
    if kind is AttachmentKind.OTHER:
        return [original_as_file]

    try:
        converted = converter.convert(attachment.data)
    except ConversionError as exc:
        LOGGER.warning("HEIC conversion failed for %s, attaching original only: %s", attachment.filename, exc)
        return [original_as_file]

    return [
        AttachmentUpload(
            block_kind=BlockKind.IMAGE,
            filename=converted_filename(attachment.filename),
            content_type=CONVERTED_CONTENT_TYPE,
            data=converted,
        ),
        original_as_file,
    ]


def resolve_attachments(attachments: Iterable[Attachment], converter: ImageConverter) -> List[AttachmentUpload]:
    """Resolve attachments in list order."""

    uploads: List[AttachmentUpload] = []
    for attachment in attachments:
        uploads.extend(resolve_attachment(attachment, converter))
    return uploads
