"""HEIC/HEIF to JPEG conversion adapter (Pillow + pillow-heif)."""

from __future__ import annotations

import io
import logging

import pillow_heif
from PIL import Image, UnidentifiedImageError

from core.errors import ConversionError

LOGGER = logging.getLogger(__name__)

pillow_heif.register_heif_opener()


class HeicConverter:
    """Satisfies the core ImageConverter port."""

    def __init__(self, quality: int = 90) -> None:
        self._quality = quality

    def convert(self, data: bytes) -> bytes:
        """Decode any image Pillow can open and re-encode it as RGB JPEG."""

        try:
            with Image.open(io.BytesIO(data)) as img:
                if img.mode != "RGB":
                    img = img.convert("RGB")
                output = io.BytesIO()
                img.save(output, "JPEG", quality=self._quality)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise ConversionError(f"Failed to convert image to JPEG: {exc}") from exc

        converted = output.getvalue()
        LOGGER.debug("Image conversion succeeded: %s -> %s bytes", len(data), len(converted))
        return converted
