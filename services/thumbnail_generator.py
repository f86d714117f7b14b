"""Thumbnail generator for cached scan images.

Wraps Pillow to shrink a captured image so the chat transcript can show a
preview without shipping the full capture back to the client. The
thumbnail fits within 160x160 pixels and is returned as PNG bytes.

Example:
    tg = ThumbnailGenerator(max_size=(160, 160))
    png_bytes = tg.create_thumbnail(image.data)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageOps


class ThumbnailGenerator:
    """Generate PNG thumbnails from encoded image bytes.

    Args:
        max_size: Maximum width and height for the thumbnail. Defaults to (160, 160).
        background: Colour used to flatten transparency. Defaults to white.
    """

    def __init__(self, max_size: Tuple[int, int] = (160, 160), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    def create_thumbnail(self, data: bytes) -> bytes:
        """Return a PNG thumbnail for `data`.

        Camera captures are rotated according to their EXIF orientation
        before shrinking.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except Exception as exc:
            raise ValueError("Image bytes are not a supported image format") from exc

        src = ImageOps.exif_transpose(src).convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)

        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        background.save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()
