from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ScanImageRecord:
    """In-memory representation of a row in the SCAN_IMAGE table.

    Attributes:
        key: Hex identifier generated for the submission.
        filename: Original filename of the capture or upload.
        mime_type: Encoding of `image_bytes`.
        image_bytes: Raw image as submitted for analysis.
        thumbnail: Optional PNG thumbnail bytes.
        created_at: Unix timestamp (seconds) when the row was inserted.
    """

    key: str
    filename: str
    mime_type: str
    image_bytes: bytes
    thumbnail: Optional[bytes] = None
    created_at: Optional[int] = None
