"""Validation helpers for captured and uploaded scan images."""

import base64
import binascii
import io
from typing import Optional

from fastapi import HTTPException, UploadFile
from PIL import Image, UnidentifiedImageError

from models.scan_models import SUPPORTED_IMAGE_TYPES, CapturedImage, ImageSource
from services.scan.errors import InvalidInput

# Pillow format name -> MIME type
_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "GIF": "image/gif",
}

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/gif": "gif",
}


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lower-case a content type and strip parameters (`image/JPEG; q=1` -> `image/jpeg`)."""
    if not mime_type:
        return ""
    normalized = mime_type.lower().split(";", 1)[0].strip()
    return "image/jpeg" if normalized == "image/jpg" else normalized


def extension_for(mime_type: str) -> str:
    """Return the file extension used when storing an image of `mime_type`."""
    return _EXTENSIONS.get(normalize_mime_type(mime_type), "jpg")


def sniff_mime_type(data: bytes) -> str:
    """Return the MIME type Pillow detects for `data`.

    Raises:
        InvalidInput: If the bytes are not a decodable image of a supported format.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            image_format = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidInput("Image data could not be decoded.") from exc
    mime = _FORMAT_TO_MIME.get(image_format or "")
    if mime is None:
        raise InvalidInput(f"Unsupported image format: {image_format}")
    return mime


def validate_captured_image(image: Optional[CapturedImage], max_bytes: Optional[int] = None) -> CapturedImage:
    """Check that a captured image can be submitted for analysis.

    Raises:
        InvalidInput: If the image is missing, empty, too large, of an
            unsupported encoding, or not decodable.
    """
    if image is None or not image.data:
        raise InvalidInput("An image is required; capture or upload one first.")
    if max_bytes is not None and image.size > max_bytes:
        raise InvalidInput(f"Image is larger than the {max_bytes} byte limit.")
    if normalize_mime_type(image.encoding) not in SUPPORTED_IMAGE_TYPES:
        raise InvalidInput(f"Unsupported image encoding: {image.encoding}")
    sniff_mime_type(image.data)
    return image


def build_captured_image(
    data: bytes,
    mime_type: Optional[str],
    *,
    source: ImageSource,
    filename: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> CapturedImage:
    """Create a validated CapturedImage, trusting the decoded format over the declared one."""
    if not data:
        raise InvalidInput("Image data is empty.")
    declared = normalize_mime_type(mime_type)
    if declared and declared not in SUPPORTED_IMAGE_TYPES:
        raise InvalidInput(f"Unsupported image encoding: {mime_type}")
    encoding = sniff_mime_type(data)
    name = filename or f"{source.value}.{extension_for(encoding)}"
    return validate_captured_image(
        CapturedImage(data=data, encoding=encoding, source=source, filename=name),
        max_bytes,
    )


def decode_base64_image(text: str) -> bytes:
    """Decode a base64 string or a `data:image/...;base64,` URL into bytes."""
    payload = (text or "").strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    if not payload:
        raise InvalidInput("Image payload is required.")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput("Image payload is not valid base64.") from exc


async def read_image_upload(upload: UploadFile, source: ImageSource, max_bytes: Optional[int] = None) -> CapturedImage:
    """Read an uploaded image into a CapturedImage, translating failures to HTTP errors."""
    if upload.content_type:
        content_type = normalize_mime_type(upload.content_type)
        if content_type not in SUPPORTED_IMAGE_TYPES and content_type != "application/octet-stream":
            raise HTTPException(status_code=415, detail=f"Unsupported image content type: {upload.content_type}")
    data = await upload.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    try:
        return build_captured_image(
            data,
            None,
            source=source,
            filename=upload.filename or None,
            max_bytes=max_bytes,
        )
    except InvalidInput as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
