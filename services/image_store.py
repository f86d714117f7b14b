"""Local persistence for images submitted to the scan classifiers.

Every submission is cached once under a freshly generated key together
with a PNG thumbnail. Two backends are available: the SQLite SCAN_IMAGE
table (default) and plain files in a directory. Both raise
`PersistenceFailure` on any error so callers can treat the write as
best-effort.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from dal.image_dal import ScanImageDAL
from dal.image_file_dal import ImageFileDAL
from models.image_record import ScanImageRecord
from models.scan_models import CapturedImage
from services.scan.errors import PersistenceFailure
from services.thumbnail_generator import ThumbnailGenerator
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer
from utils.media_validation import extension_for

LOGGER = logging.getLogger(__name__)


class ImageStore(Protocol):
    async def put(self, key: str, image: CapturedImage) -> None:
        """Persist `image` under `key`."""
        ...

    async def get_thumbnail(self, key: str) -> Optional[bytes]:
        """Return the PNG thumbnail stored under `key`, if any."""
        ...


async def _thumbnail_or_none(thumbnails: ThumbnailGenerator, image: CapturedImage) -> Optional[bytes]:
    # thumbnail generation is blocking -> run in thread
    try:
        return await asyncio.to_thread(thumbnails.create_thumbnail, image.data)
    except ValueError as exc:
        LOGGER.warning("Skipping thumbnail for %s: %s", image.filename, exc)
        return None


class SqliteImageStore:
    """Cache images in the SCAN_IMAGE table."""

    def __init__(self, db_initializer: AsyncDatabaseInitializer, thumbnails: Optional[ThumbnailGenerator] = None) -> None:
        self.dal = ScanImageDAL(db_initializer)
        self.thumbnails = thumbnails or ThumbnailGenerator()

    async def put(self, key: str, image: CapturedImage) -> None:
        thumbnail = await _thumbnail_or_none(self.thumbnails, image)
        record = ScanImageRecord(
            key=key,
            filename=image.filename,
            mime_type=image.encoding,
            image_bytes=image.data,
            thumbnail=thumbnail,
        )
        try:
            await self.dal.insert_image(record)
        except Exception as exc:
            raise PersistenceFailure(f"Failed to cache image {key}: {exc}") from exc

    async def get_thumbnail(self, key: str) -> Optional[bytes]:
        record = await self.dal.get_image(key)
        return record.thumbnail if record else None


class FileImageStore:
    """Cache images as files under a directory."""

    def __init__(self, file_dal: ImageFileDAL, thumbnails: Optional[ThumbnailGenerator] = None) -> None:
        self.file_dal = file_dal
        self.thumbnails = thumbnails or ThumbnailGenerator()

    async def put(self, key: str, image: CapturedImage) -> None:
        try:
            await self.file_dal.save_original(key, image.data, extension_for(image.encoding))
        except Exception as exc:
            raise PersistenceFailure(f"Failed to cache image {key}: {exc}") from exc

        thumbnail = await _thumbnail_or_none(self.thumbnails, image)
        if thumbnail is None:
            return
        try:
            await self.file_dal.save_thumbnail(key, thumbnail)
        except Exception as exc:
            raise PersistenceFailure(f"Failed to cache thumbnail {key}: {exc}") from exc

    async def get_thumbnail(self, key: str) -> Optional[bytes]:
        return await self.file_dal.read_thumbnail(key)


def build_image_store(config: AppConfig, db_initializer: Optional[AsyncDatabaseInitializer] = None) -> ImageStore:
    """Return the image store selected by `config.image_store_backend`."""
    if config.image_store_backend == "files":
        return FileImageStore(ImageFileDAL(config.image_dir))
    if db_initializer is None:
        raise RuntimeError("The sqlite image store requires a database initializer.")
    return SqliteImageStore(db_initializer)
