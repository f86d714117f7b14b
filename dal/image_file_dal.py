"""Async file-system storage for cached scan images.

Images are written as `<base_dir>/<key>.<ext>` with `aiofiles`, and an
optional thumbnail alongside as `<key>_thumb.png`.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class ImageFileDAL:
	"""Read and write image blobs under a single directory.

	Usage:
		dal = ImageFileDAL("/var/lib/farm-scan/images")
		path = await dal.save_original(key, data, "jpg")
	"""

	def __init__(self, base_dir: Path | str):
		self.base_dir = Path(base_dir)

	def _path(self, key: str, suffix: str) -> Path:
		if not _KEY_PATTERN.match(key):
			raise ValueError(f"Invalid image key: {key!r}")
		return self.base_dir / f"{key}{suffix}"

	async def _write(self, path: Path, data: bytes) -> None:
		await aiofiles.os.makedirs(self.base_dir, exist_ok=True)
		# "xb" so a reused key fails instead of overwriting an earlier scan.
		async with aiofiles.open(path, "xb") as f:
			await f.write(data)

	async def save_original(self, key: str, data: bytes, extension: str) -> str:
		"""Write the original image bytes and return the file path."""
		path = self._path(key, f".{extension}")
		await self._write(path, data)
		return str(path)

	async def save_thumbnail(self, key: str, thumb_bytes: bytes) -> str:
		"""Write PNG thumbnail bytes next to the original and return the path."""
		path = self._path(key, "_thumb.png")
		await self._write(path, thumb_bytes)
		return str(path)

	async def read_thumbnail(self, key: str) -> Optional[bytes]:
		"""Return the thumbnail bytes for `key`, or None if it was never written."""
		path = self._path(key, "_thumb.png")
		if not await aiofiles.os.path.exists(path):
			return None
		async with aiofiles.open(path, "rb") as f:
			return await f.read()
