"""Async Data Access Layer for the SCAN_IMAGE table.

Provides ScanImageDAL with the async operations used by the image cache,
compatible with `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import time
from typing import List, Optional, Sequence

from models.image_record import ScanImageRecord
from utils.database_init import AsyncDatabaseInitializer


class ScanImageDAL:
    """Data access layer for SCAN_IMAGE records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "key",
        "filename",
        "mime_type",
        "image_bytes",
        "thumbnail",
        "created_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def insert_image(self, record: ScanImageRecord) -> str:
        """Insert a new SCAN_IMAGE row and return its key.

        Keys are generated fresh per submission, so an existing key is an
        error (sqlite3.IntegrityError) rather than an overwrite.
        """
        created_at = record.created_at or int(time.time())

        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO SCAN_IMAGE ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    record.key,
                    record.filename,
                    record.mime_type,
                    record.image_bytes,
                    record.thumbnail,
                    created_at,
                ),
            )
            await conn.commit()
        return record.key

    async def get_image(self, key: str) -> Optional[ScanImageRecord]:
        """Return the ScanImageRecord stored under `key`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM SCAN_IMAGE WHERE key = ?",
                (key,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def list_keys(self, limit: int = 100, offset: int = 0) -> List[str]:
        """List stored keys, newest first."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT key FROM SCAN_IMAGE ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
            rows = await cur.fetchall()
            return [r[0] for r in rows]

    async def delete_older_than(self, cutoff: int) -> int:
        """Delete rows created before `cutoff` and return how many were removed."""
        async with self._db.connection() as conn:
            cur = await conn.execute("DELETE FROM SCAN_IMAGE WHERE created_at < ?", (cutoff,))
            await conn.commit()
            return cur.rowcount if cur.rowcount and cur.rowcount > 0 else 0

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ScanImageRecord:
        """Convert a DB row tuple into a ScanImageRecord."""
        return ScanImageRecord(
            key=row[0],
            filename=row[1],
            mime_type=row[2],
            image_bytes=row[3],
            thumbnail=row[4],
            created_at=row[5],
        )
