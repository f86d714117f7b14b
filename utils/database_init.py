from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS SCAN_IMAGE (
        key TEXT PRIMARY KEY,
        filename TEXT NOT NULL,
        mime_type TEXT NOT NULL,
        image_bytes BLOB NOT NULL,
        thumbnail BLOB,
        created_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_scan_image_created_at ON SCAN_IMAGE(created_at)",
)


class AsyncDatabaseInitializer:
    """
    Own the SQLite file that caches submitted scan images.

    - The file lives at <db_dir>/app.db; `db_dir` is created when missing.
    - With `reset=True` the first `ensure_database()` call removes any file
      left by a previous run before creating the schema.
    - `connection()` creates the schema lazily, so callers never have to
      call `ensure_database()` themselves.
    """

    def __init__(self, db_dir: Path | str, reset: bool = False) -> None:
        db_dir = Path(db_dir).expanduser()
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={str(db_dir)!r} points to a file, not a directory. "
                "Please set DATABASE_DIR to a directory path."
            )
        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RuntimeError(f"Cannot create database directory {db_dir}") from exc

        self.db_dir = db_dir
        self.db_path = db_dir / "app.db"
        self.reset = reset
        self._ready = False

    async def ensure_database(self) -> None:
        """Create the SCAN_IMAGE schema once per instance."""
        if self._ready:
            return
        if self.reset:
            try:
                self.db_path.unlink(missing_ok=True)
            except OSError as exc:
                raise RuntimeError(f"Cannot reset database at {self.db_path}") from exc

        async with aiosqlite.connect(self.db_path) as db:
            for statement in SCHEMA:
                await db.execute(statement)
            await db.commit()
        self._ready = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an `aiosqlite.Connection` to the cache database."""
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
