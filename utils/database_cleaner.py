"""Helpers to remove stale cached scan images from the SQLite database."""

import asyncio
import logging
import time

from dal.image_dal import ScanImageDAL
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class DatabaseCleaner:
    """Delete SCAN_IMAGE rows older than the configured retention window."""

    def __init__(self, db_initializer: AsyncDatabaseInitializer, retention_seconds: int = 86_400) -> None:
        """
        Args:
            db_initializer: Shared database initializer/connection provider.
            retention_seconds: Age threshold in seconds; rows older than this are removed.
        """
        self._dal = ScanImageDAL(db_initializer)
        self.retention_seconds = retention_seconds

    async def prune_expired_images(self) -> int:
        """Delete cached images older than the retention window and return count removed."""
        cutoff = int(time.time()) - self.retention_seconds
        deleted = await self._dal.delete_older_than(cutoff)
        if deleted:
            LOGGER.info("Pruned %d cached scan images older than %ds", deleted, self.retention_seconds)
        return deleted

    async def run_periodic_cleanup(self, interval_seconds: int = 3_600) -> None:
        """
        Repeatedly prune expired rows at the given interval until cancelled.

        Args:
            interval_seconds: Seconds to sleep between cleanup runs.
        """
        while True:
            try:
                await self.prune_expired_images()
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("Scan image cleanup failed; retrying next interval")
            await asyncio.sleep(interval_seconds)
