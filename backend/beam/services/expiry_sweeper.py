"""Expiry sweeper.

Runs as an asyncio task within the FastAPI process. Every
``interval_seconds`` it removes every record whose expiry has passed,
together with its blob. A failure on one record is logged and the sweep
moves on to the next.
"""
import asyncio
import logging
import time
from datetime import datetime
from pathlib import Path

from beam.services.file_storage import FileStorageService
from beam.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodic removal of expired records and their blobs."""

    def __init__(
        self,
        store: MetadataStore,
        storage: FileStorageService,
        interval_seconds: float = 60.0,
        orphan_min_age_seconds: float = 3600.0,
    ):
        self.store = store
        self.storage = storage
        self.interval_seconds = interval_seconds
        self.orphan_min_age_seconds = orphan_min_age_seconds
        self._task: asyncio.Task | None = None

    async def sweep_once(self, now: datetime | None = None) -> int:
        """Run one sweep. Returns the number of records removed."""
        expired = await self.store.list_expired(now)
        removed = 0
        for record in expired:
            try:
                if await self.storage.delete(record.storage_path):
                    logger.info(f"Cleaned up expired file: {record.code}")
                else:
                    logger.warning(f"Blob already gone for expired file {record.code}: {record.storage_path}")
            except OSError as e:
                logger.error(f"Error deleting file {record.storage_path}: {e}")

            try:
                if await self.store.delete(record.code, record.storage_path):
                    removed += 1
            except Exception as e:
                logger.error(f"Error deleting record {record.code}: {e}")
        if removed:
            logger.info(f"Sweep removed {removed} expired file(s)")
        return removed

    async def remove_orphans(self, now: float | None = None) -> int:
        """Delete blobs no record points at, including abandoned staging files.

        Blobs are matched by file name, so a differently spelled storage path
        to the same directory still recognises live blobs. Orphans younger
        than ``orphan_min_age_seconds`` are left alone: they may belong to an
        upload still in flight in another worker.
        """
        live_names = {Path(p).name for p in await self.store.list_storage_paths()}
        cutoff = (now or time.time()) - self.orphan_min_age_seconds
        removed = 0
        for path in await self.storage.list_blobs():
            if Path(path).name in live_names:
                continue
            try:
                if await self.storage.modified_at(path) > cutoff:
                    continue
                if await self.storage.delete(path):
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Error deleting orphaned blob {path}: {e}")
        if removed:
            logger.info(f"Removed {removed} orphaned blob(s)")
        return removed

    async def run(self) -> None:
        """Sweep loop. Sleeps first, then sweeps, forever."""
        logger.info(f"Expiry sweeper started (every {self.interval_seconds}s)")
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Sweeper loop error: {e}")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="expiry-sweeper")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
