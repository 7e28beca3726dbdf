"""Burn-after-reading scheduler.

When a burn-after-read download finishes, the record is parked here for a
grace window before its record and blob are removed. Pending burns are
keyed by blob path, so two downloads of the same file finishing together
schedule a single deletion. Deletion itself is idempotent, so racing the
expiry sweeper is harmless.
"""
import asyncio
import logging

from beam.models import FileRecord
from beam.services.file_storage import FileStorageService
from beam.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


class BurnScheduler:
    """Delayed, cancellable deletion of downloaded burn-after-read files."""

    def __init__(self, store: MetadataStore, storage: FileStorageService, grace_seconds: float = 10.0):
        self.store = store
        self.storage = storage
        self.grace_seconds = grace_seconds
        self._pending: dict[str, tuple[FileRecord, asyncio.Task]] = {}

    def schedule(self, record: FileRecord) -> bool:
        """Start the grace timer for ``record``. Returns False if one is already running."""
        key = record.storage_path
        if key in self._pending:
            logger.info(f"Burn already pending for: {record.code}")
            return False

        task = asyncio.create_task(self._burn_later(record), name=f"burn-{record.code}")
        self._pending[key] = (record, task)
        task.add_done_callback(lambda t: self._forget(key, t))
        logger.info(f"Burn timer started for: {record.code}")
        return True

    def pending(self) -> list[str]:
        """Codes whose burn is waiting out the grace window."""
        return [record.code for record, _ in self._pending.values()]

    def cancel(self, code: str) -> bool:
        for record, task in list(self._pending.values()):
            if record.code == code:
                task.cancel()
                return True
        return False

    async def burn(self, record: FileRecord) -> bool:
        """Delete record then blob. Returns False if the record was already gone."""
        deleted = await self.store.delete(record.code, record.storage_path)
        try:
            await self.storage.delete(record.storage_path)
        except OSError as e:
            logger.warning(f"Delete warning (might be open): {e}")
        else:
            if deleted:
                logger.info(f"File {record.code} burned successfully.")
        return deleted

    async def wait_idle(self) -> None:
        """Wait until every pending burn has run."""
        tasks = [task for _, task in self._pending.values()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self, flush: bool = True) -> None:
        """Cancel pending timers; with ``flush`` the deletions run immediately."""
        pending = list(self._pending.values())
        for _, task in pending:
            task.cancel()
        await asyncio.gather(*(task for _, task in pending), return_exceptions=True)
        if flush:
            for record, _ in pending:
                try:
                    await self.burn(record)
                except Exception as e:
                    logger.error(f"Failed to flush burn for {record.code}: {e}")
            if pending:
                logger.info(f"Flushed {len(pending)} pending burn(s) on shutdown")

    async def _burn_later(self, record: FileRecord) -> None:
        await asyncio.sleep(self.grace_seconds)
        try:
            await self.burn(record)
        except Exception as e:
            logger.error(f"Burn failed for {record.code}: {e}")

    def _forget(self, key: str, task: asyncio.Task) -> None:
        entry = self._pending.get(key)
        if entry is not None and entry[1] is task:
            del self._pending[key]
