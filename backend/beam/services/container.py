"""Service container owned by the process entry point.

Builds every lifecycle component from ``Settings`` and wires them together,
so nothing reaches for a global database or storage handle.
"""
import logging

from beam.config import Settings
from beam.database import build_engine, build_session_factory
from beam.services.burn_scheduler import BurnScheduler
from beam.services.code_allocator import CodeAllocator
from beam.services.download_streamer import DownloadStreamer
from beam.services.expiry_sweeper import ExpirySweeper
from beam.services.file_storage import FileStorageService
from beam.services.metadata_store import MetadataStore
from beam.services.upload_ingestor import UploadIngestor

logger = logging.getLogger(__name__)


class BeamServices:

    def __init__(self, settings: Settings):
        self.settings = settings
        engine = build_engine(settings.DATABASE_URL)
        self.store = MetadataStore(engine, build_session_factory(engine))
        self.storage = FileStorageService(settings.FILE_STORAGE_PATH)
        self.allocator = CodeAllocator(settings.CODE_LENGTH, settings.CODE_MAX_ATTEMPTS)
        self.burn_scheduler = BurnScheduler(self.store, self.storage, settings.BURN_GRACE_SECONDS)
        self.ingestor = UploadIngestor(self.store, self.storage, self.allocator, settings.MAX_UPLOAD_BYTES)
        self.streamer = DownloadStreamer(self.store, self.storage, self.burn_scheduler)
        self.sweeper = ExpirySweeper(
            self.store,
            self.storage,
            settings.SWEEP_INTERVAL_SECONDS,
            settings.ORPHAN_MIN_AGE_SECONDS,
        )

    async def start(self) -> None:
        """Create tables, reconcile leftovers from a previous run, start the sweeper."""
        await self.store.init()
        await self.sweeper.remove_orphans()
        self.sweeper.start()

    async def close(self) -> None:
        await self.sweeper.stop()
        await self.burn_scheduler.shutdown(flush=True)
        await self.store.dispose()
        logger.info("Beam services stopped")
