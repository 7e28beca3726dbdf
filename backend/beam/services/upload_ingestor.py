"""Upload ingestion: stage the blob, claim a code, then create the record.

Ordering is always blob first, record second. If the record cannot be
created the published blob (and the staging file) are removed before the
error leaves this module, so a failed upload leaves nothing behind.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import UploadFile

from beam.errors import CodeTakenError, PersistenceError, ValidationError
from beam.models import FileRecord
from beam.models.base import utcnow
from beam.services.code_allocator import CodeAllocator
from beam.services.file_storage import FileStorageService
from beam.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY = timedelta(hours=1)
EXPIRY_CHOICES = {
    "10m": timedelta(minutes=10),
    "24h": timedelta(hours=24),
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def parse_expiry(value: str | None) -> timedelta:
    """Map an ``expire_in`` form value to a lifetime; unknown values get the default."""
    return EXPIRY_CHOICES.get((value or "").strip(), DEFAULT_EXPIRY)


def parse_burn_flag(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


def format_duration(duration: timedelta) -> str:
    """Compact duration string: 10m0s, 1h0m0s, 24h0m0s."""
    total = int(duration.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


@dataclass
class UploadResult:
    code: str
    expires: str
    record: FileRecord


class UploadIngestor:
    """Validates an upload and creates the (blob, record) pair."""

    def __init__(
        self,
        store: MetadataStore,
        storage: FileStorageService,
        allocator: CodeAllocator,
        max_upload_bytes: int | None = None,
    ):
        self.store = store
        self.storage = storage
        self.allocator = allocator
        self.max_upload_bytes = max_upload_bytes

    async def ingest(
        self,
        upload: UploadFile | None,
        burn_after: bool = False,
        expire_in: str | None = None,
    ) -> UploadResult:
        if upload is None or not upload.filename:
            raise ValidationError("No file received")

        duration = parse_expiry(expire_in)
        if burn_after:
            logger.info("Upload marked for Burn After Reading")

        staging_path, size = await self.storage.write_staged(upload, self.max_upload_bytes)
        original_name = upload.filename
        mime_type = upload.content_type or DEFAULT_MIME_TYPE

        async def claim(code: str) -> FileRecord:
            created_at = utcnow()
            name = self.storage.blob_name(code, created_at, original_name)
            try:
                storage_path = await self.storage.publish(staging_path, name)
            except FileExistsError:
                raise CodeTakenError(code)

            record = FileRecord(
                code=code,
                original_name=original_name,
                size=size,
                mime_type=mime_type,
                storage_path=storage_path,
                burn_after=burn_after,
                created_at=created_at,
                expires_at=created_at + duration,
            )
            try:
                return await self.store.create(record)
            except PersistenceError:
                await self._discard(storage_path)
                raise

        try:
            record = await self.allocator.allocate(claim)
        finally:
            await self._discard(staging_path)

        logger.info(f"Stored {record.code} ({size} bytes, burn_after={burn_after}, expires in {format_duration(duration)})")
        return UploadResult(code=record.code, expires=format_duration(duration), record=record)

    async def _discard(self, path: str) -> None:
        try:
            await self.storage.delete(path)
        except OSError as e:
            logger.error(f"Failed to roll back blob {path}: {e}")
