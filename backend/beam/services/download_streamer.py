"""Download streaming with a completion hook.

``DownloadStreamer.open`` resolves a code to an open blob handle wrapped in
a ``BlobStream``. Closing the stream, whether the body was fully sent, the
client went away, or sending failed, fires the completion hook exactly
once. For burn-after-read files that hook hands the record to the burn
scheduler; the stream never deletes anything itself.
"""
import logging
from typing import Callable
from urllib.parse import quote

from beam.errors import NotFoundError, StorageError
from beam.models import FileRecord
from beam.services.burn_scheduler import BurnScheduler
from beam.services.file_storage import CHUNK_SIZE, FileStorageService
from beam.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


def content_disposition(filename: str) -> str:
    """Attachment header value; non-ASCII names use RFC 5987 encoding."""
    try:
        filename.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=utf-8''{quote(filename)}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{escaped}"'


class BlobStream:
    """Open blob handle that reports its own closing exactly once."""

    def __init__(
        self,
        record: FileRecord,
        handle,
        on_complete: Callable[[FileRecord], object] | None = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.record = record
        self._handle = handle
        self._on_complete = on_complete
        self._chunk_size = chunk_size
        self.closed = False

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Disposition": content_disposition(self.record.original_name),
            "Content-Length": str(self.record.size),
            "Content-Type": self.record.mime_type,
        }

    async def __aiter__(self):
        while not self.closed:
            chunk = await self._handle.read(self._chunk_size)
            if not chunk:
                break
            yield chunk

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._handle.close()
        finally:
            if self._on_complete is not None:
                self._on_complete(self.record)


class DownloadStreamer:
    """Resolves codes to records and open blobs."""

    def __init__(self, store: MetadataStore, storage: FileStorageService, burn_scheduler: BurnScheduler):
        self.store = store
        self.storage = storage
        self.burn_scheduler = burn_scheduler

    async def lookup(self, code: str, message: str = "Invalid or expired code") -> FileRecord:
        """Live record for ``code``. Expired records are hidden until the sweeper removes them."""
        record = await self.store.get(code)
        if record is None or record.is_expired():
            raise NotFoundError(message)
        return record

    async def open(self, code: str) -> BlobStream:
        record = await self.lookup(code, message="File not found")
        try:
            handle = await self.storage.open(record.storage_path)
        except FileNotFoundError:
            # The record alone is not proof the file exists
            await self.store.delete(record.code, record.storage_path)
            logger.warning(f"Purged stale record {record.code}: blob missing at {record.storage_path}")
            raise NotFoundError("File not found on disk")
        except OSError as e:
            logger.error(f"Failed to open blob for {record.code}: {e}")
            raise StorageError("Failed to read file") from e

        on_complete = self.burn_scheduler.schedule if record.burn_after else None
        return BlobStream(record, handle, on_complete=on_complete)
