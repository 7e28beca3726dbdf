"""Blob storage on the local filesystem.

Uploads are streamed to a hidden ``.part`` staging file and then hard-linked
to their final name. Linking fails when the name exists, so a published
blob is never overwritten and readers never see partial bytes.
"""
import logging
import os
import re
import uuid
from datetime import datetime
from pathlib import Path

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from beam.errors import PayloadTooLargeError, StorageError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
STAGING_SUFFIX = ".part"
_SAFE_EXT = re.compile(r"\.[A-Za-z0-9_-]{1,16}")


class FileStorageService:
    """Handles blob write/read/delete under a single base directory."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def blob_name(code: str, created_at: datetime, original_name: str) -> str:
        """Physical name derived from code, creation time (ms) and extension."""
        ext = Path(original_name).suffix
        if not _SAFE_EXT.fullmatch(ext):
            ext = ""
        return f"{code}_{int(created_at.timestamp() * 1000)}{ext}"

    async def write_staged(self, upload: UploadFile, max_bytes: int | None = None) -> tuple[str, int]:
        """Stream an upload to a staging file. Returns (staging path, bytes written)."""
        staging_path = self.base_path / f".{uuid.uuid4().hex}{STAGING_SUFFIX}"
        written = 0
        try:
            async with aiofiles.open(staging_path, "wb") as f:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise PayloadTooLargeError("File too large")
                    await f.write(chunk)
        except PayloadTooLargeError:
            await self.delete(str(staging_path))
            raise
        except OSError as e:
            logger.error(f"Failed to write staging file {staging_path}: {e}")
            await self.delete(str(staging_path))
            raise StorageError("Failed to save file") from e
        return str(staging_path), written

    async def publish(self, staging_path: str, name: str) -> str:
        """Link a staged blob to its final name.

        Raises FileExistsError if a blob with that name is already present.
        """
        final_path = self.base_path / name
        try:
            await aiofiles.os.link(staging_path, final_path)
        except FileExistsError:
            raise
        except OSError as e:
            logger.error(f"Failed to publish {staging_path} as {final_path}: {e}")
            raise StorageError("Failed to save file") from e
        return str(final_path)

    async def open(self, storage_path: str):
        """Open a blob for reading. FileNotFoundError propagates to the caller."""
        return await aiofiles.open(storage_path, "rb")

    async def delete(self, storage_path: str) -> bool:
        """Delete a blob. Returns False if it was already gone."""
        try:
            await aiofiles.os.remove(storage_path)
        except FileNotFoundError:
            return False
        return True

    async def modified_at(self, storage_path: str) -> float:
        return await aiofiles.os.path.getmtime(storage_path)

    async def list_blobs(self) -> list[str]:
        """Paths of every file in the storage directory, staging files included."""
        entries = await aiofiles.os.listdir(self.base_path)
        return [
            str(self.base_path / entry)
            for entry in entries
            if os.path.isfile(self.base_path / entry)
        ]

