"""Metadata store: durable FileRecord rows keyed by retrieval code.

The primary key on ``code`` is the only synchronization primitive the
lifecycle engine relies on. ``create`` reports a taken code as
``CodeTakenError`` so the allocator can retry; ``delete`` is idempotent.
"""
import logging
from datetime import datetime

from sqlalchemy import delete, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from beam.database import build_session_factory
from beam.errors import CodeTakenError, PersistenceError
from beam.models import Base, FileRecord
from beam.models.base import utcnow

logger = logging.getLogger(__name__)

# Primary key violation on file_records.code, as worded by SQLite and PostgreSQL
CODE_COLLISION_MARKERS = ("file_records.code", "file_records_pkey")


def is_code_collision(error: IntegrityError) -> bool:
    """True when the insert failed only because the code is held by another row."""
    message = str(error.orig)
    return any(marker in message for marker in CODE_COLLISION_MARKERS)


class MetadataStore:
    """CRUD and expiry range queries over the file_records table."""

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self.engine = engine
        self.session_factory = session_factory or build_session_factory(engine)

    async def init(self) -> None:
        """Create tables if they do not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def ping(self) -> None:
        async with self.session_factory() as db:
            await db.execute(text("SELECT 1"))

    async def create(self, record: FileRecord) -> FileRecord:
        """Insert a new record. The insert itself enforces code uniqueness."""
        async with self.session_factory() as db:
            db.add(record)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                if is_code_collision(e):
                    raise CodeTakenError(record.code) from e
                logger.error(f"Rejected record {record.code}: {e.orig}")
                raise PersistenceError("Database error") from e
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Failed to create record {record.code}: {e}")
                raise PersistenceError("Database error") from e
        return record

    async def get(self, code: str) -> FileRecord | None:
        async with self.session_factory() as db:
            return await db.get(FileRecord, code)

    async def delete(self, code: str, storage_path: str | None = None) -> bool:
        """Delete a record by code. Returns False if nothing was deleted.

        When ``storage_path`` is given only the record pointing at that blob
        is removed, so a late deletion cannot hit a newer record that
        reused the code.
        """
        stmt = delete(FileRecord).where(FileRecord.code == code)
        if storage_path is not None:
            stmt = stmt.where(FileRecord.storage_path == storage_path)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount > 0

    async def list_expired(self, now: datetime | None = None) -> list[FileRecord]:
        """All records whose expiry is strictly before ``now``."""
        cutoff = now or utcnow()
        async with self.session_factory() as db:
            result = await db.execute(
                select(FileRecord)
                .where(FileRecord.expires_at < cutoff)
                .order_by(FileRecord.expires_at)
            )
            return list(result.scalars().all())

    async def list_storage_paths(self) -> set[str]:
        async with self.session_factory() as db:
            result = await db.execute(select(FileRecord.storage_path))
            return set(result.scalars().all())
