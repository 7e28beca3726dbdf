"""Async SQLAlchemy engine and session factory.

The engine is created by the process entry point (see ``beam.services.container``)
and handed to the metadata store; nothing here holds a module-level handle.

Usage:
    engine = build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)

    async with session_factory() as session:
        result = await session.execute(select(FileRecord))
"""
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine, making sure a SQLite file has a parent directory."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(database_url, echo=False)

    return create_async_engine(
        database_url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
