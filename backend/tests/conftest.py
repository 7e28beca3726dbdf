"""
Beam - Test Configuration and Fixtures
"""
from datetime import timedelta
from pathlib import Path
from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient

from beam.config import Settings
from beam.main import create_app
from beam.models import FileRecord
from beam.models.base import utcnow
from beam.services.container import BeamServices

fake = Faker()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Isolated settings: temp database and upload dir, short grace window."""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'beam.db'}",
        FILE_STORAGE_PATH=str(tmp_path / "uploads"),
        STATIC_DIR=str(tmp_path / "public"),
        BURN_GRACE_SECONDS=0.2,
        SWEEP_INTERVAL_SECONDS=3600,
        MAX_UPLOAD_BYTES=1024 * 1024,
    )


@pytest.fixture
async def services(settings: Settings) -> AsyncGenerator[BeamServices, None]:
    """Started service container, closed after the test"""
    services = BeamServices(settings)
    await services.start()
    yield services
    await services.close()


@pytest.fixture
async def client(settings: Settings, services: BeamServices) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the test services"""
    app = create_app(settings)
    app.state.services = services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_record(services: BeamServices):
    """Write a blob and insert its record directly, bypassing the upload path"""
    async def _make(
        code: str,
        content: bytes = b"hello",
        expires_in: timedelta = timedelta(hours=1),
        burn_after: bool = False,
        name: str | None = None,
    ) -> FileRecord:
        name = name or fake.file_name(extension="txt")
        created_at = utcnow() - timedelta(hours=2)
        storage_path = services.storage.base_path / services.storage.blob_name(code, created_at, name)
        storage_path.write_bytes(content)
        record = FileRecord(
            code=code,
            original_name=name,
            size=len(content),
            mime_type="text/plain",
            storage_path=str(storage_path),
            burn_after=burn_after,
            created_at=created_at,
            expires_at=utcnow() + expires_in,
        )
        return await services.store.create(record)

    return _make

