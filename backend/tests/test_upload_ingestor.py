"""
Unit Tests for Upload Ingestion
"""
import io
import os
from datetime import timedelta

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from beam.errors import CodeSpaceExhaustedError, PayloadTooLargeError, PersistenceError, ValidationError
from beam.models.base import as_utc
from beam.services.upload_ingestor import format_duration, parse_burn_flag, parse_expiry


def make_upload(content: bytes = b"hello", filename: str = "foo.txt", content_type: str = "text/plain") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestFormParsing:

    def test_expiry_choices(self):
        assert parse_expiry("10m") == timedelta(minutes=10)
        assert parse_expiry("24h") == timedelta(hours=24)

    @pytest.mark.parametrize("value", [None, "", "1h", "7d", "bogus"])
    def test_expiry_defaults_to_one_hour(self, value):
        assert parse_expiry(value) == timedelta(hours=1)

    def test_burn_flag(self):
        assert parse_burn_flag("true") is True
        assert parse_burn_flag("false") is False
        assert parse_burn_flag(None) is False
        assert parse_burn_flag("yes") is False

    def test_duration_format(self):
        assert format_duration(timedelta(minutes=10)) == "10m0s"
        assert format_duration(timedelta(hours=1)) == "1h0m0s"
        assert format_duration(timedelta(hours=24)) == "24h0m0s"
        assert format_duration(timedelta(seconds=5)) == "5s"


class TestIngest:

    @pytest.mark.asyncio
    async def test_missing_file_is_rejected(self, services):
        with pytest.raises(ValidationError) as exc_info:
            await services.ingestor.ingest(None)
        assert exc_info.value.status_code == 400
        assert os.listdir(services.storage.base_path) == []

    @pytest.mark.asyncio
    async def test_stores_blob_and_record(self, services):
        result = await services.ingestor.ingest(make_upload(), burn_after=True, expire_in="10m")

        assert len(result.code) == 4 and result.code.isdigit()
        assert result.expires == "10m0s"

        record = await services.store.get(result.code)
        assert record.original_name == "foo.txt"
        assert record.size == 5
        assert record.mime_type == "text/plain"
        assert record.burn_after is True
        assert as_utc(record.expires_at) - as_utc(record.created_at) == timedelta(minutes=10)

        with open(record.storage_path, "rb") as f:
            assert f.read() == b"hello"
        # Staging file is gone, only the published blob remains
        assert os.listdir(services.storage.base_path) == [os.path.basename(record.storage_path)]

    @pytest.mark.asyncio
    async def test_blob_name_carries_code_and_extension(self, services):
        result = await services.ingestor.ingest(make_upload(filename="report.final.pdf"))

        name = os.path.basename(result.record.storage_path)
        assert name.startswith(f"{result.code}_")
        assert name.endswith(".pdf")

    @pytest.mark.asyncio
    async def test_missing_content_type_defaults(self, services):
        upload = UploadFile(file=io.BytesIO(b"x"), filename="blob")
        result = await services.ingestor.ingest(upload)
        assert result.record.mime_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_collision_retries_with_new_code(self, services, make_record, monkeypatch):
        await make_record("0007")
        codes = iter(["0007", "0008"])
        monkeypatch.setattr(services.allocator, "generate", lambda: next(codes))

        result = await services.ingestor.ingest(make_upload())

        assert result.code == "0008"
        assert len(os.listdir(services.storage.base_path)) == 2

    @pytest.mark.asyncio
    async def test_record_failure_rolls_back_blob(self, services, monkeypatch):
        async def failing_create(record):
            raise PersistenceError("Database error")

        monkeypatch.setattr(services.store, "create", failing_create)

        with pytest.raises(PersistenceError):
            await services.ingestor.ingest(make_upload())
        assert os.listdir(services.storage.base_path) == []

    @pytest.mark.asyncio
    async def test_exhausted_code_space_leaves_no_blob(self, services, make_record, monkeypatch):
        await make_record("0009")
        monkeypatch.setattr(services.allocator, "generate", lambda: "0009")

        with pytest.raises(CodeSpaceExhaustedError):
            await services.ingestor.ingest(make_upload())
        assert len(os.listdir(services.storage.base_path)) == 1

    @pytest.mark.asyncio
    async def test_oversized_upload_is_rejected(self, services):
        services.ingestor.max_upload_bytes = 4

        with pytest.raises(PayloadTooLargeError) as exc_info:
            await services.ingestor.ingest(make_upload(b"too big"))
        assert exc_info.value.status_code == 413
        assert os.listdir(services.storage.base_path) == []
