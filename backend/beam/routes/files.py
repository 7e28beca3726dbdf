"""Files API routes: upload, metadata lookup, download."""
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from beam.dependencies import get_ingestor, get_streamer
from beam.models.base import as_utc
from beam.schemas.file import ErrorResponse, FileMetaResponse, UploadResponse
from beam.services.download_streamer import BlobStream, DownloadStreamer
from beam.services.upload_ingestor import UploadIngestor, parse_burn_flag

router = APIRouter(prefix="/api", tags=["files"])


class BlobStreamResponse(StreamingResponse):
    """Streams a BlobStream and closes it on every exit path."""

    def __init__(self, stream: BlobStream):
        super().__init__(stream, headers=stream.headers)
        self.stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.stream.aclose()


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_file(
    document: UploadFile | None = File(None),
    burn_after: str | None = Form(None),
    expire_in: str | None = Form(None),
    ingestor: UploadIngestor = Depends(get_ingestor),
):
    """Store a file and return its retrieval code."""
    result = await ingestor.ingest(document, burn_after=parse_burn_flag(burn_after), expire_in=expire_in)
    return {"code": result.code, "expires": result.expires}


@router.get("/meta/{code}", response_model=FileMetaResponse, responses={404: {"model": ErrorResponse}})
async def get_file_metadata(code: str, streamer: DownloadStreamer = Depends(get_streamer)):
    """Get file metadata by retrieval code."""
    record = await streamer.lookup(code)
    return {
        "name": record.original_name,
        "size": record.size,
        "type": record.mime_type,
        "uploaded_at": as_utc(record.created_at),
        "burn_after": record.burn_after,
    }


@router.get("/download/{code}", responses={404: {"model": ErrorResponse}})
async def download_file(code: str, streamer: DownloadStreamer = Depends(get_streamer)):
    """Stream the file as an attachment."""
    stream = await streamer.open(code)
    return BlobStreamResponse(stream)
