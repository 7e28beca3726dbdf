"""File request/response schemas."""
from datetime import datetime

from pydantic import BaseModel


class UploadResponse(BaseModel):
    code: str
    expires: str


class FileMetaResponse(BaseModel):
    name: str
    size: int
    type: str
    uploaded_at: datetime
    burn_after: bool


class ErrorResponse(BaseModel):
    error: str
