"""FastAPI dependencies handing the lifecycle services to routes.

Usage in routes:
    from beam.dependencies import get_streamer

    @router.get("/meta/{code}")
    async def get_meta(code: str, streamer: DownloadStreamer = Depends(get_streamer)):
        ...
"""
from fastapi import Depends, Request

from beam.services.container import BeamServices
from beam.services.download_streamer import DownloadStreamer
from beam.services.upload_ingestor import UploadIngestor


def get_services(request: Request) -> BeamServices:
    return request.app.state.services


def get_ingestor(services: BeamServices = Depends(get_services)) -> UploadIngestor:
    return services.ingestor


def get_streamer(services: BeamServices = Depends(get_services)) -> DownloadStreamer:
    return services.streamer
