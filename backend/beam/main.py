"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from beam import __version__
from beam.config import Settings, settings as default_settings
from beam.errors import BeamError, ValidationError
from beam.logging_config import configure_logging
from beam.routes.files import router as files_router
from beam.services.container import BeamServices

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build services, reconcile storage, start the sweeper; tear down on exit."""
        services = BeamServices(settings)
        await services.start()
        app.state.services = services
        logger.info(f"Beam is live on http://{settings.API_HOST}:{settings.API_PORT}")

        yield

        await services.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="Ephemeral file exchange with short retrieval codes.",
        lifespan=lifespan,
    )

    # CORS
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    @app.exception_handler(BeamError)
    async def beam_error_handler(request: Request, exc: BeamError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc.__cause__)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # A "document" field that is not a file counts as no file at all
        if any("document" in error.get("loc", ()) for error in exc.errors()):
            error = ValidationError("No file received")
        else:
            error = ValidationError("Invalid request")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/api/health")
    async def health_check(request: Request):
        """Verify API and database connectivity."""
        try:
            await request.app.state.services.store.ping()
            return {"status": "ok", "database": "connected"}
        except Exception as e:
            return {"status": "error", "database": str(e)}

    app.include_router(files_router)

    # Front-end last so /api routes win
    static_dir = Path(settings.STATIC_DIR)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


configure_logging(default_settings.LOG_LEVEL)
app = create_app()
