import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from video_markup.clients.oembed_client import OEmbedClient
from video_markup.config import Settings, settings as default_settings
from video_markup.database import Database
from video_markup.errors import MarkupError, ValidationError
from video_markup.logging_setup import configure_logging
from video_markup.routes import audio, markers, posts, sessions
from video_markup.services.storage import AttachmentStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create SQLite tables and the audio directory on startup.

    Connections are per request, so there is nothing to close on shutdown.
    """
    await app.state.db.init()
    app.state.attachments.ensure_dir()
    logger.info("Database ready at %s", app.state.db.path)
    yield
    logger.info("Shutting down")


def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
    return f"{field}: {err.get('msg', 'invalid value')}" if field else err.get("msg", "Invalid request")


def create_app(
    settings: Settings | None = None,
    metadata_client: OEmbedClient | None = None,
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level, settings.log_file)

    app = FastAPI(
        title="video-markup",
        description="Shared video timeline markers with creator/helper posts",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = Database(settings.db_path)
    app.state.attachments = AttachmentStorage(settings.audio_dir)
    app.state.metadata_client = metadata_client or OEmbedClient(
        settings.oembed_endpoint, settings.oembed_timeout_seconds
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(MarkupError)
    async def handle_markup_error(request: Request, exc: MarkupError) -> JSONResponse:
        logger.info(
            "%s %s -> %d %s: %s",
            request.method, request.url.path, exc.status_code, exc.code, exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        err = ValidationError(_first_error_message(exc))
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unexpected error on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "internal_error"},
        )

    app.include_router(sessions.router)
    app.include_router(markers.router)
    app.include_router(posts.router)
    app.include_router(audio.router)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
