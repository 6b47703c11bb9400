"""
Pastebin - Main FastAPI application.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pastebin.config import Settings, settings as default_settings
from pastebin.database import InMemoryStorage, PasteStorage, create_storage
from pastebin.errors import PastebinError
from pastebin.handler import PasteHandler, create_templates
from pastebin.routes import health, pastes

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def log_level(verbosity: int) -> int:
    """Map a verbosity level (number of -v's, so to speak) to a log level."""
    if verbosity <= 0:
        return logging.ERROR
    if verbosity == 1:
        return logging.WARNING
    if verbosity == 2:
        return logging.INFO
    return logging.DEBUG


def setup_logging(verbosity: int) -> None:
    logging.basicConfig(level=log_level(verbosity), format=LOG_FORMAT)


def create_app(storage: Optional[PasteStorage] = None, settings: Settings = default_settings) -> FastAPI:
    """
    Build the application.

    Args:
        storage: Storage backend; built from the settings if not given
        settings: Application settings
    """
    setup_logging(settings.VERBOSITY)
    if storage is None:
        storage = create_storage(settings)

    app = FastAPI(
        title="Pastebin",
        description="A minimal pastebin for arbitrary binary data",
        version="1.0.0",
        # Any single segment may be a paste id.
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Add CORS middleware (optional, for cross-origin requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.handler = PasteHandler(
        storage=storage,
        templates=create_templates(settings.TEMPLATES_DIR),
        url_prefix=settings.APP_DOMAIN,
        default_ttl=timedelta(seconds=settings.DEFAULT_TTL_SECONDS),
        static_dir=settings.STATIC_DIR,
    )

    @app.exception_handler(PastebinError)
    async def pastebin_error_handler(request: Request, exc: PastebinError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
        else:
            logger.info(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_detail})

    @app.on_event("startup")
    async def startup_event():
        """Startup event handler."""
        logger.info("Pastebin application starting...")

        # Log storage status
        if isinstance(storage, InMemoryStorage):
            logger.warning("STORAGE: Using IN-MEMORY storage")
            logger.warning("   Data will NOT persist across server restarts!")
        else:
            logger.info(f"STORAGE: Using {storage.name} backend")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Shutdown event handler."""
        logger.info("Pastebin application shutting down...")

    # Include route modules; the catch-all paste routes go last.
    app.include_router(health.router)
    app.include_router(pastes.router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pastebin.main:create_app",
        factory=True,
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
    )
