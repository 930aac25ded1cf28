"""
Catalog Ingest API
Chunked image uploads, CSV product import and image attachment.

Run with:
    uvicorn catalog.api.main:app
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .errors import setup_error_handlers
from .middleware import RequestLoggingMiddleware
from .routers import health_router, products_router, uploads_router
from ..config.settings import Settings, get_settings
from ..db.session import init_db

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables before serving."""
    init_db()
    logger.info(f"{app.title} {app.version} ready")
    yield
    logger.info(f"{app.title} stopping")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. Settings default to the process-wide ones."""
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan,
    )

    # Added last, so CORS wraps the request logger
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    setup_error_handlers(app)

    for router in (health_router, uploads_router, products_router):
        app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "catalog.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
