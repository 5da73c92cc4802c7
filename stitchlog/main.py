"""Main FastAPI application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from stitchlog import __version__
from stitchlog.config import config
from stitchlog.database import init_db
from stitchlog.errors import (
    CatalogError,
    CatalogNotConfiguredError,
    CatalogUnavailableError,
    ConflictError,
    CreationError,
    NotFoundError,
    PartialWriteError,
    StitchLogError,
    StorageUnavailableError,
    ValidationError,
)
from stitchlog.logging_config import configure_logging

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("stitchlog.access")

# Most specific first.
_ERROR_STATUS: tuple[tuple[type[StitchLogError], int], ...] = (
    (NotFoundError, 404),
    (ValidationError, 422),
    (ConflictError, 409),
    (PartialWriteError, 500),
    (CreationError, 500),
    (StorageUnavailableError, 503),
    (CatalogNotConfiguredError, 503),
    (CatalogUnavailableError, 503),
    (CatalogError, 502),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan manager."""
    await init_db()
    yield


configure_logging(debug=config.DEBUG)
config.ensure_media_dirs()


app = FastAPI(
    title="Stitch Log",
    description="Track knitting projects, their materials and progress",
    version=__version__,
    lifespan=lifespan,
)

# Blobs from the local store are served straight from MEDIA_ROOT.
if config.MEDIA_URL.startswith("/"):
    app.mount(
        config.MEDIA_URL,
        StaticFiles(directory=str(config.MEDIA_ROOT)),
        name="media",
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log one access line per request."""

    response = await call_next(request)
    client_host = "-"
    if request.client is not None:
        client_host = request.client.host or "-"

    access_logger.info(
        '%s - "%s %s" %s',
        client_host,
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


def status_code_for(exc: StitchLogError) -> int:
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return 500


@app.exception_handler(StitchLogError)
async def stitchlog_error_handler(
    request: Request, exc: StitchLogError
) -> JSONResponse:
    """Render service errors as JSON with a matching status code."""
    code = status_code_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=code, content=exc.to_dict())


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


from stitchlog.routes import catalog, media, projects  # noqa: E402

app.include_router(projects.router)
app.include_router(media.router)
app.include_router(catalog.router)
