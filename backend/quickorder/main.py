"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quickorder import __version__
from quickorder.api.routes import api_router
from quickorder.api.routes import images
from quickorder.config import settings
from quickorder.database import close_db, init_db
from quickorder.errors import (
    NotFound,
    QuickOrderError,
    RemoteFetchError,
    StorageError,
    SyncInProgressError,
)
from quickorder.middleware import CacheMiddleware

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[QuickOrderError], int] = {
    NotFound: 404,
    SyncInProgressError: 409,
    RemoteFetchError: 502,
    StorageError: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await init_db()
    logger.info(f"QuickOrder {__version__} started, data in {settings.data_dir}")

    yield

    await close_db()


app = FastAPI(
    title="QuickOrder",
    description="Catalog mirror for the DistriNaranjos storefronts",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(CacheMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Cache-Control"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    return response


@app.exception_handler(QuickOrderError)
async def quickorder_error_handler(request: Request, exc: QuickOrderError) -> JSONResponse:
    """Map domain errors to HTTP statuses with a plain message body."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


app.include_router(api_router, prefix="/api/v1")
app.include_router(images.router, tags=["Media"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "QuickOrder",
        "version": __version__,
        "docs": "/api/docs",
    }


def run() -> None:
    import uvicorn

    uvicorn.run("quickorder.main:app", host=settings.host, port=settings.port)
