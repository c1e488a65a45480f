"""
Tubely FastAPI Application Entry Point

Builds the Tubely API application:
- Structured logging configured from Settings at startup
- MongoDB connection lifecycle via the FastAPI lifespan
- CORS and request logging middleware
- API router registration under /api/v1
- Thumbnail assets served from the assets root under /assets
- JSON error responses for the API error taxonomy and unhandled errors
- Health and readiness endpoints

API Structure:
    /api/v1/videos/{video_id}/thumbnail  - Thumbnail upload
    /api/v1/videos/{video_id}/video      - Video upload
    /api/v1/videos[/{video_id}]          - Video record reads
    /assets/{name}                       - Uploaded thumbnails

Usage:
    uvicorn tubely.main:app --host 0.0.0.0 --port 8091 --reload
"""

import logging
import time
import uuid

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tubely import __version__
from tubely.api.v1 import api_router
from tubely.config import get_settings
from tubely.core.database import close_db, get_db_client, init_db
from tubely.core.exceptions import register_exception_handlers
from tubely.utils.logger import setup_logging


# Configure module logger
logger = logging.getLogger(__name__)

# Status codes >= 400 indicate errors
HTTP_ERROR_THRESHOLD = 400


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Startup: configure logging, create the assets root, connect MongoDB.
    Shutdown: close MongoDB.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info("=" * 60)
    logger.info("Tubely API Starting...")
    logger.info("=" * 60)
    logger.info("Environment: %s", settings.app_env)
    logger.info("Host: %s:%s", settings.host, settings.port)
    logger.info("Assets root: %s", settings.assets_root)
    logger.info("Video bucket: %s (%s)", settings.s3_bucket_name, settings.s3_region)
    logger.info("Fast start: %s", settings.video_fast_start)

    settings.assets_path.mkdir(parents=True, exist_ok=True)

    try:
        await init_db(settings)
    except RuntimeError:
        logger.exception("Failed to initialize MongoDB")
        raise

    logger.info("Tubely API Ready to Accept Requests")

    yield

    logger.info("Tubely API Shutting Down...")
    await close_db()
    logger.info("Tubely API Shutdown Complete")


# =============================================================================
# FastAPI Application Instance
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title="Tubely API",
    description="Upload thumbnails and videos for your Tubely video records.",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)

register_exception_handlers(app)


# =============================================================================
# Middleware Configuration
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Log each request with its status and duration.

    Adds X-Request-ID (taken from the request when present) and
    X-Process-Time headers to the response.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start_time = time.perf_counter()

    logger.debug("Request started: %s %s [Request-ID: %s]", request.method, request.url.path, request_id)

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request failed: %s %s [Request-ID: %s]",
            request.method,
            request.url.path,
            request_id,
        )
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.INFO if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed: %s %s [Status: %s] [Time: %sms] [Request-ID: %s]",
        request.method,
        request.url.path,
        response.status_code,
        process_time_ms,
        request_id,
        extra={
            "request_id": request_id,
            "status_code": response.status_code,
            "duration_ms": process_time_ms,
        },
    )
    return response


# =============================================================================
# Routes
# =============================================================================

app.include_router(api_router, prefix="/api/v1")

# The directory is created during startup; check_dir=False lets the app be
# imported before it exists.
app.mount(
    "/assets",
    StaticFiles(directory=_settings.assets_root, check_dir=False),
    name="assets",
)


@app.get("/", tags=["root"], summary="API Root")
async def root() -> dict[str, Any]:
    return {
        "name": "Tubely API",
        "version": __version__,
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        },
        "api_prefix": "/api/v1",
        "endpoints": {
            "videos": "/api/v1/videos",
            "assets": "/assets",
        },
    }


@app.get("/health", tags=["health"], summary="Health Check")
async def health_check() -> dict[str, Any]:
    """Liveness probe. Does not touch any dependency."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "service": "Tubely API",
    }


@app.get("/ready", tags=["health"], summary="Readiness Check")
async def readiness_check() -> JSONResponse:
    """
    Readiness probe. Returns 503 until MongoDB answers a ping.
    """
    try:
        mongodb_ok = await get_db_client().ping()
    except RuntimeError:
        mongodb_ok = False

    is_ready = mongodb_ok
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "ready": is_ready,
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": {"mongodb": mongodb_ok},
        },
    )


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(404)
async def not_found_handler(request: Request, _exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "not_found",
            "message": f"The requested path '{request.url.path}' was not found",
            "status_code": status.HTTP_404_NOT_FOUND,
        },
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Generic 500 for unhandled exceptions. Details stay in the server log."""
    logger.error(
        "Internal server error on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        },
    )


# =============================================================================
# Main Execution Block
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "tubely.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level,
    )
