"""
Archives Transfer Service — FastAPI Application Factory
=========================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app(settings) builds the ServiceContext,
       registers middleware, exception handlers and routes, and returns a
       configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn transfer_service.main:app)
       and by tests with their own Settings.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  app.state.context = ServiceContext(                │
    │      settings, database, uploads, reference)        │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────┐ ┌──────┐ ┌──────┐         │
    │  │ Req ID   │→│ Logging │→│ GZip │→│ CORS │         │
    │  └──────────┘ └─────────┘ └──────┘ └──────┘         │
    │                                                     │
    │  Routes:                                            │
    │  GET /identifier  GET /genres  POST /upload         │
    │  GET /version     GET /healthcheck                  │
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400  Conflict→409  Incomplete→422       │
    │  FileStorage→500  Database→500                      │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   configure logging, log storage root and store host
    Shutdown:  dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from transfer_service import __version__
from transfer_service.config import Settings
from transfer_service.context import ServiceContext
from transfer_service.exceptions import (
    ConflictError,
    DatabaseError,
    FileStorageError,
    IncompleteUploadError,
    ValidationError,
)
from transfer_service.middleware.logging import RequestLoggingMiddleware
from transfer_service.middleware.request_id import RequestIDMiddleware, request_id_var
from transfer_service.routes import health, submissions, upload

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiomysql").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    context: ServiceContext = app.state.context

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(context.settings)
    logger.info("=" * 60)
    logger.info("Archives Transfer Service v%s starting up...", __version__)
    logger.info("Upload directory: %s", context.uploads.upload_root)
    logger.info("Reference store: %s", context.database.host)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Archives Transfer Service shutting down...")
    await context.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and a common JSON body.

    Handler hierarchy:
        ValidationError        → 400 Bad Request
        RequestValidationError → 400 Bad Request (malformed form part)
        ConflictError          → 409 Conflict
        IncompleteUploadError  → 422 Unprocessable Entity
        FileStorageError       → 500 Internal Server Error (cause in message)
        DatabaseError          → 500 Internal Server Error (driver message)
        Exception (fallback)   → 500 Internal Server Error (generic message)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        # e.g. a text field sent where the file part belongs
        rid = request_id_var.get("")
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = [str(part) for part in first.get("loc", ())]
        field = location[-1] if location else ""
        message = f"Invalid form field '{field}': {first.get('msg', 'malformed request')}"
        logger.warning("[%s] Validation error: %s", rid, message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": message,
                "details": {"field": field, "location": location},
                "request_id": rid,
            },
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        rid = request_id_var.get("")
        logger.warning("[%s] Conflict: %s", rid, exc.message)
        return JSONResponse(
            status_code=409,
            content={
                "error": "conflict",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(IncompleteUploadError)
    async def handle_incomplete_upload(request: Request, exc: IncompleteUploadError):
        rid = request_id_var.get("")
        logger.error("[%s] Incomplete upload: %s", rid, exc.message)
        return JSONResponse(
            status_code=422,
            content={
                "error": "incomplete_upload",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "storage_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "database_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Explicit settings (tests); read from the environment if None.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Archives Transfer Service",
        description=(
            "Receives archival submissions: issues submission identifiers, "
            "lists genres, and accepts whole or chunked file uploads."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = ServiceContext.from_settings(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(submissions.router)
    app.include_router(upload.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = Settings()
    uvicorn.run(
        "transfer_service.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `transfer_service.main:app` to be importable
app = create_app()
