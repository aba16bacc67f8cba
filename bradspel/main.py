"""
Bradspel Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (uvicorn bradspel.main:app) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware:  RateLimit → RequestID → Logging → GZip    │
    │                                            → CORS       │
    │                                                         │
    │  Routes:                                                │
    │  ┌──────────────┐ ┌──────────────┐ ┌─────────────────┐  │
    │  │ lend/return  │ │ order-game   │ │ games / files   │  │
    │  └──────────────┘ └──────────────┘ └─────────────────┘  │
    │  ┌──────────────┐ ┌──────────────────────────────────┐  │
    │  │ auth         │ │ / · /ping · /health              │  │
    │  └──────────────┘ └──────────────────────────────────┘  │
    │                                                         │
    │  Exception Handlers:                                    │
    │  Validation→400 │ Auth→401/403 │ NotFound→404 │ DB→500  │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, storage directory, optional
              schema bootstrap (DB_AUTO_CREATE)
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from bradspel import __version__
from bradspel.config import settings
from bradspel.database import dispose_engine, ensure_schema
from bradspel.exceptions import (
    AuthError,
    BradspelError,
    FileStorageError,
    NotFoundError,
    PersistenceError,
    RateLimitExceededError,
    ValidationError,
)
from bradspel.middleware.logging import RequestLoggingMiddleware
from bradspel.middleware.rate_limit import RateLimitMiddleware
from bradspel.middleware.request_id import RequestIDMiddleware, get_request_id, request_id_var
from bradspel.routes import auth, games, health, lending, orders

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2026-10-19T12:00:00 [INFO] bradspel.services.lending_service: ...
    Output goes to stdout, which the container runtime collects.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every connection and statement at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Bradspel Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and the public menu still work
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    if settings.db_auto_create:
        await ensure_schema()
        logger.info("Database schema ensured (DB_AUTO_CREATE)")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Bradspel Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None, request_id=None) -> dict:
    body = {
        "error": error,
        "message": message,
        "request_id": request_id or request_id_var.get(""),
    }
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the shared error body
    {error, message, details?, request_id}.

        ValidationError, RequestValidationError → 400
        AuthError                               → 401 / 403
        NotFoundError                           → 404
        RateLimitExceededError                  → 429
        PersistenceError, FileStorageError      → 500 (generic message)
        BradspelError, Exception                → 500

    5xx responses never carry context; it is logged server-side instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Request parsing failed (body or path id): 400, like our own validation."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [part for part in first.get("loc", ()) if part not in ("body", "path")]
        field = next((str(part) for part in reversed(loc) if isinstance(part, str)), None)
        message = first.get("msg", "Invalid request")
        if message.startswith("Value error, "):
            # Raised by our normalization helpers; the message already names the field
            message = message[len("Value error, "):]
        elif loc:
            message = f"{'.'.join(str(part) for part in loc)}: {message}"
        logger.warning("[%s] Request validation error: %s", request_id_var.get(""), message)
        details = {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]}
        if field:
            details["field"] = field
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, details),
        )

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                "unauthorized" if exc.status_code == 401 else "forbidden", exc.message
            ),
            headers=headers,
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        rid = request_id_var.get("")
        logger.error("[%s] Persistence error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error", "An internal error occurred. Please try again later."
            ),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(BradspelError)
    async def handle_application_error(request: Request, exc: BradspelError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = get_request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
                request_id=rid,
            ),
            headers={"X-Request-ID": rid},
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Bradspel API",
        description=(
            "Backend for a board game café: catalog, lending and returns, "
            "table orders, and staff authentication."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware runs in reverse order of addition: the last one added
    # (RateLimit) sees the request first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(lending.router)
    app.include_router(orders.router)
    app.include_router(games.router)
    app.include_router(auth.router)

    return app


# uvicorn bradspel.main:app
app = create_app()
