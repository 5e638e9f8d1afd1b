"""
MemeStudio Backend - FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       uvicorn serves `memestudio.main:app`.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware: Request ID → Rate Limit → Logging → GZip/CORS│
    │                                                           │
    │  Routes:                                                  │
    │    /api/templates   listing, preview, detail, upload,     │
    │                     status, favorite                      │
    │    /api/memes       create, mine, popular, like, delete   │
    │    /health                                                │
    │                                                           │
    │  Exception handlers → {success: false, message, code}     │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, optional catalog seed
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from memestudio import __version__
from memestudio.config import settings
from memestudio.database import async_session_factory, dispose_engine
from memestudio.exceptions import MemeStudioError, RateLimitExceededError, SeedingError
from memestudio.middleware.logging import RequestLoggingMiddleware
from memestudio.middleware.rate_limit import RateLimitMiddleware
from memestudio.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware, request_id_var
from memestudio.routes import health, memes, templates
from memestudio.services.seeder import catalog_seeder

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure stdout logging for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] memestudio.services.seeder [a1b2c3d4] message
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party libraries are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def seed_catalog_on_startup() -> None:
    """Seed an empty catalog before serving; a failure is logged, not fatal."""
    async with async_session_factory() as session:
        try:
            inserted = await catalog_seeder.seed_if_empty(session)
            await session.commit()
        except SeedingError as e:
            await session.rollback()
            logger.error("Startup seed failed (%s); listing requests will retry", e.context)
            return
    logger.info("Startup seed inserted %d templates", inserted)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("MemeStudio Backend %s starting up (%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report the problem
        logger.error("Configuration error: %s", str(e))

    if settings.seed_on_startup:
        await seed_catalog_on_startup()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("MemeStudio Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(
    message: str,
    code: str,
    detail: Optional[Any] = None,
) -> Dict[str, Any]:
    """
    Uniform failure payload. `error` carries diagnostics and is only
    included when ENVIRONMENT=development.
    """
    body: Dict[str, Any] = {
        "success": False,
        "message": message,
        "code": code,
        "request_id": request_id_var.get("") or None,
    }
    if settings.expose_error_details and detail:
        body["error"] = detail
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler mapping:
        MemeStudioError subclasses → their own status_code and code
        RateLimitExceededError     → 429 with Retry-After
        RequestValidationError     → 400 validation_error
        HTTPException              → its status, code 'http_error'
        Exception                  → 500 server_error
    """

    @app.exception_handler(MemeStudioError)
    async def handle_app_error(request: Request, exc: MemeStudioError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.code, exc.context),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = first.get("msg", "Invalid request")
        if field:
            message = f"{field}: {message}"
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return JSONResponse(
            status_code=400,
            content=error_body(message, "validation_error", [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors
            ]),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(
                "Something went wrong!",
                "server_error",
                {"type": type(exc).__name__, "detail": str(exc)},
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="MemeStudio API",
        description=(
            "Meme creation backend: a cached, searchable template catalog seeded "
            "from ImgFlip, user uploads, memes, likes and favorites."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition:
    # RequestID → RateLimit → Logging → GZip → CORS
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
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(templates.router)
    app.include_router(memes.router)
    app.include_router(health.router)

    return app


app = create_app()
