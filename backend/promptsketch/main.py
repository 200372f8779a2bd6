"""
PromptSketch Backend - FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       wired to one Settings object and one UpstreamClient.
Who:   Called by uvicorn to start the server (uvicorn promptsketch.main:app)
       and by the test suite with fake settings and a mock transport.
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────────────┐
    │                        FastAPI App                          │
    │                                                             │
    │  Middleware Chain:                                          │
    │  ┌────────────┐ ┌────────┐ ┌─────────┐ ┌──────┐ ┌─────────┐ │
    │  │ Well-Known │→│ Req ID │→│ Logging │→│ CORS │→│Body size│ │
    │  └────────────┘ └────────┘ └─────────┘ └──────┘ └─────────┘ │
    │                                                             │
    │  Routes:                                                    │
    │  /api/chat  /api/openai/{chat,completion,describe}          │
    │  /api/imgbb/upload  /api/stability/generate  /health        │
    │                                                             │
    │  Exception Handlers → {"error": "..."}:                     │
    │  Validation→400 │ Config→500 │ Transport→500 │ Shape→500    │
    │  UpstreamRejected→provider status                           │
    └─────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   configure logging, warn about missing provider credentials
    Shutdown:  close the upstream HTTP client (releases pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptsketch import __version__
from promptsketch.config import Settings
from promptsketch.exceptions import (
    ConfigurationError,
    PromptSketchError,
    UpstreamRejectedError,
    UpstreamShapeError,
    UpstreamTransportError,
    ValidationError,
)
from promptsketch.middleware.body_size import BodySizeLimitMiddleware
from promptsketch.middleware.logging import RequestLoggingMiddleware
from promptsketch.middleware.request_id import RequestIDMiddleware, request_id_var
from promptsketch.middleware.well_known import WellKnownProbeMiddleware
from promptsketch.routes import chat, health, imgbb, openai, stability
from promptsketch.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] promptsketch.access: POST /api/chat 200 ...
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # httpx logs every request URL at INFO; the upstream client logs its own line
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("PromptSketch Backend %s starting up...", __version__)

    # Missing keys only disable the routes that need them; those routes
    # answer 500 with a configuration error until the key is set.
    for env_name in settings.missing_credentials():
        logger.warning("%s is not set; routes using it will return a configuration error", env_name)

    logger.info("Upstream timeout: %.0fs", settings.upstream_timeout)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("PromptSketch Backend shutting down...")
    await app.state.upstream.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for the uniform error envelope.

    Handler hierarchy:
        ValidationError          → 400
        RequestValidationError   → 400 (FastAPI body/form parsing)
        ConfigurationError       → 500, names the missing setting in the log only
        UpstreamTransportError   → 500, generic message, raw error in the log only
        UpstreamShapeError       → 500
        UpstreamRejectedError    → provider's status, provider's message
        HTTPException            → its own status (404 unknown route, 405, ...)
        Exception (fallback)     → 500

    The body is always {"error": "<message>"}; nothing else is returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return _error(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        message = describe_request_errors(exc.errors())
        logger.warning("[%s] Request validation error: %s", rid, message)
        return _error(400, message)

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(request: Request, exc: ConfigurationError):
        rid = request_id_var.get("")
        logger.error("[%s] Configuration error: %s is not set", rid, exc.context.get("setting", "?"))
        return _error(500, exc.message)

    @app.exception_handler(UpstreamTransportError)
    async def handle_transport_error(request: Request, exc: UpstreamTransportError):
        rid = request_id_var.get("")
        logger.error("[%s] Upstream transport error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, exc.message)

    @app.exception_handler(UpstreamShapeError)
    async def handle_shape_error(request: Request, exc: UpstreamShapeError):
        rid = request_id_var.get("")
        logger.error("[%s] Upstream shape error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, exc.message)

    @app.exception_handler(UpstreamRejectedError)
    async def handle_rejected_error(request: Request, exc: UpstreamRejectedError):
        rid = request_id_var.get("")
        logger.warning(
            "[%s] %s rejected request: %d %s",
            rid,
            exc.provider,
            exc.status_code,
            exc.message,
        )
        return _error(exc.status_code, exc.message)

    @app.exception_handler(PromptSketchError)
    async def handle_app_error(request: Request, exc: PromptSketchError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error(500, "An unexpected error occurred")


def describe_request_errors(errors) -> str:
    """
    One readable sentence for FastAPI's request validation errors.

    Only the first error is described:
        missing / wrong type on a field  → "Missing or invalid <field>"
        body not a JSON object           → "Request body must be a JSON object"
    """
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [part for part in first.get("loc", ()) if part not in ("body", "query", "form")]
    if first.get("type") == "json_invalid":
        return "Request body must be valid JSON"
    if not location:
        return "Request body must be a JSON object"
    field = next((part for part in location if isinstance(part, str)), str(location[0]))
    return f"Missing or invalid {field}"


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:  Configuration to use. Defaults to Settings() from the
                   environment / .env.
        transport: httpx transport for provider calls. Tests pass
                   httpx.MockTransport; production leaves it None.
    """
    settings = settings or Settings()

    app = FastAPI(
        title="PromptSketch API",
        description=(
            "Backend for the PromptSketch sketch-to-image assistant. Proxies chat, "
            "image description, image hosting and image generation to OpenAI, "
            "ImgBB and Stability AI."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.upstream = UpstreamClient(timeout=settings.upstream_timeout, transport=transport)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: WellKnown → RequestID → Logging → CORS → BodySize
    app.add_middleware(BodySizeLimitMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(WellKnownProbeMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(chat.router)
    app.include_router(openai.router)
    app.include_router(imgbb.router)
    app.include_router(stability.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `promptsketch.main:app` to be importable
app = create_app()
