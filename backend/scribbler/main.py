"""
Smart Scribbler Backend — FastAPI Application Factory
=======================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, routers and the
       static browser client; `app` is the module-level instance uvicorn loads.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware:  Request ID → Access log → GZip → CORS       │
    │                                                           │
    │  Routes:                                                  │
    │    /api/auth/url  /auth/callback  /api/google-doc/content │
    │    /api/notes/{images,text,google-doc}  /api/diagrams     │
    │    /api/preview  /api/export/{pdf,pptx}  /health          │
    │    /  (static client)                                     │
    │                                                           │
    │  Exception Handlers:                                      │
    │    Validation→400  GoogleAuth→401  GoogleDocs→502         │
    │    LLM→503  Export→500  anything else→500                 │
    └───────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from scribbler import __version__
from scribbler.config import settings
from scribbler.exceptions import (
    ExportError,
    GoogleAuthError,
    GoogleDocsError,
    LLMServiceError,
    ScribblerError,
    ValidationError,
)
from scribbler.middleware.logging import RequestLoggingMiddleware
from scribbler.middleware.request_id import RequestIDMiddleware, request_id_var
from scribbler.routes import auth, export, health, notes

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2026-01-15T12:00:00 [INFO] scribbler.access: POST /api/notes/text 200 812.4ms [a1b2c3d4]
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request noise; our access log covers it
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, configuration report. Shutdown: log only.

    A missing Gemini key does not stop the server: /health reports it and
    pipeline calls answer 503 until it is set.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Smart Scribbler %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    if settings.google_oauth_configured:
        logger.info("Google OAuth redirect URI: %s", settings.oauth_redirect_uri)
    else:
        logger.warning(
            "GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set; Google Docs import is disabled"
        )

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Smart Scribbler shutting down.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details or None,
            "request_id": request_id_var.get(""),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the ScribblerError hierarchy to JSON error responses.

    Messages are user-facing. Context is returned as "details" only for
    client errors; upstream and server failures log it instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(GoogleAuthError)
    async def handle_google_auth_error(request: Request, exc: GoogleAuthError):
        logger.warning("[%s] Google auth error: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(401, "google_auth_error", exc.message)

    @app.exception_handler(GoogleDocsError)
    async def handle_google_docs_error(request: Request, exc: GoogleDocsError):
        logger.error("[%s] Google Docs error: %s | %s", request_id_var.get(""), exc.message, exc.context)
        details = {"upstream_status": exc.status_code} if exc.status_code else None
        return _error_response(502, "google_docs_error", exc.message, details)

    @app.exception_handler(LLMServiceError)
    async def handle_llm_error(request: Request, exc: LLMServiceError):
        logger.error("[%s] LLM service error: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(503, "llm_service_error", exc.message)

    @app.exception_handler(ExportError)
    async def handle_export_error(request: Request, exc: ExportError):
        logger.error("[%s] Export error: %s | %s", request_id_var.get(""), exc.message, exc.context)
        details = {"format": exc.export_format} if exc.export_format else None
        return _error_response(500, "export_error", exc.message, details)

    @app.exception_handler(ScribblerError)
    async def handle_scribbler_error(request: Request, exc: ScribblerError):
        logger.error("[%s] Application error: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Smart Scribbler API",
        description=(
            "Turns photographed handwritten notes or a Google Doc into elaborated, "
            "structured notes with AI-drawn diagrams, exported as PDF or PowerPoint."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(export.router)
    app.include_router(health.router)

    # Mounted last so API routes win over the catch-all
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="client")

    return app


app = create_app()
