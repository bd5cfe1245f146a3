"""FastAPI application entry point for the Crossfire API.

This module configures and creates the FastAPI application with
CORS middleware, request-ID tracking, and structured logging.

Run with:
    uvicorn api.main:app --reload --app-dir backend
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import config
from middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from utils.logging import configure_logging

from .routes import router

# ---------------------------------------------------------------------------
# Bootstrap structured logging before anything else
# ---------------------------------------------------------------------------
configure_logging(
    json_logs=config.environment == "production",
    log_level=config.log_level,
)

logger = structlog.get_logger(__name__)

API_VERSION = "1.0.0"

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def allowed_origins() -> list[str]:
    """Default dev origins plus any from ``CORS_ALLOWED_ORIGINS``."""
    origins = list(DEFAULT_ALLOWED_ORIGINS)
    origins.extend(o.strip() for o in config.cors_allowed_origins.split(",") if o.strip())
    return origins


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    logger.info(
        "api_starting",
        version=API_VERSION,
        environment=config.environment,
        backends=sorted(config.backend_keys()),
    )
    if not config.backend_keys():
        logger.warning("no_backends_configured")

    logger.info("api_ready")

    yield

    # In-flight streams are cancelled by the server; debates have nothing to persist
    logger.info("api_shutdown_complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Crossfire API",
    description="Three-role claim debate engine - Believer, Skeptic and Judge argue a claim",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Middleware (order matters: last added is outermost) ---

# 1. Request ID tracking
app.add_middleware(RequestIDMiddleware)

# 2. CORS (outermost so preflight requests are answered first)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER],
)

# Include API routes
app.include_router(router, prefix="/api")
