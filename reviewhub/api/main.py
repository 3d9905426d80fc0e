"""ReviewHub API - Main FastAPI Application.

This module provides the main FastAPI application for ReviewHub.
It includes:
- CORS and API key middleware
- API versioning (/api/v1)
- Health check endpoints and the Prometheus /metrics mount
- Ingestion, market identifier, analytics and review workflow endpoints

Usage:
    # Run with uvicorn
    uvicorn reviewhub.api.main:app --reload
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import structlog
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from reviewhub import __version__
from reviewhub.api.dependencies import close_dependencies, reset_dependencies
from reviewhub.api.models import ErrorResponse, ValidationErrorDetail, ValidationErrorResponse
from reviewhub.api.routes.analytics import router as analytics_router
from reviewhub.api.routes.health import router as health_router, set_server_start_time
from reviewhub.api.routes.identifiers import router as identifiers_router
from reviewhub.api.routes.ingestion import router as ingestion_router
from reviewhub.api.routes.reviews import router as reviews_router
from reviewhub.config.settings import get_settings
from reviewhub.core.exceptions import (
    BatchValidationError,
    ConfigurationError,
    NotFoundError,
    PermanentError,
    RetryableError,
    ReviewHubError,
)
from reviewhub.monitoring.metrics import get_metrics_app

logger = structlog.get_logger(__name__)

API_TITLE = "ReviewHub API"
API_DESCRIPTION = """
## Review ingestion, normalization and analytics

ReviewHub accepts review batches scraped from Google Maps, Facebook,
TripAdvisor and Booking.com, normalizes them into one review model and
serves rolling-window analytics per business profile.

### Getting Started

1. **Configure an identifier**: `PUT /api/v1/market-identifiers` binds a place,
   page or listing to an owner and creates its business profile
2. **Ingest**: `POST /api/v1/ingest` with the scraper's records
3. **Analyze**: `GET /api/v1/analytics/{business_profile_id}/{period_key}`

### Authentication

Set `API_KEY_ENABLED=true` and `API_KEY=your-secret-key` to require the
X-API-Key header on all requests.
"""


# =============================================================================
# API Key Authentication Middleware
# =============================================================================


class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Middleware to validate API key for all requests except health/docs endpoints.

    Enable by setting API_KEY_ENABLED=true and API_KEY=<secret> in environment.
    """

    # Endpoints that don't require authentication
    PUBLIC_PATHS = {
        "/",
        "/health",
        "/health/live",
        "/health/ready",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/metrics",
        "/metrics/",
    }

    async def dispatch(self, request: Request, call_next):
        settings = get_settings()

        if not settings.api_key_enabled:
            return await call_next(request)

        if request.url.path in self.PUBLIC_PATHS:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key")
        expected_key = settings.api_key.get_secret_value() if settings.api_key else None

        if not expected_key:
            logger.error("api_key_enabled_but_not_set")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Server misconfiguration: API key authentication enabled but no key configured"},
            )

        if not api_key:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Missing X-API-Key header"},
            )

        if api_key != expected_key:
            logger.warning("invalid_api_key_attempt", path=request.url.path)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Invalid API key"},
            )

        return await call_next(request)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    - Startup: record start time for uptime reporting
    - Shutdown: close the webhook HTTP client, drop singletons
    """
    settings = get_settings()
    logger.info(
        "application_starting",
        environment=settings.app_env,
        storage_backend=settings.storage_backend,
        version=__version__,
    )
    set_server_start_time()

    yield

    logger.info("application_stopping")
    await close_dependencies()
    reset_dependencies()
    logger.info("application_stopped")


# =============================================================================
# Exception Handlers
# =============================================================================


def _error_response(
    request: Request, status_code: int, error: str, exc: ReviewHubError
) -> JSONResponse:
    response = ErrorResponse(
        error=error,
        message=exc.message,
        detail=exc.details or None,
        path=request.url.path,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(request, status.HTTP_404_NOT_FOUND, "not_found", exc)


async def batch_validation_handler(request: Request, exc: BatchValidationError) -> JSONResponse:
    logger.warning("batch_rejected", path=request.url.path, error=exc.message)
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "invalid_batch", exc)


async def permanent_error_handler(request: Request, exc: PermanentError) -> JSONResponse:
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "bad_request", exc)


async def retryable_error_handler(request: Request, exc: RetryableError) -> JSONResponse:
    logger.error("upstream_unavailable", path=request.url.path, error=exc.message)
    return _error_response(request, status.HTTP_503_SERVICE_UNAVAILABLE, "service_unavailable", exc)


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("configuration_error", path=request.url.path, error=exc.message)
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "configuration_error", exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with detailed response."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append(ValidationErrorDetail(
            field=field,
            message=error["msg"],
            value=error.get("input"),
        ))

    response = ValidationErrorResponse(
        errors=errors,
        timestamp=datetime.now(timezone.utc),
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=response.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )

    response = ErrorResponse(
        error="internal_server_error",
        message="An unexpected error occurred",
        detail=str(exc) if get_settings().debug else None,
        path=request.url.path,
        timestamp=datetime.now(timezone.utc),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=response.model_dump(mode="json"),
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "Health", "description": "System health and status endpoints"},
            {"name": "Ingestion", "description": "Scraped review batch ingestion"},
            {
                "name": "Market Identifiers",
                "description": "Bind owners to platform identifiers and trigger scraping",
            },
            {"name": "Analytics", "description": "Rolling-window metrics and distributions"},
            {"name": "Reviews", "description": "Review workflow: read, important, reply"},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "Accept"],
    )
    app.add_middleware(APIKeyMiddleware)

    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(BatchValidationError, batch_validation_handler)
    app.add_exception_handler(PermanentError, permanent_error_handler)
    app.add_exception_handler(RetryableError, retryable_error_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        return {
            "name": API_TITLE,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "api": "/api/v1",
        }

    app.include_router(health_router)
    app.mount("/metrics", get_metrics_app())

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(ingestion_router)
    api_v1_router.include_router(identifiers_router)
    api_v1_router.include_router(analytics_router)
    api_v1_router.include_router(reviews_router)
    app.include_router(api_v1_router)

    return app


app = create_app()
