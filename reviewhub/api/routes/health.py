"""Health check endpoints for the ReviewHub API.

Reports storage reachability and the scraper webhook circuit breaker.
"""

from datetime import datetime, timezone
import time
from typing import Optional
from uuid import uuid4

import structlog
from fastapi import APIRouter, Depends, HTTPException

from reviewhub import __version__
from reviewhub.api.dependencies import get_store
from reviewhub.api.models import HealthCheckResponse, HealthStatus
from reviewhub.config.settings import Settings, get_settings
from reviewhub.core.circuit_breaker import CircuitState, get_circuit_breaker
from reviewhub.core.exceptions import ReviewHubError
from reviewhub.storage.base import ReviewStore

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])

# Track server start time for uptime calculation
_server_start_time: Optional[float] = None


def set_server_start_time() -> None:
    """Set the server start time. Called on application startup."""
    global _server_start_time
    _server_start_time = time.time()


def get_uptime_seconds() -> Optional[float]:
    """Get server uptime in seconds."""
    if _server_start_time is None:
        return None
    return time.time() - _server_start_time


async def check_storage_health(store: ReviewStore, settings: Settings) -> HealthStatus:
    """Round-trip a lookup against the configured store."""
    start_time = time.time()
    try:
        await store.get_profile(uuid4())
        latency = (time.time() - start_time) * 1000
        return HealthStatus(
            status="healthy",
            latency_ms=round(latency, 2),
            message=f"Connected to {settings.storage_backend} store",
        )
    except ReviewHubError as e:
        latency = (time.time() - start_time) * 1000
        logger.error("storage_health_check_failed", error=e.message)
        return HealthStatus(
            status="unhealthy",
            latency_ms=round(latency, 2),
            message=f"Storage check failed: {e.message[:100]}",
        )


def check_webhook_health(settings: Settings) -> HealthStatus:
    """Scraper webhook status as seen by its circuit breaker."""
    if not settings.scraper_webhook_url:
        return HealthStatus(status="degraded", message="Scraper webhook URL not configured")

    breaker = get_circuit_breaker("scraper_webhook")
    if breaker.state == CircuitState.OPEN:
        return HealthStatus(
            status="degraded",
            message=f"Circuit open, retry in {breaker.time_until_recovery():.0f}s",
        )
    return HealthStatus(status="healthy", message=f"Circuit {breaker.state.value}")


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health Check",
    description="Check the health status of the API and its dependencies.",
)
async def health_check(
    settings: Settings = Depends(get_settings),
    store: ReviewStore = Depends(get_store),
) -> HealthCheckResponse:
    """
    Perform a health check of all system components.

    Returns the status of:
    - Storage (in-memory or Supabase)
    - Scraper webhook (circuit breaker state)
    """
    services = {
        "storage": await check_storage_health(store, settings),
        "scraper_webhook": check_webhook_health(settings),
    }

    statuses = [s.status for s in services.values()]
    if services["storage"].status == "unhealthy":
        overall_status = "unhealthy"
    elif all(s == "healthy" for s in statuses):
        overall_status = "healthy"
    else:
        overall_status = "degraded"

    return HealthCheckResponse(
        status=overall_status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        services=services,
        uptime_seconds=get_uptime_seconds(),
    )


@router.get(
    "/health/live",
    summary="Liveness Check",
    description="Simple liveness check for container orchestration.",
)
async def liveness() -> dict:
    """Returns 200 if the service is alive."""
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get(
    "/health/ready",
    summary="Readiness Check",
    description="Check if the service is ready to accept traffic.",
)
async def readiness(
    settings: Settings = Depends(get_settings),
    store: ReviewStore = Depends(get_store),
) -> dict:
    """Returns 200 only if storage is reachable."""
    storage_status = await check_storage_health(store, settings)

    if storage_status.status == "unhealthy":
        raise HTTPException(
            status_code=503,
            detail="Service not ready: storage unavailable",
        )

    return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
