"""
Prometheus metrics for ReviewHub observability.

Usage:
    from reviewhub.monitoring.metrics import record_ingested_records

    record_ingested_records("booking", accepted=12, rejected=3, duplicates=1)

    # Or use the tracking context manager
    with track_snapshot_recompute():
        snapshots = aggregator.compute_all(reviews, metadata, as_of)
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.applications import Starlette
from starlette.responses import Response
from starlette.routing import Route


# =============================================================================
# Metric Definitions
# =============================================================================

INGESTED_RECORDS_TOTAL = Counter(
    "reviewhub_ingested_records_total",
    "Scraped records processed by the ingestion pipeline",
    ["platform", "outcome"],
)

INGESTION_BATCH_DURATION = Histogram(
    "reviewhub_ingestion_batch_duration_seconds",
    "Duration of a full ingestion batch in seconds",
    ["platform"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

SNAPSHOT_RECOMPUTE_TOTAL = Counter(
    "reviewhub_snapshot_recompute_total",
    "Periodical metric recomputations",
    ["status"],
)

SNAPSHOT_RECOMPUTE_DURATION = Histogram(
    "reviewhub_snapshot_recompute_duration_seconds",
    "Duration of recomputing all periodical metrics for one profile",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

WEBHOOK_DELIVERIES_TOTAL = Counter(
    "reviewhub_webhook_deliveries_total",
    "Outbound scraper webhook delivery attempts",
    ["platform", "status"],
)

IDENTIFIER_TRANSITIONS_TOTAL = Counter(
    "reviewhub_identifier_transitions_total",
    "Market identifier state transitions",
    ["platform", "transition"],
)

CIRCUIT_BREAKER_STATE = Gauge(
    "reviewhub_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["service"],
)

CIRCUIT_BREAKER_FAILURES = Counter(
    "reviewhub_circuit_breaker_failures_total",
    "Total failures recorded by circuit breakers",
    ["service"],
)


# =============================================================================
# Recording Helpers
# =============================================================================


def record_ingested_records(
    platform: str,
    accepted: int,
    rejected: int,
    duplicates: int = 0,
) -> None:
    """Add one batch's outcome counts."""
    INGESTED_RECORDS_TOTAL.labels(platform=platform, outcome="accepted").inc(accepted)
    INGESTED_RECORDS_TOTAL.labels(platform=platform, outcome="rejected").inc(rejected)
    INGESTED_RECORDS_TOTAL.labels(platform=platform, outcome="duplicate").inc(duplicates)


def record_webhook_delivery(platform: str, status: str) -> None:
    """Count a webhook attempt ("delivered", "failed", "skipped")."""
    WEBHOOK_DELIVERIES_TOTAL.labels(platform=platform, status=status).inc()


def record_identifier_transition(platform: str, transition: str) -> None:
    """Count a reconciler transition ("created", "changed", "unchanged", "removed")."""
    IDENTIFIER_TRANSITIONS_TOTAL.labels(platform=platform, transition=transition).inc()


@contextmanager
def track_ingestion_batch(platform: str) -> Generator[None, None, None]:
    """Time a whole ingestion batch."""
    start_time = time.perf_counter()
    try:
        yield
    finally:
        INGESTION_BATCH_DURATION.labels(platform=platform).observe(
            time.perf_counter() - start_time
        )


@contextmanager
def track_snapshot_recompute() -> Generator[None, None, None]:
    """Time a snapshot recomputation and count its outcome."""
    start_time = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        SNAPSHOT_RECOMPUTE_DURATION.observe(time.perf_counter() - start_time)
        SNAPSHOT_RECOMPUTE_TOTAL.labels(status=status).inc()


def update_circuit_breaker_state(service: str, state: str) -> None:
    """
    Update circuit breaker state gauge.

    Args:
        service: Service name
        state: Circuit state ("closed", "half_open", "open")
    """
    state_map = {"closed": 0, "half_open": 1, "open": 2}
    CIRCUIT_BREAKER_STATE.labels(service=service).set(state_map.get(state, 0))


def record_circuit_breaker_failure(service: str) -> None:
    """Record a circuit breaker failure."""
    CIRCUIT_BREAKER_FAILURES.labels(service=service).inc()


# =============================================================================
# Metrics Endpoint
# =============================================================================


async def metrics_endpoint(request) -> Response:
    """Prometheus metrics endpoint handler."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def get_metrics_app() -> Starlette:
    """
    Get a Starlette app for serving metrics.

    Mount this at /metrics in the main app:
        app.mount("/metrics", get_metrics_app())
    """
    return Starlette(routes=[Route("/", metrics_endpoint)])
