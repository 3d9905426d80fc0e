"""
Monitoring and observability for ReviewHub.

Prometheus counters and histograms for ingestion, snapshot recomputation,
identifier reconciliation and outbound webhooks.
"""

from reviewhub.monitoring.metrics import (
    get_metrics_app,
    record_identifier_transition,
    record_ingested_records,
    record_webhook_delivery,
    track_ingestion_batch,
    track_snapshot_recompute,
)

__all__ = [
    "get_metrics_app",
    "record_identifier_transition",
    "record_ingested_records",
    "record_webhook_delivery",
    "track_ingestion_batch",
    "track_snapshot_recompute",
]
