"""Application services orchestrating collectors, analytics and storage."""

from reviewhub.services.analytics import AnalyticsService
from reviewhub.services.ingestion import IngestionService, parse_batch
from reviewhub.services.locks import ProfileLocks
from reviewhub.services.market_identifiers import (
    IdentifierTransition,
    MarketIdentifierReconciler,
    ReconcileResult,
)
from reviewhub.services.scraper_webhook import ScraperWebhookClient, build_payload

__all__ = [
    "AnalyticsService",
    "IdentifierTransition",
    "IngestionService",
    "MarketIdentifierReconciler",
    "ProfileLocks",
    "ReconcileResult",
    "ScraperWebhookClient",
    "build_payload",
    "parse_batch",
]
