"""FastAPI dependency injection providers.

This module provides dependency functions for injecting services into route handlers.
"""

from typing import Optional

from supabase import create_client

from reviewhub.config.settings import get_settings
from reviewhub.core.exceptions import ConfigurationError
from reviewhub.services.analytics import AnalyticsService
from reviewhub.services.ingestion import IngestionService
from reviewhub.services.locks import ProfileLocks
from reviewhub.services.market_identifiers import MarketIdentifierReconciler
from reviewhub.services.scraper_webhook import ScraperWebhookClient
from reviewhub.storage.base import PeriodicalMetricsStore, ReviewStore
from reviewhub.storage.memory import InMemoryStore

# Global instances for singleton pattern
_store: Optional[ReviewStore] = None
_locks: Optional[ProfileLocks] = None
_webhook: Optional[ScraperWebhookClient] = None
_analytics_service: Optional[AnalyticsService] = None
_ingestion_service: Optional[IngestionService] = None
_reconciler: Optional[MarketIdentifierReconciler] = None


def get_store() -> ReviewStore:
    """
    Get the review store.

    Uses a singleton pattern so every request sees the same data. The
    backend is chosen by STORAGE_BACKEND.

    Raises:
        ConfigurationError: If the Supabase backend is selected without credentials.
    """
    global _store

    if _store is None:
        settings = get_settings()
        if settings.storage_backend == "supabase":
            if not settings.supabase_url or not settings.supabase_key:
                raise ConfigurationError(
                    "STORAGE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY"
                )
            from reviewhub.storage.supabase_store import SupabaseStore

            _store = SupabaseStore(
                create_client(
                    settings.supabase_url,
                    settings.supabase_key.get_secret_value(),
                )
            )
        else:
            _store = InMemoryStore()

    return _store


def get_metrics_store() -> PeriodicalMetricsStore:
    """Snapshot store. Both backends implement it on the same object."""
    store = get_store()
    assert isinstance(store, PeriodicalMetricsStore)
    return store


def get_locks() -> ProfileLocks:
    global _locks

    if _locks is None:
        _locks = ProfileLocks()

    return _locks


def get_webhook() -> ScraperWebhookClient:
    global _webhook

    if _webhook is None:
        _webhook = ScraperWebhookClient()

    return _webhook


def get_analytics_service() -> AnalyticsService:
    global _analytics_service

    if _analytics_service is None:
        _analytics_service = AnalyticsService(
            store=get_store(),
            metrics_store=get_metrics_store(),
            locks=get_locks(),
            max_age_seconds=get_settings().metrics_max_age_seconds,
        )

    return _analytics_service


def get_ingestion_service() -> IngestionService:
    global _ingestion_service

    if _ingestion_service is None:
        settings = get_settings()
        _ingestion_service = IngestionService(
            store=get_store(),
            analytics=get_analytics_service(),
            locks=get_locks(),
            max_batch_size=settings.max_batch_size,
            recompute_on_ingest=settings.recompute_on_ingest,
        )

    return _ingestion_service


def get_reconciler() -> MarketIdentifierReconciler:
    global _reconciler

    if _reconciler is None:
        _reconciler = MarketIdentifierReconciler(get_store(), get_webhook(), get_locks())

    return _reconciler


async def close_dependencies() -> None:
    """Release network clients. Called on application shutdown."""
    if _webhook is not None:
        await _webhook.aclose()


def reset_dependencies() -> None:
    """
    Reset all global dependency instances.

    Useful for testing or application shutdown.
    """
    global _store, _locks, _webhook, _analytics_service, _ingestion_service, _reconciler
    _store = None
    _locks = None
    _webhook = None
    _analytics_service = None
    _ingestion_service = None
    _reconciler = None
