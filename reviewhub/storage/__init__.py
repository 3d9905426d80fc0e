"""
Persistence layer.

- base: ReviewStore and PeriodicalMetricsStore interfaces
- memory: dict-backed store for development and tests
- supabase_store: Supabase (PostgreSQL) store
"""

from reviewhub.storage.base import (
    IdentifierRemoval,
    IdentifierReplacement,
    PeriodicalMetricsStore,
    ReviewStore,
)
from reviewhub.storage.memory import InMemoryStore

__all__ = [
    "IdentifierRemoval",
    "IdentifierReplacement",
    "InMemoryStore",
    "PeriodicalMetricsStore",
    "ReviewStore",
]
