"""
Data models for ReviewHub.

- schemas: canonical reviews, profiles, identifiers and analytics snapshots
"""

from reviewhub.models.schemas import (
    CANONICAL_RATING_SCALE,
    BusinessProfile,
    IngestionBatch,
    IngestionResult,
    MarketIdentifier,
    NormalizedReview,
    PeriodComparison,
    PeriodicalMetric,
    PeriodKey,
    Platform,
    RatingDistribution,
    RejectedRecord,
    ReviewMetadata,
    ReviewRecord,
    SentimentCounts,
    TripType,
    ValueCount,
    utc_now,
)

__all__ = [
    "CANONICAL_RATING_SCALE",
    "BusinessProfile",
    "IngestionBatch",
    "IngestionResult",
    "MarketIdentifier",
    "NormalizedReview",
    "PeriodComparison",
    "PeriodicalMetric",
    "PeriodKey",
    "Platform",
    "RatingDistribution",
    "RejectedRecord",
    "ReviewMetadata",
    "ReviewRecord",
    "SentimentCounts",
    "TripType",
    "ValueCount",
    "utc_now",
]
