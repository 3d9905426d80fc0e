"""Normalization of validated reviews into the canonical schema."""

from reviewhub.collectors.normalization.pipeline import (
    ReviewNormalizer,
    Transformer,
    build_default_normalizer,
)
from reviewhub.collectors.normalization.transformers import (
    detect_topics,
    deterministic_review_id,
    map_trip_type,
    to_canonical_rating,
)

__all__ = [
    "ReviewNormalizer",
    "Transformer",
    "build_default_normalizer",
    "detect_topics",
    "deterministic_review_id",
    "map_trip_type",
    "to_canonical_rating",
]
