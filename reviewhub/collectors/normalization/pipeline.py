"""Normalization pipeline for transforming validated reviews.

Provides transformer registration and execution for converting
platform-specific validated payloads to the canonical ReviewRecord +
ReviewMetadata pair.
"""

from typing import Callable
from uuid import UUID

from reviewhub.collectors.normalization.transformers import (
    transform_booking,
    transform_facebook,
    transform_google,
    transform_tripadvisor,
)
from reviewhub.collectors.validation.base import ValidatedReview
from reviewhub.models.schemas import NormalizedReview, Platform

Transformer = Callable[[ValidatedReview, UUID], NormalizedReview]


class ReviewNormalizer:
    """Pipeline for normalizing validated reviews from the four platforms.

    Registers transformers by platform and applies them to validated
    payloads to produce canonical NormalizedReview instances.
    """

    def __init__(self):
        self._transformers: dict[Platform, Transformer] = {}

    def register_transformer(self, platform: Platform, transformer: Transformer) -> None:
        """Register a transformer for a platform.

        Args:
            platform: Platform the transformer handles.
            transformer: Callable (validated review, profile id) -> NormalizedReview.
        """
        self._transformers[platform] = transformer

    def normalize(
        self,
        platform: Platform,
        validated: ValidatedReview,
        business_profile_id: UUID,
    ) -> NormalizedReview:
        """Normalize a validated review to the canonical schema.

        Args:
            platform: Platform the review came from.
            validated: Output of the platform's validator.
            business_profile_id: Profile the review belongs to.

        Returns:
            NormalizedReview with the rating on the 1-5 scale.

        Raises:
            ValueError: If no transformer is registered for the platform.
        """
        if platform not in self._transformers:
            raise ValueError(f"No transformer registered for platform: {platform}")
        return self._transformers[platform](validated, business_profile_id)

    def has_transformer(self, platform: Platform) -> bool:
        return platform in self._transformers

    def list_platforms(self) -> list[Platform]:
        return list(self._transformers.keys())


def build_default_normalizer() -> ReviewNormalizer:
    """Normalizer with the transformers for every supported platform."""
    normalizer = ReviewNormalizer()
    normalizer.register_transformer(Platform.GOOGLE_MAPS, transform_google)
    normalizer.register_transformer(Platform.FACEBOOK, transform_facebook)
    normalizer.register_transformer(Platform.TRIPADVISOR, transform_tripadvisor)
    normalizer.register_transformer(Platform.BOOKING, transform_booking)
    return normalizer
