"""Validator for map/local-business reviews (Google Maps scraping actors)."""

from typing import Any, Optional

from pydantic import Field, field_validator

from reviewhub.collectors.registry import register_validator
from reviewhub.collectors.validation.base import (
    PlatformValidator,
    ValidatedReview,
    non_negative_int,
)
from reviewhub.core.numeric import to_number
from reviewhub.models.schemas import Platform


class GoogleReviewInput(ValidatedReview):
    """Google review on the native 1-5 star scale."""

    likes_count: int = 0
    detailed_ratings: dict[str, Optional[float]] = Field(default_factory=dict)

    @field_validator("likes_count", mode="before")
    @classmethod
    def coerce_likes(cls, value: Any) -> int:
        return non_negative_int(value)

    @field_validator("detailed_ratings", mode="before")
    @classmethod
    def coerce_detailed(cls, value: Any) -> dict[str, Optional[float]]:
        if not isinstance(value, dict):
            return {}
        return {str(key).lower(): to_number(item) for key, item in value.items()}


@register_validator(Platform.GOOGLE_MAPS)
class GoogleValidator(PlatformValidator):
    model = GoogleReviewInput
    field_aliases = {
        "business_identifier": ("placeId", "place_id", "cid", "url"),
        "rating": ("stars", "rating", "totalScore"),
        "published_at": ("publishedAtDate", "publishAt", "published_at", "date"),
        "review_id": ("reviewId", "review_id", "id"),
        "text": ("text", "textTranslated", "reviewText"),
        "language": ("originalLanguage", "language"),
        "reviewer_name": ("name", "reviewerName", "author", "user.name"),
        "reviewer_id": ("reviewerId", "reviewer_id", "user.id"),
        "reviewer_avatar_url": ("reviewerPhotoUrl", "user.photoUrl"),
        "media_urls": ("reviewImageUrls", "images", "photos"),
        "response_text": ("responseFromOwnerText", "ownerResponse.text", "ownerResponse"),
        "response_date": ("responseFromOwnerDate", "ownerResponse.date"),
        "review_url": ("reviewUrl", "review_url"),
        "likes_count": ("likesCount", "likes"),
        "detailed_ratings": ("reviewDetailedRating", "detailedRating"),
    }
