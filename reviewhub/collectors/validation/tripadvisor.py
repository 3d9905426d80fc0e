"""Validator for travel-site reviews (TripAdvisor "bubbles", 1-5)."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from reviewhub.collectors.registry import register_validator
from reviewhub.collectors.validation.base import (
    PlatformValidator,
    ValidatedReview,
    clean_text,
    non_negative_int,
    parse_timestamp,
    string_list,
)
from reviewhub.core.numeric import to_number
from reviewhub.models.schemas import Platform

# Actor spellings of sub-rating names -> canonical category
_SUB_RATING_NAMES = {
    "service": "service",
    "food": "food",
    "value": "value",
    "atmosphere": "atmosphere",
    "cleanliness": "cleanliness",
    "location": "location",
    "rooms": "rooms",
    "sleepquality": "sleep_quality",
    "sleep_quality": "sleep_quality",
    "sleep quality": "sleep_quality",
}


class TripAdvisorReviewInput(ValidatedReview):
    """TripAdvisor review with optional per-category sub-ratings."""

    sub_ratings: dict[str, Optional[float]] = Field(default_factory=dict)
    trip_type: Optional[str] = None
    visit_date: Optional[datetime] = None
    room_tip: Optional[str] = None
    helpful_votes: int = 0
    photo_count: int = 0
    reviewer_location: Optional[str] = None
    sentiment: Optional[float] = None
    keywords: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)

    @field_validator("sub_ratings", mode="before")
    @classmethod
    def coerce_sub_ratings(cls, value: Any) -> dict[str, Optional[float]]:
        """Accept either {name: value} or [{name, value|rating}, ...]."""
        pairs: list[tuple[Any, Any]] = []
        if isinstance(value, Mapping):
            pairs = list(value.items())
        elif isinstance(value, (list, tuple)):
            for item in value:
                if isinstance(item, Mapping):
                    raw = item.get("value")
                    pairs.append((item.get("name"), raw if raw is not None else item.get("rating")))

        low, high = cls.RATING_SCALE
        result: dict[str, Optional[float]] = {}
        for name, raw in pairs:
            category = _SUB_RATING_NAMES.get(str(name).strip().lower()) if name else None
            if category is None:
                continue
            number = to_number(raw)
            # Out-of-scale sub-ratings are nulled rather than rejecting the review
            result[category] = number if number is not None and low <= number <= high else None
        return result

    @field_validator("trip_type", "room_tip", "reviewer_location", mode="before")
    @classmethod
    def coerce_strings(cls, value: Any) -> Optional[str]:
        return clean_text(value)

    @field_validator("visit_date", mode="before")
    @classmethod
    def coerce_visit_date(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("helpful_votes", "photo_count", mode="before")
    @classmethod
    def coerce_counts(cls, value: Any) -> int:
        return non_negative_int(value)

    @field_validator("sentiment", mode="before")
    @classmethod
    def coerce_sentiment(cls, value: Any) -> Optional[float]:
        number = to_number(value)
        if number is None or not -1.0 <= number <= 1.0:
            return None
        return number

    @field_validator("keywords", "topics", mode="before")
    @classmethod
    def coerce_lists(cls, value: Any) -> list[str]:
        return string_list(value)


@register_validator(Platform.TRIPADVISOR)
class TripAdvisorValidator(PlatformValidator):
    model = TripAdvisorReviewInput
    field_aliases = {
        "business_identifier": ("locationId", "placeInfo.id", "tripAdvisorUrl", "url"),
        "rating": ("rating", "bubbles"),
        "published_at": ("publishedDate", "published_date", "date"),
        "review_id": ("reviewId", "id", "tripAdvisorReviewId"),
        "text": ("text", "reviewText"),
        "title": ("title", "reviewTitle"),
        "language": ("language", "lang"),
        "reviewer_name": ("reviewerName", "user.name", "user.username", "username"),
        "reviewer_id": ("reviewerId", "user.userId", "user.username"),
        "reviewer_avatar_url": ("user.avatar.image", "reviewerPhotoUrl"),
        "reviewer_location": ("user.userLocation", "reviewerLocation"),
        "media_urls": ("photos", "images"),
        "response_text": (
            "ownerResponse.text",
            "responseFromOwnerText",
            "ownerResponse",
            "reviewMetadata.reply",
        ),
        "response_date": (
            "ownerResponse.date",
            "responseFromOwnerDate",
            "reviewMetadata.replyDate",
        ),
        "review_url": ("reviewUrl", "url"),
        "sub_ratings": ("subRatings", "subratings", "sub_ratings"),
        "trip_type": ("tripType", "trip_type", "travelerType"),
        "visit_date": ("visitDate", "travelDate"),
        "room_tip": ("roomTip",),
        "helpful_votes": ("helpfulVotes", "helpful_votes"),
        "photo_count": ("photoCount", "reviewMetadata.photoCount"),
        "sentiment": ("reviewMetadata.sentiment",),
        "keywords": ("reviewMetadata.keywords",),
        "topics": ("reviewMetadata.topics",),
    }
