"""Pydantic models for ReviewHub core entities."""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


# =============================================================================
# Enums
# =============================================================================


class Platform(str, Enum):
    """Review platform sources."""

    GOOGLE_MAPS = "google_maps"
    FACEBOOK = "facebook"
    TRIPADVISOR = "tripadvisor"
    BOOKING = "booking"

    @property
    def rating_scale(self) -> tuple[int, int]:
        """Native (min, max) rating scale of the platform."""
        if self is Platform.BOOKING:
            return (1, 10)
        return (1, 5)

    @property
    def sub_rating_categories(self) -> tuple[str, ...]:
        """Sub-rating categories the platform exposes, empty if none."""
        return SUB_RATING_CATEGORIES.get(self, ())


SUB_RATING_CATEGORIES: dict[Platform, tuple[str, ...]] = {
    Platform.TRIPADVISOR: (
        "service",
        "food",
        "value",
        "atmosphere",
        "cleanliness",
        "location",
        "rooms",
        "sleep_quality",
    ),
    Platform.BOOKING: (
        "cleanliness",
        "comfort",
        "location",
        "facilities",
        "staff",
        "value_for_money",
        "wifi",
    ),
}

CANONICAL_RATING_SCALE: tuple[int, int] = (1, 5)


class PeriodKey(int, Enum):
    """Rolling aggregation windows, keyed by their length in days (0 = all time)."""

    LAST_DAY = 1
    LAST_3_DAYS = 3
    LAST_7_DAYS = 7
    LAST_30_DAYS = 30
    LAST_6_MONTHS = 180
    LAST_12_MONTHS = 365
    ALL_TIME = 0

    @property
    def days(self) -> Optional[int]:
        """Window length in days, None for all time."""
        return None if self is PeriodKey.ALL_TIME else int(self.value)

    @property
    def label(self) -> str:
        return PERIOD_LABELS[self]


PERIOD_LABELS: dict[PeriodKey, str] = {
    PeriodKey.LAST_DAY: "Last 1 Day",
    PeriodKey.LAST_3_DAYS: "Last 3 Days",
    PeriodKey.LAST_7_DAYS: "Last 7 Days",
    PeriodKey.LAST_30_DAYS: "Last 30 Days",
    PeriodKey.LAST_6_MONTHS: "Last 6 Months",
    PeriodKey.LAST_12_MONTHS: "Last 12 Months",
    PeriodKey.ALL_TIME: "All Time",
}


class TripType(str, Enum):
    """Canonical traveller / guest type across travel and accommodation sites."""

    SOLO = "SOLO"
    COUPLE = "COUPLE"
    FAMILY = "FAMILY"
    FAMILY_WITH_YOUNG_CHILDREN = "FAMILY_WITH_YOUNG_CHILDREN"
    FAMILY_WITH_OLDER_CHILDREN = "FAMILY_WITH_OLDER_CHILDREN"
    FRIENDS = "FRIENDS"
    BUSINESS = "BUSINESS"


# =============================================================================
# Base Models
# =============================================================================


class BaseEntity(BaseModel):
    """Base model with common fields and conversion methods."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    def to_db_row(self) -> dict[str, Any]:
        """Convert model to database row format (Supabase/PostgreSQL)."""
        return self.model_dump(mode="json")

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "BaseEntity":
        """Create model instance from database row."""
        return cls.model_validate(row)


# =============================================================================
# Core Entity Models
# =============================================================================


class BusinessProfile(BaseEntity):
    """A scraped place, page or listing bound to one platform identifier."""

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    owner_id: str = Field(..., min_length=1, description="Owning team or location")
    platform: Platform
    external_identifier: str = Field(
        ..., min_length=1, description="Place id, page URL, listing URL, ..."
    )
    display_name: Optional[str] = None
    last_review_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ReviewRecord(BaseEntity):
    """Platform-neutral review.

    `rating` is always on the 1-5 scale. It is typed loosely (no range
    constraint) because rows read back from storage may predate validation;
    the aggregator filters them through the numeric guard.
    """

    id: UUID = Field(default_factory=uuid4)
    business_profile_id: UUID
    platform: Platform
    external_review_id: str

    rating: Optional[float] = None
    native_rating: Optional[float] = None
    published_at: datetime

    title: Optional[str] = None
    text: Optional[str] = None
    language: Optional[str] = None

    reviewer_name: Optional[str] = None
    reviewer_id: Optional[str] = None
    reviewer_avatar_url: Optional[str] = None
    reviewer_country: Optional[str] = None

    media_urls: list[str] = Field(default_factory=list)
    photo_count: int = 0

    response_text: Optional[str] = None
    response_date: Optional[datetime] = None

    sub_ratings: dict[str, Optional[float]] = Field(default_factory=dict)
    trip_type: Optional[TripType] = None
    is_recommended: Optional[bool] = None

    likes_count: int = 0
    comments_count: int = 0
    helpful_votes: int = 0
    tags: list[str] = Field(default_factory=list)

    length_of_stay: Optional[int] = None
    room_type: Optional[str] = None

    source_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def has_response(self) -> bool:
        return bool(self.response_text and self.response_text.strip())

    @property
    def has_media(self) -> bool:
        return self.photo_count > 0 or bool(self.media_urls)


class ReviewMetadata(BaseEntity):
    """Derived data and workflow state attached 1:1 to a review."""

    review_id: UUID
    sentiment: Optional[float] = Field(None, ge=-1.0, le=1.0)
    keywords: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    is_urgent: bool = False
    is_read: bool = False
    is_important: bool = False
    labels: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)


class NormalizedReview(BaseModel):
    """ReviewRecord + ReviewMetadata pair produced by the normalizer."""

    record: ReviewRecord
    metadata: ReviewMetadata


class MarketIdentifier(BaseEntity):
    """Binding of (owner, platform) to an external identifier."""

    id: UUID = Field(default_factory=uuid4)
    owner_id: str = Field(..., min_length=1)
    team_id: Optional[str] = None
    location_id: Optional[str] = None
    platform: Platform
    identifier: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Analytics Models
# =============================================================================


class FinitenessGuard(BaseEntity):
    """Rejects NaN / Infinity in any float field, including nested dict values."""

    @model_validator(mode="after")
    def reject_non_finite(self):
        for name, value in self:
            for item in _iter_floats(value):
                if not math.isfinite(item):
                    raise ValueError(f"{name} must be finite, got {item}")
        return self


def _iter_floats(value: Any):
    if isinstance(value, float):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_floats(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_floats(item)


class ValueCount(BaseModel):
    """Frequency entry for keyword / tag tables."""

    value: str
    count: int


class SentimentCounts(BaseModel):
    positive: int = 0
    neutral: int = 0
    negative: int = 0
    total: int = 0


class PeriodicalMetric(FinitenessGuard):
    """Aggregate snapshot for one (business profile, period key).

    Replaced wholesale on recomputation, never patched.
    """

    business_profile_id: UUID
    platform: Platform
    period_key: PeriodKey
    period_label: str
    window_start: Optional[datetime] = None
    window_end: datetime

    review_count: int = 0
    rating_count: int = 0
    avg_rating: Optional[float] = None
    rating_distribution: dict[str, int] = Field(
        default_factory=lambda: {str(star): 0 for star in range(1, 6)}
    )
    sentiment: SentimentCounts = Field(default_factory=SentimentCounts)
    sub_rating_averages: dict[str, Optional[float]] = Field(default_factory=dict)
    trip_type_counts: dict[str, int] = Field(default_factory=dict)
    top_keywords: list[ValueCount] = Field(default_factory=list)
    top_tags: list[ValueCount] = Field(default_factory=list)

    responded_count: int = 0
    response_rate_percent: float = 0.0
    avg_response_time_hours: Optional[float] = None

    total_likes: int = 0
    total_comments: int = 0
    total_photos: int = 0
    avg_likes_per_review: float = 0.0
    avg_comments_per_review: float = 0.0

    recommended_count: int = 0
    not_recommended_count: int = 0
    recommendation_rate: Optional[float] = None

    computed_at: datetime


class RatingDistribution(FinitenessGuard):
    """Denormalized breakdown over every review of a profile."""

    business_profile_id: UUID
    platform: Platform
    total_reviews: int = 0
    ratings: dict[str, int] = Field(
        default_factory=lambda: {str(star): 0 for star in range(1, 6)}
    )
    trip_types: dict[str, int] = Field(default_factory=dict)
    recency: dict[str, int] = Field(
        default_factory=lambda: {
            "last_week": 0,
            "last_month": 0,
            "last_six_months": 0,
            "older": 0,
        }
    )
    media: dict[str, int] = Field(
        default_factory=lambda: {"with_media": 0, "without_media": 0}
    )
    stay_lengths: dict[str, int] = Field(
        default_factory=lambda: {"short": 0, "medium": 0, "long": 0}
    )
    avg_length_of_stay: Optional[float] = None
    top_countries: list[ValueCount] = Field(default_factory=list)
    computed_at: datetime


class PeriodComparison(FinitenessGuard):
    """Derived view: a snapshot compared with a baseline snapshot."""

    business_profile_id: UUID
    period_key: PeriodKey
    baseline_period_key: PeriodKey
    review_count_change_percent: Optional[float] = None
    avg_rating_change: Optional[float] = None
    avg_rating_change_percent: Optional[float] = None
    response_rate_change: Optional[float] = None
    current: PeriodicalMetric
    baseline: PeriodicalMetric


# =============================================================================
# Ingestion Models
# =============================================================================


class IngestionBatch(BaseModel):
    """A discrete delivery from a scraping actor."""

    platform: Platform
    business_profile_id: UUID
    records: list[Any]


class RejectedRecord(BaseModel):
    """Position and reason for one record dropped by validation."""

    index: int
    reason: str


class IngestionResult(BaseModel):
    """Partial-success report for one batch."""

    accepted: int = 0
    rejected: int = 0
    duplicates: int = 0
    errors: list[RejectedRecord] = Field(default_factory=list)
