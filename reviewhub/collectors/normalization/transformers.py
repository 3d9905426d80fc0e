"""Per-platform transformers from validated payloads to canonical reviews.

Each transformer takes a ValidatedReview on its native scale and the owning
business profile id, and returns a NormalizedReview (record + metadata) on
the canonical 1-5 scale.
"""

import hashlib
from typing import Any, Optional
from uuid import UUID

from reviewhub.collectors.validation.base import ValidatedReview
from reviewhub.collectors.validation.booking import BookingReviewInput
from reviewhub.collectors.validation.facebook import FacebookReviewInput
from reviewhub.collectors.validation.google import GoogleReviewInput
from reviewhub.collectors.validation.tripadvisor import TripAdvisorReviewInput
from reviewhub.core.numeric import bound, is_valid_rating, rescale
from reviewhub.models.schemas import (
    CANONICAL_RATING_SCALE,
    NormalizedReview,
    Platform,
    ReviewMetadata,
    ReviewRecord,
    TripType,
)

# =============================================================================
# Constants
# =============================================================================

RECOMMENDED_RATING = 5.0
NOT_RECOMMENDED_RATING = 1.0

URGENT_RATING_THRESHOLD = 2.0

# Rule-based topic detection over review text
TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "wait time": ("wait", "waiting", "slow", "delayed", "late", "queue"),
    "staff friendliness": ("friendly", "rude", "helpful", "staff", "welcoming", "polite"),
    "pricing": ("price", "expensive", "cheap", "value", "cost", "overpriced"),
    "cleanliness": ("clean", "dirty", "hygiene", "hygienic", "spotless", "smell"),
    "food": ("food", "breakfast", "dinner", "meal", "tasty", "delicious"),
    "location": ("location", "central", "walking distance", "parking", "nearby"),
    "room": ("room", "bed", "bathroom", "shower", "noisy", "quiet"),
}

_TRIP_TYPE_ALIASES: dict[str, TripType] = {
    "SOLO": TripType.SOLO,
    "SOLO_TRAVELER": TripType.SOLO,
    "SOLO_TRAVELLER": TripType.SOLO,
    "COUPLE": TripType.COUPLE,
    "COUPLES": TripType.COUPLE,
    "FAMILY": TripType.FAMILY,
    "FAMILIES": TripType.FAMILY,
    "FAMILY_WITH_YOUNG_CHILDREN": TripType.FAMILY_WITH_YOUNG_CHILDREN,
    "FAMILY_WITH_OLDER_CHILDREN": TripType.FAMILY_WITH_OLDER_CHILDREN,
    "FRIENDS": TripType.FRIENDS,
    "GROUP": TripType.FRIENDS,
    "GROUP_OF_FRIENDS": TripType.FRIENDS,
    "BUSINESS": TripType.BUSINESS,
    "BUSINESS_TRAVELER": TripType.BUSINESS,
    "BUSINESS_TRAVELLER": TripType.BUSINESS,
}


# =============================================================================
# Shared helpers
# =============================================================================


def to_canonical_rating(value: Optional[float], platform: Platform) -> Optional[float]:
    """Rescale a native rating onto 1-5 and bound it there.

    Bounding happens after rescaling so floating error at the scale edges
    can never leave the canonical range.
    """
    if not is_valid_rating(value):
        return None
    low, high = CANONICAL_RATING_SCALE
    return bound(rescale(value, platform.rating_scale, CANONICAL_RATING_SCALE), low, high)


def canonical_sub_ratings(
    sub_ratings: dict[str, Optional[float]], platform: Platform
) -> dict[str, Optional[float]]:
    """Rescale each supported sub-rating independently; missing ones stay null."""
    return {
        category: to_canonical_rating(sub_ratings.get(category), platform)
        for category in platform.sub_rating_categories
        if category in sub_ratings
    }


def map_trip_type(value: Optional[str]) -> Optional[TripType]:
    """Map any actor spelling of a traveller type onto TripType; unknown -> None."""
    if not value:
        return None
    key = value.strip().upper().replace("-", "_").replace(" ", "_")
    return _TRIP_TYPE_ALIASES.get(key)


def deterministic_review_id(
    platform: Platform,
    reviewer: Optional[str],
    published_at: Any,
    text: Optional[str],
) -> str:
    """Stable id for reviews the platform shipped without one."""
    fingerprint = "|".join(
        [platform.value, reviewer or "", published_at.isoformat(), text or ""]
    )
    return "gen-" + hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()


def detect_topics(text: Optional[str]) -> tuple[list[str], list[str]]:
    """Return (topics, matched keywords) found in the text."""
    if not text:
        return [], []
    lowered = text.lower()
    topics: list[str] = []
    keywords: list[str] = []
    for topic, words in TOPIC_KEYWORDS.items():
        hits = [word for word in words if word in lowered]
        if hits:
            topics.append(topic)
            keywords.extend(word for word in hits if word not in keywords)
    return topics, keywords


def _normalized_terms(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        term = value.strip().lower()
        if term and term not in seen:
            seen.append(term)
    return seen


def build_metadata(
    record: ReviewRecord,
    sentiment: Optional[float] = None,
    keywords: Optional[list[str]] = None,
    topics: Optional[list[str]] = None,
) -> ReviewMetadata:
    """Metadata for a freshly normalized record.

    Platform-supplied keywords and topics win; otherwise both come from the
    rule-based topic detection over the review text.
    """
    detected_topics, detected_keywords = detect_topics(
        " ".join(part for part in (record.title, record.text) if part)
    )
    is_urgent = (
        record.rating is not None
        and record.rating <= URGENT_RATING_THRESHOLD
        and not record.has_response
    )
    return ReviewMetadata(
        review_id=record.id,
        sentiment=sentiment if is_valid_rating(sentiment) else None,
        keywords=_normalized_terms(keywords or detected_keywords),
        topics=_normalized_terms(topics or detected_topics),
        is_urgent=is_urgent,
    )


def _base_fields(
    validated: ValidatedReview,
    platform: Platform,
    business_profile_id: UUID,
    rating: Optional[float],
    text: Optional[str] = None,
) -> dict[str, Any]:
    """Fields every platform maps the same way."""
    text = text if text is not None else validated.text
    response_text = validated.response_text
    return {
        "business_profile_id": business_profile_id,
        "platform": platform,
        "external_review_id": validated.review_id
        or deterministic_review_id(
            platform,
            validated.reviewer_id or validated.reviewer_name,
            validated.published_at,
            text,
        ),
        "rating": rating,
        "published_at": validated.published_at,
        "title": validated.title,
        "text": text,
        "language": validated.language,
        "reviewer_name": validated.reviewer_name,
        "reviewer_id": validated.reviewer_id,
        "reviewer_avatar_url": validated.reviewer_avatar_url,
        "media_urls": list(validated.media_urls),
        "photo_count": len(validated.media_urls),
        "response_text": response_text,
        # A reply date without reply text is meaningless
        "response_date": validated.response_date if response_text else None,
        "source_url": validated.review_url,
    }


# =============================================================================
# Platform transformers
# =============================================================================


def transform_google(validated: GoogleReviewInput, business_profile_id: UUID) -> NormalizedReview:
    platform = Platform.GOOGLE_MAPS
    record = ReviewRecord(
        **_base_fields(
            validated,
            platform,
            business_profile_id,
            to_canonical_rating(validated.rating, platform),
        ),
        native_rating=validated.rating,
        likes_count=validated.likes_count,
    )
    return NormalizedReview(record=record, metadata=build_metadata(record))


def transform_facebook(
    validated: FacebookReviewInput, business_profile_id: UUID
) -> NormalizedReview:
    """Recommendation-only reviews become 5 (recommended) or 1 (not)."""
    platform = Platform.FACEBOOK
    if validated.rating is not None:
        rating = to_canonical_rating(validated.rating, platform)
    elif validated.is_recommended:
        rating = RECOMMENDED_RATING
    else:
        rating = NOT_RECOMMENDED_RATING

    record = ReviewRecord(
        **_base_fields(validated, platform, business_profile_id, rating),
        native_rating=validated.rating,
        is_recommended=validated.is_recommended,
        likes_count=validated.likes_count,
        comments_count=validated.comments_count,
        tags=list(validated.tags),
    )
    return NormalizedReview(record=record, metadata=build_metadata(record))


def transform_tripadvisor(
    validated: TripAdvisorReviewInput, business_profile_id: UUID
) -> NormalizedReview:
    platform = Platform.TRIPADVISOR
    fields = _base_fields(
        validated,
        platform,
        business_profile_id,
        to_canonical_rating(validated.rating, platform),
    )
    fields["photo_count"] = max(validated.photo_count, len(validated.media_urls))
    record = ReviewRecord(
        **fields,
        native_rating=validated.rating,
        reviewer_country=validated.reviewer_location,
        sub_ratings=canonical_sub_ratings(validated.sub_ratings, platform),
        trip_type=map_trip_type(validated.trip_type),
        helpful_votes=validated.helpful_votes,
    )
    metadata = build_metadata(
        record,
        sentiment=validated.sentiment,
        keywords=validated.keywords,
        topics=validated.topics,
    )
    return NormalizedReview(record=record, metadata=metadata)


def compose_booking_text(validated: BookingReviewInput) -> Optional[str]:
    """Free text if present, else the liked / disliked parts joined."""
    if validated.text:
        return validated.text
    parts = []
    if validated.liked_text:
        parts.append(f"Liked: {validated.liked_text}")
    if validated.disliked_text:
        parts.append(f"Disliked: {validated.disliked_text}")
    return "\n".join(parts) or None


def transform_booking(
    validated: BookingReviewInput, business_profile_id: UUID
) -> NormalizedReview:
    platform = Platform.BOOKING
    record = ReviewRecord(
        **_base_fields(
            validated,
            platform,
            business_profile_id,
            to_canonical_rating(validated.rating, platform),
            text=compose_booking_text(validated),
        ),
        native_rating=validated.rating,
        reviewer_country=validated.reviewer_country,
        sub_ratings=canonical_sub_ratings(validated.sub_ratings, platform),
        trip_type=map_trip_type(validated.guest_type),
        tags=list(validated.tags),
        length_of_stay=validated.length_of_stay,
        room_type=validated.room_type,
    )
    return NormalizedReview(record=record, metadata=build_metadata(record))
