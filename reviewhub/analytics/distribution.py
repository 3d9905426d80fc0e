"""Rating distribution over the full review set of one profile."""

from collections import Counter
from datetime import datetime, timedelta

from reviewhub.analytics.aggregator import optional_average, rating_histogram, top_terms
from reviewhub.core.numeric import finite_values
from reviewhub.models.schemas import BusinessProfile, RatingDistribution, ReviewRecord

SHORT_STAY_MAX_NIGHTS = 3  # exclusive
LONG_STAY_MIN_NIGHTS = 7  # exclusive


def recency_bucket(published_at: datetime, as_of: datetime) -> str:
    age = as_of - published_at
    if age <= timedelta(days=7):
        return "last_week"
    if age <= timedelta(days=30):
        return "last_month"
    if age <= timedelta(days=180):
        return "last_six_months"
    return "older"


def stay_bucket(nights: int) -> str:
    if nights < SHORT_STAY_MAX_NIGHTS:
        return "short"
    if nights > LONG_STAY_MIN_NIGHTS:
        return "long"
    return "medium"


def build_rating_distribution(
    profile: BusinessProfile,
    reviews: list[ReviewRecord],
    as_of: datetime,
) -> RatingDistribution:
    """Denormalized breakdown of every review of a profile as of a given instant.

    Reviews dated after as_of are ignored, so the result only depends on its
    inputs.
    """
    included = [r for r in reviews if r.published_at <= as_of]

    recency = {"last_week": 0, "last_month": 0, "last_six_months": 0, "older": 0}
    media = {"with_media": 0, "without_media": 0}
    stay_lengths = {"short": 0, "medium": 0, "long": 0}
    for record in included:
        recency[recency_bucket(record.published_at, as_of)] += 1
        media["with_media" if record.has_media else "without_media"] += 1
        if record.length_of_stay is not None:
            stay_lengths[stay_bucket(record.length_of_stay)] += 1

    stays = finite_values(r.length_of_stay for r in included)

    return RatingDistribution(
        business_profile_id=profile.id,
        platform=profile.platform,
        total_reviews=len(included),
        ratings=rating_histogram(r.rating for r in included),
        trip_types=dict(
            sorted(Counter(r.trip_type.value for r in included if r.trip_type).items())
        ),
        recency=recency,
        media=media,
        stay_lengths=stay_lengths,
        avg_length_of_stay=optional_average(stays),
        top_countries=top_terms(r.reviewer_country for r in included if r.reviewer_country),
        computed_at=as_of,
    )
