"""
Periodical metrics aggregation.

Turns the canonical reviews of one business profile into a PeriodicalMetric
snapshot per rolling window. Every numeric input passes through the numeric
guard first: non-finite values are dropped from numerator and denominator
alike, each field keeps its own valid-count, and histogram buckets clamp
finite out-of-range ratings instead of discarding them.

The aggregator is pure. Given the same reviews, metadata and as_of it
returns identical snapshots, computed_at included.

Usage:
    from reviewhub.analytics import AnalyticsAggregator

    aggregator = AnalyticsAggregator()
    snapshots = aggregator.compute_all(profile, reviews, metadata, as_of=now)
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Optional
from uuid import UUID

from reviewhub.analytics.periods import in_window, window_bounds
from reviewhub.core.numeric import (
    bound,
    clamp_rating,
    finite_values,
    is_valid_rating,
    percent,
    safe_average,
    safe_ratio,
)
from reviewhub.models.schemas import (
    CANONICAL_RATING_SCALE,
    BusinessProfile,
    PeriodicalMetric,
    PeriodKey,
    ReviewMetadata,
    ReviewRecord,
    SentimentCounts,
    ValueCount,
)

TOP_TERMS_LIMIT = 20

POSITIVE_SENTIMENT_THRESHOLD = 0.2
NEGATIVE_SENTIMENT_THRESHOLD = -0.2


# =============================================================================
# Field-level helpers
# =============================================================================


def empty_histogram() -> dict[str, int]:
    low, high = CANONICAL_RATING_SCALE
    return {str(star): 0 for star in range(low, high + 1)}


def rating_histogram(ratings: Iterable[Optional[float]]) -> dict[str, int]:
    """Clamp finite ratings into a 1-5 bucket; drop non-finite ones."""
    low, high = CANONICAL_RATING_SCALE
    histogram = empty_histogram()
    for rating in ratings:
        if is_valid_rating(rating):
            histogram[str(clamp_rating(rating, low, high))] += 1
    return histogram


def bounded_ratings(ratings: Iterable[Optional[float]]) -> list[float]:
    """Finite ratings bounded into the canonical range."""
    low, high = CANONICAL_RATING_SCALE
    return [bound(value, low, high) for value in finite_values(ratings)]


def optional_average(values: list[float]) -> Optional[float]:
    """safe_average, but None when nothing valid was averaged."""
    return safe_average(values) if values else None


def top_terms(terms: Iterable[str], limit: int = TOP_TERMS_LIMIT) -> list[ValueCount]:
    """Most frequent terms, count descending then value ascending."""
    counts = Counter(term for term in terms if term)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [ValueCount(value=value, count=count) for value, count in ranked[:limit]]


def sentiment_bucket(
    record: ReviewRecord, metadata: Optional[ReviewMetadata]
) -> Optional[str]:
    """positive / neutral / negative, or None when nothing can be inferred.

    Scored sentiment wins over the star rating.
    """
    score = metadata.sentiment if metadata is not None else None
    if is_valid_rating(score):
        if score >= POSITIVE_SENTIMENT_THRESHOLD:
            return "positive"
        if score <= NEGATIVE_SENTIMENT_THRESHOLD:
            return "negative"
        return "neutral"

    if is_valid_rating(record.rating):
        stars = clamp_rating(record.rating)
        if stars >= 4:
            return "positive"
        if stars == 3:
            return "neutral"
        return "negative"
    return None


def response_time_hours(record: ReviewRecord) -> Optional[float]:
    """Publish-to-reply delay; None unless it is a positive interval."""
    if not record.has_response or record.response_date is None:
        return None
    hours = (record.response_date - record.published_at).total_seconds() / 3600.0
    return hours if is_valid_rating(hours) and hours > 0 else None


# =============================================================================
# Aggregator
# =============================================================================


class AnalyticsAggregator:
    """Computes PeriodicalMetric snapshots for one business profile."""

    def compute(
        self,
        profile: BusinessProfile,
        reviews: list[ReviewRecord],
        metadata: Mapping[UUID, ReviewMetadata],
        period_key: PeriodKey,
        as_of: datetime,
    ) -> PeriodicalMetric:
        """Compute the snapshot for one window.

        Args:
            profile: Profile the reviews belong to.
            reviews: All canonical reviews of the profile.
            metadata: ReviewMetadata keyed by review id; missing entries are
                treated as "no enrichment".
            period_key: Window to aggregate.
            as_of: Instant the window ends at.

        Returns:
            A fully populated PeriodicalMetric.
        """
        start, end = window_bounds(period_key, as_of)
        window = [r for r in reviews if in_window(r.published_at, start, end)]
        total = len(window)

        ratings = bounded_ratings(r.rating for r in window)

        sentiment = SentimentCounts()
        for record in window:
            bucket = sentiment_bucket(record, metadata.get(record.id))
            if bucket is not None:
                setattr(sentiment, bucket, getattr(sentiment, bucket) + 1)
                sentiment.total += 1

        responded = [r for r in window if r.has_response]
        response_times = [
            hours for hours in (response_time_hours(r) for r in responded) if hours is not None
        ]

        total_likes = sum(r.likes_count for r in window)
        total_comments = sum(r.comments_count for r in window)
        recommended = sum(1 for r in window if r.is_recommended is True)
        not_recommended = sum(1 for r in window if r.is_recommended is False)
        flagged = recommended + not_recommended

        return PeriodicalMetric(
            business_profile_id=profile.id,
            platform=profile.platform,
            period_key=period_key,
            period_label=period_key.label,
            window_start=start,
            window_end=end,
            review_count=total,
            rating_count=len(ratings),
            avg_rating=optional_average(ratings),
            rating_distribution=rating_histogram(r.rating for r in window),
            sentiment=sentiment,
            sub_rating_averages=self._sub_rating_averages(profile, window),
            trip_type_counts=dict(
                sorted(Counter(r.trip_type.value for r in window if r.trip_type).items())
            ),
            top_keywords=top_terms(
                keyword
                for r in window
                if r.id in metadata
                for keyword in metadata[r.id].keywords
            ),
            top_tags=top_terms(tag.strip().lower() for r in window for tag in r.tags),
            responded_count=len(responded),
            response_rate_percent=percent(len(responded), total),
            avg_response_time_hours=optional_average(response_times),
            total_likes=total_likes,
            total_comments=total_comments,
            total_photos=sum(r.photo_count for r in window),
            avg_likes_per_review=safe_ratio(total_likes, total),
            avg_comments_per_review=safe_ratio(total_comments, total),
            recommended_count=recommended,
            not_recommended_count=not_recommended,
            recommendation_rate=percent(recommended, flagged) if flagged else None,
            computed_at=as_of,
        )

    def compute_all(
        self,
        profile: BusinessProfile,
        reviews: list[ReviewRecord],
        metadata: Mapping[UUID, ReviewMetadata],
        as_of: datetime,
    ) -> list[PeriodicalMetric]:
        """Snapshots for every PeriodKey, in enum order."""
        return [
            self.compute(profile, reviews, metadata, period_key, as_of)
            for period_key in PeriodKey
        ]

    @staticmethod
    def _sub_rating_averages(
        profile: BusinessProfile, window: list[ReviewRecord]
    ) -> dict[str, Optional[float]]:
        # Each category divides by its own valid-count, not the window size
        return {
            category: optional_average(
                bounded_ratings(r.sub_ratings.get(category) for r in window)
            )
            for category in profile.platform.sub_rating_categories
        }
