"""
Analytics orchestration and review workflow actions.

Serves PeriodicalMetric snapshots from the metrics store while they are
fresh, recomputes them under the profile lock otherwise, and applies the
only mutations a stored review ever receives (read, important, reply).
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

import structlog

from reviewhub.analytics.aggregator import AnalyticsAggregator
from reviewhub.analytics.comparison import compare_periods
from reviewhub.analytics.distribution import build_rating_distribution
from reviewhub.analytics.periods import comparison_baseline
from reviewhub.collectors.normalization.transformers import URGENT_RATING_THRESHOLD
from reviewhub.core.exceptions import NotFoundError, PermanentError
from reviewhub.models.schemas import (
    BusinessProfile,
    PeriodComparison,
    PeriodicalMetric,
    PeriodKey,
    RatingDistribution,
    ReviewMetadata,
    ReviewRecord,
    utc_now,
)
from reviewhub.monitoring.metrics import track_snapshot_recompute
from reviewhub.services.locks import ProfileLocks
from reviewhub.storage.base import PeriodicalMetricsStore, ReviewStore

logger = structlog.get_logger(__name__)


class AnalyticsService:
    """Snapshot queries, recomputation and review workflow actions."""

    def __init__(
        self,
        store: ReviewStore,
        metrics_store: PeriodicalMetricsStore,
        locks: ProfileLocks,
        max_age_seconds: int = 3600,
        aggregator: Optional[AnalyticsAggregator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._metrics_store = metrics_store
        self._locks = locks
        self._max_age_seconds = max_age_seconds
        self._aggregator = aggregator or AnalyticsAggregator()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Recomputation
    # -------------------------------------------------------------------------

    async def recompute(self, profile_id: UUID) -> list[PeriodicalMetric]:
        """Rebuild every snapshot and the distribution of a profile.

        Raises:
            NotFoundError: If the profile does not exist.
        """
        await self._require_profile(profile_id)
        async with self._locks.get(profile_id):
            # The profile may have been cascaded away while we waited
            profile = await self._require_profile(profile_id)
            return await self.refresh_snapshots(profile)

    async def refresh_snapshots(self, profile: BusinessProfile) -> list[PeriodicalMetric]:
        """Recompute and persist snapshots. Caller must hold the profile lock."""
        with track_snapshot_recompute():
            reviews = await self._store.list_reviews(profile.id)
            metadata = await self._store.list_metadata(profile.id)
            as_of = self._clock()

            snapshots = self._aggregator.compute_all(profile, reviews, metadata, as_of)
            await self._metrics_store.put_snapshots(snapshots)
            await self._store.put_distribution(
                build_rating_distribution(profile, reviews, as_of)
            )

        logger.info(
            "snapshots_recomputed",
            profile_id=str(profile.id),
            platform=profile.platform.value,
            review_count=len(reviews),
        )
        return snapshots

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_metric(self, profile_id: UUID, period_key: PeriodKey) -> PeriodicalMetric:
        """Stored snapshot if fresh, otherwise a recomputed one.

        Raises:
            NotFoundError: If the profile does not exist.
        """
        await self._require_profile(profile_id)

        snapshot = await self._metrics_store.get_snapshot(profile_id, period_key)
        if snapshot is not None and self._is_fresh(snapshot):
            return snapshot

        async with self._locks.get(profile_id):
            # Another caller may have refreshed while we waited
            snapshot = await self._metrics_store.get_snapshot(profile_id, period_key)
            if snapshot is not None and self._is_fresh(snapshot):
                return snapshot
            profile = await self._require_profile(profile_id)
            snapshots = await self.refresh_snapshots(profile)

        return next(s for s in snapshots if s.period_key == period_key)

    async def get_comparison(self, profile_id: UUID, period_key: PeriodKey) -> PeriodComparison:
        """Compare a window with the next shorter one.

        Raises:
            NotFoundError: If the profile does not exist.
            PermanentError: For the shortest window, which has no baseline.
        """
        baseline_key = comparison_baseline(period_key)
        if baseline_key is None:
            raise PermanentError(
                f"No shorter period to compare {period_key.label} with",
                {"period_key": int(period_key)},
            )
        current = await self.get_metric(profile_id, period_key)
        baseline = await self.get_metric(profile_id, baseline_key)
        return compare_periods(current, baseline)

    async def get_distribution(self, profile_id: UUID) -> RatingDistribution:
        await self._require_profile(profile_id)
        distribution = await self._store.get_distribution(profile_id)
        if distribution is not None:
            return distribution

        async with self._locks.get(profile_id):
            profile = await self._require_profile(profile_id)
            await self.refresh_snapshots(profile)
        return await self._store.get_distribution(profile_id)

    # -------------------------------------------------------------------------
    # Workflow actions
    # -------------------------------------------------------------------------

    async def mark_read(self, review_id: UUID, is_read: bool = True) -> ReviewMetadata:
        await self._require_review(review_id)
        return await self._store.update_metadata(review_id, is_read=is_read)

    async def mark_important(self, review_id: UUID, is_important: bool = True) -> ReviewMetadata:
        await self._require_review(review_id)
        return await self._store.update_metadata(review_id, is_important=is_important)

    async def attach_reply(
        self,
        review_id: UUID,
        text: Optional[str],
        date: Optional[datetime] = None,
    ) -> ReviewRecord:
        """Set or clear the owner reply of a review.

        Blank text clears the reply. Snapshots of the owning profile are
        recomputed because response metrics depend on it.
        """
        review = await self._require_review(review_id)
        text = text.strip() if text else None
        date = (date or self._clock()) if text else None

        async with self._locks.get(review.business_profile_id):
            updated = await self._store.set_review_response(review_id, text, date)
            await self._store.update_metadata(
                review_id,
                is_urgent=self._is_urgent(updated),
            )
            profile = await self._store.get_profile(review.business_profile_id)
            if profile is not None:
                await self.refresh_snapshots(profile)

        logger.info(
            "review_reply_updated",
            review_id=str(review_id),
            has_reply=updated.has_response,
        )
        return updated

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _is_fresh(self, snapshot: PeriodicalMetric) -> bool:
        age = (self._clock() - snapshot.computed_at).total_seconds()
        return 0 <= age <= self._max_age_seconds

    @staticmethod
    def _is_urgent(review: ReviewRecord) -> bool:
        return (
            review.rating is not None
            and review.rating <= URGENT_RATING_THRESHOLD
            and not review.has_response
        )

    async def _require_profile(self, profile_id: UUID) -> BusinessProfile:
        profile = await self._store.get_profile(profile_id)
        if profile is None:
            raise NotFoundError("BusinessProfile", profile_id)
        return profile

    async def _require_review(self, review_id: UUID) -> ReviewRecord:
        review = await self._store.get_review(review_id)
        if review is None:
            raise NotFoundError("Review", review_id)
        return review
