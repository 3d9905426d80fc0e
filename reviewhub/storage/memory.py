"""In-memory implementation of both stores.

Used in development and tests. Every method completes without awaiting,
so each call is atomic with respect to the event loop.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog

from reviewhub.core.exceptions import NotFoundError
from reviewhub.models.schemas import (
    BusinessProfile,
    MarketIdentifier,
    NormalizedReview,
    PeriodicalMetric,
    PeriodKey,
    Platform,
    RatingDistribution,
    ReviewMetadata,
    ReviewRecord,
    utc_now,
)
from reviewhub.storage.base import (
    IdentifierRemoval,
    IdentifierReplacement,
    PeriodicalMetricsStore,
    ReviewStore,
)

logger = structlog.get_logger(__name__)

_WORKFLOW_FIELDS = {"is_read", "is_important", "is_urgent", "labels"}


class InMemoryStore(ReviewStore, PeriodicalMetricsStore):
    """Dict-backed store keeping the same ownership rules as the database."""

    def __init__(self):
        self.profiles: dict[UUID, BusinessProfile] = {}
        self.reviews: dict[UUID, ReviewRecord] = {}
        self.metadata: dict[UUID, ReviewMetadata] = {}
        self.identifiers: dict[tuple[str, Platform], MarketIdentifier] = {}
        self.distributions: dict[UUID, RatingDistribution] = {}
        self.snapshots: dict[tuple[UUID, PeriodKey], PeriodicalMetric] = {}

    # -------------------------------------------------------------------------
    # Business profiles
    # -------------------------------------------------------------------------

    async def get_profile(self, profile_id: UUID) -> Optional[BusinessProfile]:
        return self.profiles.get(profile_id)

    async def find_profile(
        self, owner_id: str, platform: Platform, external_identifier: Optional[str] = None
    ) -> Optional[BusinessProfile]:
        return self._find_profile(owner_id, platform, external_identifier)

    async def create_profile(self, profile: BusinessProfile) -> BusinessProfile:
        self.profiles[profile.id] = profile
        return profile

    async def list_profiles(self, owner_id: Optional[str] = None) -> list[BusinessProfile]:
        return [
            profile
            for profile in self.profiles.values()
            if owner_id is None or profile.owner_id == owner_id
        ]

    async def set_last_review_date(self, profile_id: UUID, last_review_date: datetime) -> None:
        profile = self.profiles.get(profile_id)
        if profile is None:
            raise NotFoundError("BusinessProfile", profile_id)
        self.profiles[profile_id] = profile.model_copy(
            update={"last_review_date": last_review_date, "updated_at": utc_now()}
        )

    async def delete_profile(self, profile_id: UUID) -> bool:
        return self._delete_profile(profile_id)

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    async def get_reviews_by_external_ids(
        self, profile_id: UUID, external_ids: list[str]
    ) -> dict[str, ReviewRecord]:
        wanted = set(external_ids)
        return {
            review.external_review_id: review
            for review in self.reviews.values()
            if review.business_profile_id == profile_id and review.external_review_id in wanted
        }

    async def insert_reviews(self, reviews: list[NormalizedReview]) -> int:
        for item in reviews:
            self.reviews[item.record.id] = item.record
            self.metadata[item.record.id] = item.metadata
        return len(reviews)

    async def set_review_response(
        self, review_id: UUID, text: Optional[str], date: Optional[datetime]
    ) -> ReviewRecord:
        review = self.reviews.get(review_id)
        if review is None:
            raise NotFoundError("Review", review_id)
        updated = review.model_copy(update={"response_text": text, "response_date": date})
        self.reviews[review_id] = updated
        return updated

    async def get_review(self, review_id: UUID) -> Optional[ReviewRecord]:
        return self.reviews.get(review_id)

    async def list_reviews(self, profile_id: UUID) -> list[ReviewRecord]:
        return [r for r in self.reviews.values() if r.business_profile_id == profile_id]

    async def list_metadata(self, profile_id: UUID) -> dict[UUID, ReviewMetadata]:
        return {
            review_id: self.metadata[review_id]
            for review_id, review in self.reviews.items()
            if review.business_profile_id == profile_id and review_id in self.metadata
        }

    async def update_metadata(self, review_id: UUID, **changes: Any) -> ReviewMetadata:
        metadata = self.metadata.get(review_id)
        if metadata is None:
            raise NotFoundError("ReviewMetadata", review_id)
        unknown = set(changes) - _WORKFLOW_FIELDS
        if unknown:
            raise ValueError(f"Not a workflow field: {sorted(unknown)}")
        updated = metadata.model_copy(update={**changes, "updated_at": utc_now()})
        self.metadata[review_id] = updated
        return updated

    # -------------------------------------------------------------------------
    # Market identifiers
    # -------------------------------------------------------------------------

    async def get_identifier(self, owner_id: str, platform: Platform) -> Optional[MarketIdentifier]:
        return self.identifiers.get((owner_id, platform))

    async def list_identifiers(self, owner_id: str) -> list[MarketIdentifier]:
        return [mi for (owner, _), mi in self.identifiers.items() if owner == owner_id]

    async def replace_identifier(self, identifier: MarketIdentifier) -> IdentifierReplacement:
        key = (identifier.owner_id, identifier.platform)
        existing = self.identifiers.get(key)
        previous = existing.identifier if existing else None

        if existing is None:
            persisted = identifier
        else:
            persisted = existing.model_copy(
                update={
                    "identifier": identifier.identifier,
                    "team_id": identifier.team_id or existing.team_id,
                    "location_id": identifier.location_id or existing.location_id,
                    "updated_at": utc_now(),
                }
            )
        self.identifiers[key] = persisted

        stale_profile_id = None
        if previous is not None and previous != identifier.identifier:
            stale = self._find_profile(identifier.owner_id, identifier.platform, previous)
            if stale is not None:
                self._delete_profile(stale.id)
                stale_profile_id = stale.id

        profile = self._find_profile(identifier.owner_id, identifier.platform, identifier.identifier)
        if profile is None:
            profile = BusinessProfile(
                owner_id=identifier.owner_id,
                platform=identifier.platform,
                external_identifier=identifier.identifier,
            )
            self.profiles[profile.id] = profile

        return IdentifierReplacement(
            identifier=persisted,
            previous_identifier=previous,
            profile=profile,
            stale_profile_id=stale_profile_id,
        )

    async def remove_identifier(
        self, owner_id: str, platform: Platform
    ) -> Optional[IdentifierRemoval]:
        existing = self.identifiers.pop((owner_id, platform), None)
        if existing is None:
            return None
        profile = self._find_profile(owner_id, platform, existing.identifier)
        if profile is not None:
            self._delete_profile(profile.id)
        return IdentifierRemoval(
            identifier=existing,
            deleted_profile_id=profile.id if profile else None,
        )

    # -------------------------------------------------------------------------
    # Rating distribution
    # -------------------------------------------------------------------------

    async def put_distribution(self, distribution: RatingDistribution) -> None:
        self.distributions[distribution.business_profile_id] = distribution

    async def get_distribution(self, profile_id: UUID) -> Optional[RatingDistribution]:
        return self.distributions.get(profile_id)

    # -------------------------------------------------------------------------
    # Periodical metrics
    # -------------------------------------------------------------------------

    async def put_snapshots(self, snapshots: list[PeriodicalMetric]) -> None:
        for snapshot in snapshots:
            self.snapshots[(snapshot.business_profile_id, snapshot.period_key)] = snapshot

    async def get_snapshot(
        self, profile_id: UUID, period_key: PeriodKey
    ) -> Optional[PeriodicalMetric]:
        return self.snapshots.get((profile_id, period_key))

    async def list_snapshots(self, profile_id: UUID) -> list[PeriodicalMetric]:
        return [s for (pid, _), s in self.snapshots.items() if pid == profile_id]

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _find_profile(
        self, owner_id: str, platform: Platform, external_identifier: Optional[str]
    ) -> Optional[BusinessProfile]:
        for profile in self.profiles.values():
            if profile.owner_id != owner_id or profile.platform != platform:
                continue
            if external_identifier is None or profile.external_identifier == external_identifier:
                return profile
        return None

    def _delete_profile(self, profile_id: UUID) -> bool:
        if self.profiles.pop(profile_id, None) is None:
            return False

        review_ids = [rid for rid, r in self.reviews.items() if r.business_profile_id == profile_id]
        for review_id in review_ids:
            del self.reviews[review_id]
            self.metadata.pop(review_id, None)
        for key in [key for key in self.snapshots if key[0] == profile_id]:
            del self.snapshots[key]
        self.distributions.pop(profile_id, None)

        logger.info(
            "business_profile_deleted",
            profile_id=str(profile_id),
            reviews_deleted=len(review_ids),
        )
        return True
