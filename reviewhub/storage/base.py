"""Storage interfaces for profiles, reviews, identifiers and snapshots.

Two abstract stores split the persistence concerns:

- ReviewStore: business profiles, canonical reviews with their metadata,
  market identifiers and the per-profile rating distribution.
- PeriodicalMetricsStore: the latest PeriodicalMetric per
  (business profile, period key), replaced wholesale on recomputation.

Deleting a business profile always cascades to everything it owns.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

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
)


@dataclass
class IdentifierReplacement:
    """Outcome of an atomic identifier write.

    Attributes:
        identifier: The persisted MarketIdentifier.
        previous_identifier: Identifier value bound before the write, if any.
        profile: Business profile bound to the new identifier.
        stale_profile_id: Profile deleted by the cascade, if one was found.
    """

    identifier: MarketIdentifier
    previous_identifier: Optional[str]
    profile: BusinessProfile
    stale_profile_id: Optional[UUID] = None


@dataclass
class IdentifierRemoval:
    """A deleted binding and the profile removed with it, if any."""

    identifier: MarketIdentifier
    deleted_profile_id: Optional[UUID] = None


class ReviewStore(ABC):
    """Persistence for profiles, reviews, metadata and market identifiers."""

    # -------------------------------------------------------------------------
    # Business profiles
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_profile(self, profile_id: UUID) -> Optional[BusinessProfile]: ...

    @abstractmethod
    async def find_profile(
        self, owner_id: str, platform: Platform, external_identifier: Optional[str] = None
    ) -> Optional[BusinessProfile]:
        """Profile bound to (owner, platform), optionally to a specific identifier."""

    @abstractmethod
    async def create_profile(self, profile: BusinessProfile) -> BusinessProfile: ...

    @abstractmethod
    async def list_profiles(self, owner_id: Optional[str] = None) -> list[BusinessProfile]: ...

    @abstractmethod
    async def set_last_review_date(self, profile_id: UUID, last_review_date: datetime) -> None: ...

    @abstractmethod
    async def delete_profile(self, profile_id: UUID) -> bool:
        """Delete a profile and cascade to its reviews, metadata and snapshots."""

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_reviews_by_external_ids(
        self, profile_id: UUID, external_ids: list[str]
    ) -> dict[str, ReviewRecord]:
        """Existing reviews of a profile keyed by external review id."""

    @abstractmethod
    async def insert_reviews(self, reviews: list[NormalizedReview]) -> int: ...

    @abstractmethod
    async def set_review_response(
        self, review_id: UUID, text: Optional[str], date: Optional[datetime]
    ) -> ReviewRecord:
        """Replace the owner-response pair of a review.

        Raises:
            NotFoundError: If the review does not exist.
        """

    @abstractmethod
    async def get_review(self, review_id: UUID) -> Optional[ReviewRecord]: ...

    @abstractmethod
    async def list_reviews(self, profile_id: UUID) -> list[ReviewRecord]: ...

    @abstractmethod
    async def list_metadata(self, profile_id: UUID) -> dict[UUID, ReviewMetadata]: ...

    @abstractmethod
    async def update_metadata(self, review_id: UUID, **changes: Any) -> ReviewMetadata:
        """Apply workflow changes to a review's metadata.

        Raises:
            NotFoundError: If the review has no metadata.
        """

    # -------------------------------------------------------------------------
    # Market identifiers
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_identifier(self, owner_id: str, platform: Platform) -> Optional[MarketIdentifier]: ...

    @abstractmethod
    async def list_identifiers(self, owner_id: str) -> list[MarketIdentifier]: ...

    @abstractmethod
    async def replace_identifier(self, identifier: MarketIdentifier) -> IdentifierReplacement:
        """Upsert the (owner, platform) binding in one transaction.

        When the identifier value changes, the profile bound to the old value
        is deleted with everything it owns. A profile bound to the new value
        is created if none exists.
        """

    @abstractmethod
    async def remove_identifier(
        self, owner_id: str, platform: Platform
    ) -> Optional[IdentifierRemoval]:
        """Delete the binding and its profile; None when nothing was bound."""

    # -------------------------------------------------------------------------
    # Rating distribution
    # -------------------------------------------------------------------------

    @abstractmethod
    async def put_distribution(self, distribution: RatingDistribution) -> None: ...

    @abstractmethod
    async def get_distribution(self, profile_id: UUID) -> Optional[RatingDistribution]: ...


class PeriodicalMetricsStore(ABC):
    """Latest snapshot per (business profile, period key)."""

    @abstractmethod
    async def put_snapshots(self, snapshots: list[PeriodicalMetric]) -> None:
        """Replace the stored snapshots for every key present in the list."""

    @abstractmethod
    async def get_snapshot(
        self, profile_id: UUID, period_key: PeriodKey
    ) -> Optional[PeriodicalMetric]: ...

    @abstractmethod
    async def list_snapshots(self, profile_id: UUID) -> list[PeriodicalMetric]: ...
