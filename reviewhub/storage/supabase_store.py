"""Supabase-backed implementation of both stores.

Tables and SQL functions are created by scripts/setup_supabase.py.
Ownership is enforced by ON DELETE CASCADE foreign keys, so deleting a
business profile removes its reviews, metadata, snapshots and distribution
in the same statement. Identifier replacement runs inside the
replace_market_identifier SQL function so the upsert, the stale-profile
delete and the new-profile insert commit together, and reviews are inserted
with their metadata by insert_reviews_with_metadata.

Usage:
    from supabase import create_client
    from reviewhub.storage.supabase_store import SupabaseStore

    store = SupabaseStore(create_client(url, key))
    profile = await store.get_profile(profile_id)
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import Client
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from reviewhub.core.exceptions import NotFoundError, StorageError, StorageRejectedError
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

PROFILES_TABLE = "business_profiles"
REVIEWS_TABLE = "reviews"
METADATA_TABLE = "review_metadata"
IDENTIFIERS_TABLE = "market_identifiers"
METRICS_TABLE = "periodical_metrics"
DISTRIBUTIONS_TABLE = "rating_distributions"


class SupabaseStore(ReviewStore, PeriodicalMetricsStore):
    """ReviewStore and PeriodicalMetricsStore on the Supabase Python client."""

    def __init__(self, client: Client):
        self._client = client

    def _run(self, query: Any) -> Any:
        """Run a PostgREST query once.

        Raises:
            StorageRejectedError: When PostgREST answers with an error.
            StorageError: When the request does not complete.
        """
        try:
            result = query.execute()
        except APIError as e:
            logger.warning("supabase_request_rejected", code=e.code, error=e.message)
            raise StorageRejectedError(
                "Supabase rejected the request",
                {"code": e.code, "error": e.message, "hint": e.hint},
            ) from e
        except httpx.HTTPError as e:
            logger.warning("supabase_request_failed", error=str(e))
            raise StorageError("Supabase request failed", {"error": str(e)}) from e
        return result.data or []

    @retry(
        retry=retry_if_exception_type(StorageError)
        & retry_if_not_exception_type(StorageRejectedError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    def _execute(self, query: Any) -> Any:
        """Run an idempotent query, retrying transport failures.

        Only use for reads, updates, deletes, upserts and conflict-ignoring
        inserts; anything else goes through _run.
        """
        return self._run(query)

    # -------------------------------------------------------------------------
    # Business profiles
    # -------------------------------------------------------------------------

    async def get_profile(self, profile_id: UUID) -> Optional[BusinessProfile]:
        rows = self._execute(
            self._client.table(PROFILES_TABLE).select("*").eq("id", str(profile_id))
        )
        return BusinessProfile.from_db_row(rows[0]) if rows else None

    async def find_profile(
        self, owner_id: str, platform: Platform, external_identifier: Optional[str] = None
    ) -> Optional[BusinessProfile]:
        query = (
            self._client.table(PROFILES_TABLE)
            .select("*")
            .eq("owner_id", owner_id)
            .eq("platform", platform.value)
        )
        if external_identifier is not None:
            query = query.eq("external_identifier", external_identifier)
        rows = self._execute(query.limit(1))
        return BusinessProfile.from_db_row(rows[0]) if rows else None

    async def create_profile(self, profile: BusinessProfile) -> BusinessProfile:
        rows = self._execute(
            self._client.table(PROFILES_TABLE).upsert(
                profile.to_db_row(), on_conflict="id", ignore_duplicates=True
            )
        )
        return BusinessProfile.from_db_row(rows[0]) if rows else profile

    async def list_profiles(self, owner_id: Optional[str] = None) -> list[BusinessProfile]:
        query = self._client.table(PROFILES_TABLE).select("*")
        if owner_id is not None:
            query = query.eq("owner_id", owner_id)
        return [BusinessProfile.from_db_row(row) for row in self._execute(query.order("created_at"))]

    async def set_last_review_date(self, profile_id: UUID, last_review_date: datetime) -> None:
        rows = self._execute(
            self._client.table(PROFILES_TABLE)
            .update(
                {
                    "last_review_date": last_review_date.isoformat(),
                    "updated_at": utc_now().isoformat(),
                }
            )
            .eq("id", str(profile_id))
        )
        if not rows:
            raise NotFoundError("BusinessProfile", profile_id)

    async def delete_profile(self, profile_id: UUID) -> bool:
        rows = self._execute(
            self._client.table(PROFILES_TABLE).delete().eq("id", str(profile_id))
        )
        if rows:
            logger.info("business_profile_deleted", profile_id=str(profile_id))
        return bool(rows)

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    async def get_reviews_by_external_ids(
        self, profile_id: UUID, external_ids: list[str]
    ) -> dict[str, ReviewRecord]:
        if not external_ids:
            return {}
        rows = self._execute(
            self._client.table(REVIEWS_TABLE)
            .select("*")
            .eq("business_profile_id", str(profile_id))
            .in_("external_review_id", external_ids)
        )
        records = [ReviewRecord.from_db_row(row) for row in rows]
        return {record.external_review_id: record for record in records}

    async def insert_reviews(self, reviews: list[NormalizedReview]) -> int:
        """Insert reviews with their metadata in one transaction.

        Runs the insert_reviews_with_metadata SQL function, which skips rows
        already stored for (profile, external review id). A retried call
        therefore never double-inserts.
        """
        if not reviews:
            return 0
        inserted = self._execute(
            self._client.rpc(
                "insert_reviews_with_metadata",
                {
                    "p_reviews": [item.record.to_db_row() for item in reviews],
                    "p_metadata": [item.metadata.to_db_row() for item in reviews],
                },
            )
        )
        return inserted if isinstance(inserted, int) else 0

    async def set_review_response(
        self, review_id: UUID, text: Optional[str], date: Optional[datetime]
    ) -> ReviewRecord:
        rows = self._execute(
            self._client.table(REVIEWS_TABLE)
            .update(
                {
                    "response_text": text,
                    "response_date": date.isoformat() if date else None,
                }
            )
            .eq("id", str(review_id))
        )
        if not rows:
            raise NotFoundError("Review", review_id)
        return ReviewRecord.from_db_row(rows[0])

    async def get_review(self, review_id: UUID) -> Optional[ReviewRecord]:
        rows = self._execute(
            self._client.table(REVIEWS_TABLE).select("*").eq("id", str(review_id))
        )
        return ReviewRecord.from_db_row(rows[0]) if rows else None

    async def list_reviews(self, profile_id: UUID) -> list[ReviewRecord]:
        rows = self._execute(
            self._client.table(REVIEWS_TABLE)
            .select("*")
            .eq("business_profile_id", str(profile_id))
            .order("published_at")
        )
        return [ReviewRecord.from_db_row(row) for row in rows]

    async def list_metadata(self, profile_id: UUID) -> dict[UUID, ReviewMetadata]:
        rows = self._execute(
            self._client.table(METADATA_TABLE)
            .select("*, reviews!inner(business_profile_id)")
            .eq("reviews.business_profile_id", str(profile_id))
        )
        result = {}
        for row in rows:
            row.pop("reviews", None)
            metadata = ReviewMetadata.from_db_row(row)
            result[metadata.review_id] = metadata
        return result

    async def update_metadata(self, review_id: UUID, **changes: Any) -> ReviewMetadata:
        payload = {**changes, "updated_at": utc_now().isoformat()}
        rows = self._execute(
            self._client.table(METADATA_TABLE).update(payload).eq("review_id", str(review_id))
        )
        if not rows:
            raise NotFoundError("ReviewMetadata", review_id)
        return ReviewMetadata.from_db_row(rows[0])

    # -------------------------------------------------------------------------
    # Market identifiers
    # -------------------------------------------------------------------------

    async def get_identifier(self, owner_id: str, platform: Platform) -> Optional[MarketIdentifier]:
        rows = self._execute(
            self._client.table(IDENTIFIERS_TABLE)
            .select("*")
            .eq("owner_id", owner_id)
            .eq("platform", platform.value)
        )
        return MarketIdentifier.from_db_row(rows[0]) if rows else None

    async def list_identifiers(self, owner_id: str) -> list[MarketIdentifier]:
        rows = self._execute(
            self._client.table(IDENTIFIERS_TABLE).select("*").eq("owner_id", owner_id)
        )
        return [MarketIdentifier.from_db_row(row) for row in rows]

    async def replace_identifier(self, identifier: MarketIdentifier) -> IdentifierReplacement:
        result = self._call(
            "replace_market_identifier",
            {
                "p_owner_id": identifier.owner_id,
                "p_platform": identifier.platform.value,
                "p_identifier": identifier.identifier,
                "p_team_id": identifier.team_id,
                "p_location_id": identifier.location_id,
            },
        )
        stale = result.get("stale_profile_id")
        return IdentifierReplacement(
            identifier=MarketIdentifier.from_db_row(result["identifier"]),
            previous_identifier=result.get("previous_identifier"),
            profile=BusinessProfile.from_db_row(result["profile"]),
            stale_profile_id=UUID(stale) if stale else None,
        )

    async def remove_identifier(
        self, owner_id: str, platform: Platform
    ) -> Optional[IdentifierRemoval]:
        result = self._call(
            "remove_market_identifier",
            {"p_owner_id": owner_id, "p_platform": platform.value},
        )
        if not result:
            return None
        deleted = result.get("deleted_profile_id")
        return IdentifierRemoval(
            identifier=MarketIdentifier.from_db_row(result["identifier"]),
            deleted_profile_id=UUID(deleted) if deleted else None,
        )

    def _call(self, function: str, params: dict[str, Any]) -> dict[str, Any]:
        """Invoke an SQL function that returns a single JSON object.

        Not retried: replaying a committed identifier change would report it
        as unchanged.
        """
        data = self._run(self._client.rpc(function, params))
        if isinstance(data, list):
            return data[0] if data else {}
        return data

    # -------------------------------------------------------------------------
    # Rating distribution
    # -------------------------------------------------------------------------

    async def put_distribution(self, distribution: RatingDistribution) -> None:
        self._execute(
            self._client.table(DISTRIBUTIONS_TABLE).upsert(
                {
                    "business_profile_id": str(distribution.business_profile_id),
                    "data": distribution.to_db_row(),
                    "computed_at": distribution.computed_at.isoformat(),
                },
                on_conflict="business_profile_id",
            )
        )

    async def get_distribution(self, profile_id: UUID) -> Optional[RatingDistribution]:
        rows = self._execute(
            self._client.table(DISTRIBUTIONS_TABLE)
            .select("data")
            .eq("business_profile_id", str(profile_id))
        )
        return RatingDistribution.from_db_row(rows[0]["data"]) if rows else None

    # -------------------------------------------------------------------------
    # Periodical metrics
    # -------------------------------------------------------------------------

    async def put_snapshots(self, snapshots: list[PeriodicalMetric]) -> None:
        if not snapshots:
            return
        self._execute(
            self._client.table(METRICS_TABLE).upsert(
                [
                    {
                        "business_profile_id": str(snapshot.business_profile_id),
                        "period_key": int(snapshot.period_key),
                        "data": snapshot.to_db_row(),
                        "computed_at": snapshot.computed_at.isoformat(),
                    }
                    for snapshot in snapshots
                ],
                on_conflict="business_profile_id,period_key",
            )
        )

    async def get_snapshot(
        self, profile_id: UUID, period_key: PeriodKey
    ) -> Optional[PeriodicalMetric]:
        rows = self._execute(
            self._client.table(METRICS_TABLE)
            .select("data")
            .eq("business_profile_id", str(profile_id))
            .eq("period_key", int(period_key))
        )
        return PeriodicalMetric.from_db_row(rows[0]["data"]) if rows else None

    async def list_snapshots(self, profile_id: UUID) -> list[PeriodicalMetric]:
        rows = self._execute(
            self._client.table(METRICS_TABLE)
            .select("data")
            .eq("business_profile_id", str(profile_id))
        )
        return [PeriodicalMetric.from_db_row(row["data"]) for row in rows]
