"""
Batch ingestion: validate, normalize, deduplicate, store, recompute.

A batch is one delivery from a scraping actor for one business profile.
Per-record failures are collected into the result; only a malformed batch
envelope or an unknown profile fails the whole call.
"""

from collections.abc import Mapping
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from reviewhub.collectors import build_default_normalizer, get_validator
from reviewhub.collectors.normalization import ReviewNormalizer
from reviewhub.core.exceptions import BatchValidationError, NotFoundError
from reviewhub.models.schemas import (
    IngestionBatch,
    IngestionResult,
    NormalizedReview,
    ReviewRecord,
    RejectedRecord,
)
from reviewhub.monitoring.metrics import record_ingested_records, track_ingestion_batch
from reviewhub.services.analytics import AnalyticsService
from reviewhub.services.locks import ProfileLocks
from reviewhub.storage.base import ReviewStore

logger = structlog.get_logger(__name__)


def parse_batch(payload: Any) -> IngestionBatch:
    """Validate the batch envelope.

    Raises:
        BatchValidationError: If the envelope is not an object, names an
            unknown platform, lacks a profile id, or `records` is not a list.
    """
    if not isinstance(payload, Mapping):
        raise BatchValidationError(
            f"Batch must be an object, got {type(payload).__name__}"
        )
    try:
        return IngestionBatch.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise BatchValidationError(
            f"Malformed batch: {location}: {first.get('msg')}",
            {"error_count": e.error_count()},
        ) from e


class IngestionService:
    """Turns raw scraped batches into stored canonical reviews."""

    def __init__(
        self,
        store: ReviewStore,
        analytics: AnalyticsService,
        locks: ProfileLocks,
        normalizer: Optional[ReviewNormalizer] = None,
        max_batch_size: int = 5000,
        recompute_on_ingest: bool = True,
    ):
        self._store = store
        self._analytics = analytics
        self._locks = locks
        self._normalizer = normalizer or build_default_normalizer()
        self._max_batch_size = max_batch_size
        self._recompute_on_ingest = recompute_on_ingest

    async def ingest(self, batch: IngestionBatch) -> IngestionResult:
        """Ingest one batch.

        Records already stored for the profile (same external review id)
        count as duplicates. A duplicate may only fill in an owner response
        the stored review lacked; nothing else about it changes.

        Raises:
            NotFoundError: If the business profile does not exist, including
                when it is deleted while the batch waits for the profile lock.
            BatchValidationError: If the batch is too large or its platform
                differs from the profile's.
        """
        profile = await self._store.get_profile(batch.business_profile_id)
        if profile is None:
            raise NotFoundError("BusinessProfile", batch.business_profile_id)
        if profile.platform != batch.platform:
            raise BatchValidationError(
                "Batch platform does not match the business profile",
                {"batch_platform": batch.platform.value, "profile_platform": profile.platform.value},
            )
        if len(batch.records) > self._max_batch_size:
            raise BatchValidationError(
                f"Batch of {len(batch.records)} records exceeds the limit of {self._max_batch_size}",
                {"record_count": len(batch.records)},
            )

        log = logger.bind(profile_id=str(profile.id), platform=profile.platform.value)

        with track_ingestion_batch(profile.platform.value):
            report = get_validator(profile.platform).validate_batch(batch.records)
            errors = list(report.errors)
            rejected = report.rejected

            normalized: list[NormalizedReview] = []
            for validated in report.accepted:
                try:
                    normalized.append(
                        self._normalizer.normalize(profile.platform, validated, profile.id)
                    )
                except ValueError as e:
                    # Transformers bound values the validator already accepted;
                    # a failure here means a broken record slipped through
                    rejected += 1
                    errors.append(RejectedRecord(index=-1, reason=str(e)))
                    log.warning("review_normalization_failed", error=str(e))

            async with self._locks.get(profile.id):
                # An identifier change may have deleted the profile while we waited
                profile = await self._store.get_profile(profile.id)
                if profile is None:
                    raise NotFoundError("BusinessProfile", batch.business_profile_id)

                fresh, duplicates = await self._deduplicate(normalized)
                accepted = await self._store.insert_reviews(fresh)

                if fresh:
                    latest = max(item.record.published_at for item in fresh)
                    if profile.last_review_date is None or latest > profile.last_review_date:
                        await self._store.set_last_review_date(profile.id, latest)

                if self._recompute_on_ingest and (accepted or duplicates):
                    await self._analytics.refresh_snapshots(profile)

        record_ingested_records(profile.platform.value, accepted, rejected, duplicates)
        log.info(
            "review_batch_ingested",
            received=len(batch.records),
            accepted=accepted,
            rejected=rejected,
            duplicates=duplicates,
        )
        return IngestionResult(
            accepted=accepted,
            rejected=rejected,
            duplicates=duplicates,
            errors=errors,
        )

    async def _deduplicate(
        self, normalized: list[NormalizedReview]
    ) -> tuple[list[NormalizedReview], int]:
        """Split reviews into new ones and a duplicate count.

        Caller must hold the profile lock.
        """
        if not normalized:
            return [], 0

        profile_id = normalized[0].record.business_profile_id
        external_ids = [item.record.external_review_id for item in normalized]
        stored = await self._store.get_reviews_by_external_ids(profile_id, external_ids)

        fresh: list[NormalizedReview] = []
        seen: dict[str, NormalizedReview] = {}
        duplicates = 0
        for item in normalized:
            external_id = item.record.external_review_id
            existing = stored.get(external_id)
            if existing is not None:
                duplicates += 1
                await self._fill_missing_response(existing, item.record)
                continue
            if external_id in seen:
                duplicates += 1
                continue
            seen[external_id] = item
            fresh.append(item)
        return fresh, duplicates

    async def _fill_missing_response(self, existing: ReviewRecord, incoming: ReviewRecord) -> None:
        if existing.has_response or not incoming.has_response:
            return
        await self._store.set_review_response(
            existing.id, incoming.response_text, incoming.response_date
        )
        await self._store.update_metadata(existing.id, is_urgent=False)
        logger.info(
            "review_response_backfilled",
            review_id=str(existing.id),
            external_review_id=existing.external_review_id,
        )
