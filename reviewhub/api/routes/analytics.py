"""Analytics endpoints: periodical metrics, comparisons and distributions."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends

from reviewhub.api.dependencies import get_analytics_service
from reviewhub.api.models import ErrorResponse
from reviewhub.models.schemas import (
    PeriodComparison,
    PeriodicalMetric,
    PeriodKey,
    RatingDistribution,
)
from reviewhub.services.analytics import AnalyticsService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/analytics", tags=["Analytics"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Business profile not found"}}


@router.get(
    "/{business_profile_id}/distribution",
    response_model=RatingDistribution,
    summary="Get the rating distribution",
    description="Breakdown of every review of the profile by rating, trip type, recency, media and stay length.",
    responses=_NOT_FOUND,
)
async def get_distribution(
    business_profile_id: UUID,
    service: AnalyticsService = Depends(get_analytics_service),
) -> RatingDistribution:
    return await service.get_distribution(business_profile_id)


@router.post(
    "/{business_profile_id}/recompute",
    response_model=list[PeriodicalMetric],
    summary="Recompute snapshots",
    description="Rebuild every period snapshot and the rating distribution of a profile.",
    responses=_NOT_FOUND,
)
async def recompute(
    business_profile_id: UUID,
    service: AnalyticsService = Depends(get_analytics_service),
) -> list[PeriodicalMetric]:
    return await service.recompute(business_profile_id)


@router.get(
    "/{business_profile_id}/{period_key}",
    response_model=PeriodicalMetric,
    summary="Get a period snapshot",
    description="Aggregate metrics for one rolling window (1, 3, 7, 30, 180, 365 days or 0 for all time).",
    responses=_NOT_FOUND,
)
async def get_metric(
    business_profile_id: UUID,
    period_key: PeriodKey,
    service: AnalyticsService = Depends(get_analytics_service),
) -> PeriodicalMetric:
    """
    Get the snapshot for one window.

    A stored snapshot is served while it is younger than
    METRICS_MAX_AGE_SECONDS; otherwise it is recomputed first.
    """
    return await service.get_metric(business_profile_id, period_key)


@router.get(
    "/{business_profile_id}/{period_key}/comparison",
    response_model=PeriodComparison,
    summary="Compare with the next shorter period",
    responses={
        **_NOT_FOUND,
        400: {"model": ErrorResponse, "description": "Period has no shorter baseline"},
    },
)
async def get_comparison(
    business_profile_id: UUID,
    period_key: PeriodKey,
    service: AnalyticsService = Depends(get_analytics_service),
) -> PeriodComparison:
    return await service.get_comparison(business_profile_id, period_key)
