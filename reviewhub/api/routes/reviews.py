"""Review workflow endpoints.

Read and important flags live on the review metadata. The owner reply is
the only part of a stored review that ever changes after ingestion.
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException

from reviewhub.api.dependencies import get_analytics_service, get_store
from reviewhub.api.models import ErrorResponse, FlagRequest, ReplyRequest
from reviewhub.models.schemas import ReviewMetadata, ReviewRecord
from reviewhub.services.analytics import AnalyticsService
from reviewhub.storage.base import ReviewStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Review not found"}}


@router.get(
    "/{review_id}",
    response_model=ReviewRecord,
    summary="Get a review",
    responses=_NOT_FOUND,
)
async def get_review(
    review_id: UUID,
    store: ReviewStore = Depends(get_store),
) -> ReviewRecord:
    review = await store.get_review(review_id)
    if review is None:
        raise HTTPException(status_code=404, detail=f"Review {review_id} not found")
    return review


@router.post(
    "/{review_id}/read",
    response_model=ReviewMetadata,
    summary="Mark a review read or unread",
    responses=_NOT_FOUND,
)
async def mark_read(
    review_id: UUID,
    request: FlagRequest = FlagRequest(),
    service: AnalyticsService = Depends(get_analytics_service),
) -> ReviewMetadata:
    return await service.mark_read(review_id, request.value)


@router.post(
    "/{review_id}/important",
    response_model=ReviewMetadata,
    summary="Flag a review as important",
    responses=_NOT_FOUND,
)
async def mark_important(
    review_id: UUID,
    request: FlagRequest = FlagRequest(),
    service: AnalyticsService = Depends(get_analytics_service),
) -> ReviewMetadata:
    return await service.mark_important(review_id, request.value)


@router.post(
    "/{review_id}/reply",
    response_model=ReviewRecord,
    summary="Attach or clear the owner reply",
    responses=_NOT_FOUND,
)
async def attach_reply(
    review_id: UUID,
    request: ReplyRequest,
    service: AnalyticsService = Depends(get_analytics_service),
) -> ReviewRecord:
    """
    Attach the owner's reply to a review.

    Empty text clears the reply. The review's urgency flag and the
    profile's response metrics are updated accordingly.
    """
    return await service.attach_reply(review_id, request.text, request.date)
