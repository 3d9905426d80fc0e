"""Ingestion endpoint for scraped review batches."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends

from reviewhub.api.dependencies import get_ingestion_service
from reviewhub.api.models import ErrorResponse
from reviewhub.models.schemas import IngestionResult
from reviewhub.services.ingestion import IngestionService, parse_batch

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Ingestion"])


@router.post(
    "/ingest",
    response_model=IngestionResult,
    summary="Ingest a scraped batch",
    description="Validate, normalize and store one batch of raw reviews for a business profile.",
    responses={
        400: {"model": ErrorResponse, "description": "Malformed batch"},
        404: {"model": ErrorResponse, "description": "Business profile not found"},
    },
)
async def ingest_batch(
    payload: Any = Body(
        ...,
        examples=[
            {
                "platform": "google_maps",
                "business_profile_id": "7b0c5c1e-6a55-4f0e-9d2b-3f3b4c8f0a11",
                "records": [
                    {"reviewId": "abc", "stars": 5, "publishedAtDate": "2024-05-01T10:00:00Z"}
                ],
            }
        ],
    ),
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestionResult:
    """
    Ingest one batch.

    Individual records that fail validation are reported in `errors` and
    do not fail the request. Records already stored are counted in
    `duplicates`.

    **Body:**
    - **platform**: google_maps, facebook, tripadvisor or booking
    - **business_profile_id**: Profile the records belong to
    - **records**: Raw review objects as produced by the scraping actor
    """
    batch = parse_batch(payload)
    return await service.ingest(batch)
