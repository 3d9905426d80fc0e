"""Market identifier configuration endpoints.

Configuring an identifier binds (owner, platform) to the external id the
scraper should collect, creates the matching business profile, deletes the
profile of a replaced identifier and notifies the scraper service.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from reviewhub.api.dependencies import get_reconciler
from reviewhub.api.models import (
    ErrorResponse,
    MarketIdentifierListResponse,
    MarketIdentifierRequest,
    MarketIdentifierResponse,
)
from reviewhub.models.schemas import BusinessProfile, Platform
from reviewhub.services.market_identifiers import MarketIdentifierReconciler

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/market-identifiers", tags=["Market Identifiers"])


@router.put(
    "",
    response_model=MarketIdentifierResponse,
    summary="Configure a market identifier",
    description="Create or replace the identifier bound to an owner on one platform.",
    responses={
        422: {"description": "Invalid request data"},
    },
)
async def configure_identifier(
    request: MarketIdentifierRequest,
    reconciler: MarketIdentifierReconciler = Depends(get_reconciler),
) -> MarketIdentifierResponse:
    """
    Configure a market identifier.

    This will:
    1. Store the identifier for (owner_id, platform)
    2. Delete the business profile of the previous identifier, if it changed
    3. Create the business profile for the new identifier
    4. Notify the scraper service (also when unchanged if `force` is set)

    A failed notification is reported as `notified: false` and does not
    undo the write.
    """
    result = await reconciler.configure(
        owner_id=request.owner_id,
        platform=request.platform,
        identifier=request.identifier,
        team_id=request.team_id,
        location_id=request.location_id,
        force=request.force,
    )
    return MarketIdentifierResponse(
        identifier=result.identifier,
        transition=result.transition.value,
        business_profile_id=result.profile.id,
        stale_profile_id=result.stale_profile_id,
        notified=result.notified,
    )


@router.get(
    "/{owner_id}",
    response_model=MarketIdentifierListResponse,
    summary="List market identifiers",
    description="Retrieve every identifier configured for an owner.",
)
async def list_identifiers(
    owner_id: str,
    reconciler: MarketIdentifierReconciler = Depends(get_reconciler),
) -> MarketIdentifierListResponse:
    identifiers = await reconciler.list_identifiers(owner_id)
    return MarketIdentifierListResponse(identifiers=identifiers, total=len(identifiers))


@router.get(
    "/{owner_id}/{platform}/profile",
    response_model=BusinessProfile,
    summary="Get the bound business profile",
    responses={
        404: {"model": ErrorResponse, "description": "No identifier configured"},
    },
)
async def get_bound_profile(
    owner_id: str,
    platform: Platform,
    reconciler: MarketIdentifierReconciler = Depends(get_reconciler),
) -> BusinessProfile:
    """Business profile that ingestion batches for this binding must target."""
    profile = await reconciler.get_profile(owner_id, platform)
    if profile is None:
        raise HTTPException(
            status_code=404,
            detail=f"No {platform.value} identifier configured for {owner_id}",
        )
    return profile


@router.delete(
    "/{owner_id}/{platform}",
    status_code=204,
    summary="Remove a market identifier",
    description="Unbind the identifier and delete its business profile with all of its data.",
    responses={
        404: {"model": ErrorResponse, "description": "No identifier configured"},
    },
)
async def remove_identifier(
    owner_id: str,
    platform: Platform,
    reconciler: MarketIdentifierReconciler = Depends(get_reconciler),
) -> None:
    removed = await reconciler.remove_identifier(owner_id, platform)
    if not removed:
        raise HTTPException(
            status_code=404,
            detail=f"No {platform.value} identifier configured for {owner_id}",
        )
