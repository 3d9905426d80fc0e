"""Pydantic models for API requests and responses.

Domain models (PeriodicalMetric, RatingDistribution, ReviewRecord, ...)
are returned as-is; this module only holds the request bodies and the
envelopes that have no domain counterpart.
"""

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from reviewhub.models.schemas import MarketIdentifier, Platform, utc_now


# =============================================================================
# Market Identifier Models
# =============================================================================


class MarketIdentifierRequest(BaseModel):
    """Request model for configuring a market identifier."""

    owner_id: str = Field(..., min_length=1, description="Owning team or location")
    platform: Platform = Field(..., description="Platform the identifier belongs to")
    identifier: str = Field(
        ...,
        min_length=1,
        description="Place id, page URL or listing URL",
        json_schema_extra={"example": "ChIJN1t_tDeuEmsRUsoyG83frY4"},
    )
    team_id: Optional[str] = Field(None, description="Sent to the scraper as teamId")
    location_id: Optional[str] = Field(None, description="Sent to the scraper as locationId")
    force: bool = Field(
        default=False,
        description="Notify the scraper even when the identifier is unchanged",
    )


class MarketIdentifierResponse(BaseModel):
    """Outcome of a configuration write."""

    identifier: MarketIdentifier
    transition: Literal["created", "changed", "unchanged"]
    business_profile_id: UUID = Field(..., description="Profile bound to the identifier")
    stale_profile_id: Optional[UUID] = Field(None, description="Profile deleted by the change")
    notified: bool = Field(..., description="Whether the scraper acknowledged the notification")


class MarketIdentifierListResponse(BaseModel):
    identifiers: list[MarketIdentifier]
    total: int


# =============================================================================
# Review Workflow Models
# =============================================================================


class FlagRequest(BaseModel):
    """Set or clear a boolean workflow flag."""

    value: bool = Field(default=True)


class ReplyRequest(BaseModel):
    """Owner reply to attach to a review. Empty text clears the reply."""

    text: Optional[str] = Field(None, max_length=10_000)
    date: Optional[datetime] = Field(None, description="Reply date, defaults to now")


# =============================================================================
# Health Models
# =============================================================================


class HealthStatus(BaseModel):
    """Individual service health status."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Service status"
    )
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    message: Optional[str] = Field(None, description="Additional status message")


class HealthCheckResponse(BaseModel):
    """Response model for health check endpoint."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(
        ..., description="Overall system status"
    )
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Check timestamp")
    services: dict[str, HealthStatus] = Field(
        default_factory=dict,
        description="Individual service statuses",
    )
    uptime_seconds: Optional[float] = Field(None, description="Server uptime in seconds")


# =============================================================================
# Error Models
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[Any] = Field(None, description="Additional error details")
    path: Optional[str] = Field(None, description="Request path that caused the error")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")


class ValidationErrorDetail(BaseModel):
    """Details for validation errors."""

    field: str = Field(..., description="Field that failed validation")
    message: str = Field(..., description="Validation error message")
    value: Optional[Any] = Field(None, description="Invalid value provided")


class ValidationErrorResponse(BaseModel):
    """Response for validation errors."""

    error: str = Field(default="validation_error", description="Error type")
    message: str = Field(default="Request validation failed", description="Error message")
    errors: list[ValidationErrorDetail] = Field(..., description="List of validation errors")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")
