"""
Per-platform validators for scraped review payloads.

Importing this package registers every validator with the registry.
"""

from reviewhub.collectors.validation.base import (
    PlatformValidator,
    ValidatedReview,
    ValidationReport,
    parse_timestamp,
)
from reviewhub.collectors.validation.booking import BookingReviewInput, BookingValidator
from reviewhub.collectors.validation.facebook import FacebookReviewInput, FacebookValidator
from reviewhub.collectors.validation.google import GoogleReviewInput, GoogleValidator
from reviewhub.collectors.validation.tripadvisor import (
    TripAdvisorReviewInput,
    TripAdvisorValidator,
)

__all__ = [
    "BookingReviewInput",
    "BookingValidator",
    "FacebookReviewInput",
    "FacebookValidator",
    "GoogleReviewInput",
    "GoogleValidator",
    "PlatformValidator",
    "TripAdvisorReviewInput",
    "TripAdvisorValidator",
    "ValidatedReview",
    "ValidationReport",
    "parse_timestamp",
]
