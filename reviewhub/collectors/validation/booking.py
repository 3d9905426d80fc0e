"""Validator for accommodation-site reviews (Booking.com, 1-10 scale).

Booking actors have shipped the same fields under many spellings, so the
alias table here is the longest of the four platforms.
"""

from typing import Any, ClassVar, Optional

from pydantic import Field, field_validator

from reviewhub.collectors.registry import register_validator
from reviewhub.collectors.validation.base import (
    PlatformValidator,
    ValidatedReview,
    clean_text,
    nights,
    string_list,
)
from reviewhub.core.numeric import to_number
from reviewhub.models.schemas import SUB_RATING_CATEGORIES, Platform


class BookingReviewInput(ValidatedReview):
    """Booking review on the native 1-10 scale."""

    RATING_SCALE: ClassVar[tuple[int, int]] = (1, 10)

    sub_ratings: dict[str, Optional[float]] = Field(default_factory=dict)
    guest_type: Optional[str] = None
    reviewer_country: Optional[str] = None
    room_type: Optional[str] = None
    length_of_stay: Optional[int] = None
    liked_text: Optional[str] = None
    disliked_text: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("guest_type", "reviewer_country", "room_type", "liked_text", "disliked_text", mode="before")
    @classmethod
    def coerce_strings(cls, value: Any) -> Optional[str]:
        return clean_text(value)

    @field_validator("length_of_stay", mode="before")
    @classmethod
    def coerce_nights(cls, value: Any) -> Optional[int]:
        return nights(value)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, value: Any) -> list[str]:
        return string_list(value)


_SUB_RATING_ALIASES: dict[str, tuple[str, ...]] = {
    "cleanliness": ("cleanliness", "cleanlinessRating", "cleanliness_rating"),
    "comfort": ("comfort", "comfortRating", "comfort_rating"),
    "location": ("location", "locationRating", "location_rating"),
    "facilities": ("facilities", "facilitiesRating", "facilities_rating"),
    "staff": ("staff", "staffRating", "staff_rating"),
    "value_for_money": ("valueForMoney", "valueForMoneyRating", "value_for_money_rating"),
    "wifi": ("wifi", "wifiRating", "wifi_rating"),
}


@register_validator(Platform.BOOKING)
class BookingValidator(PlatformValidator):
    model = BookingReviewInput
    field_aliases = {
        "business_identifier": ("hotelId", "hotel_id", "bookingUrl", "hotelUrl"),
        "rating": ("rating", "review_score", "score"),
        "published_at": ("reviewDate", "review_date", "publishedDate", "date"),
        "review_id": ("reviewId", "review_id", "id"),
        "text": ("text", "review_text", "review", "content"),
        "title": ("reviewTitle", "title", "review_title"),
        "language": ("language",),
        "reviewer_name": (
            "userName",
            "guestName",
            "guest_name",
            "authorName",
            "author",
            "reviewer",
            "reviewerName",
        ),
        "reviewer_country": ("userLocation", "guestCountry", "guest_country", "nationality", "country"),
        "guest_type": ("guestType", "guest_type", "travelerType", "traveller_type"),
        "room_type": ("roomInfo", "roomType", "room_type", "room"),
        "length_of_stay": ("lengthOfStay", "length_of_stay", "nights", "stayLength"),
        "liked_text": (
            "reviewTextParts.Liked",
            "positive",
            "review_positive",
            "liked",
            "likedMost",
            "liked_most",
        ),
        "disliked_text": (
            "reviewTextParts.Disliked",
            "negative",
            "review_negative",
            "disliked",
            "dislikedMost",
            "disliked_most",
        ),
        "media_urls": ("photos", "images"),
        "response_text": ("responseFromOwnerText", "ownerResponse", "hotelResponse"),
        "response_date": ("responseFromOwnerDate", "ownerResponseDate"),
        "review_url": ("reviewUrl", "url"),
        "tags": ("tags",),
    }

    def prepare(self, resolved: dict[str, Any], raw: dict[str, Any]) -> dict[str, Any]:
        """Collect the seven flat sub-rating columns into one mapping."""
        low, high = BookingReviewInput.RATING_SCALE
        sub_ratings: dict[str, Optional[float]] = {}
        for category in SUB_RATING_CATEGORIES[Platform.BOOKING]:
            for key in _SUB_RATING_ALIASES[category]:
                number = to_number(raw.get(key))
                if number is not None:
                    sub_ratings[category] = number if low <= number <= high else None
                    break
        if sub_ratings:
            resolved["sub_ratings"] = sub_ratings
        return resolved
