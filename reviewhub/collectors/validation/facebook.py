"""Validator for social-page recommendations (Facebook page reviews).

Facebook replaced star ratings with a recommend / don't recommend flag, so
a record is accepted with either an explicit rating or the flag.
"""

from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from reviewhub.collectors.registry import register_validator
from reviewhub.collectors.validation.base import (
    PlatformValidator,
    ValidatedReview,
    checked_rating,
    non_negative_int,
    string_list,
)
from reviewhub.models.schemas import Platform

_RECOMMENDATION_WORDS = {
    "positive": True,
    "recommended": True,
    "recommends": True,
    "yes": True,
    "true": True,
    "negative": False,
    "not_recommended": False,
    "doesnt_recommend": False,
    "no": False,
    "false": False,
}


class FacebookReviewInput(ValidatedReview):
    """Facebook review; `rating` is optional when `is_recommended` is set."""

    rating: Optional[float] = None
    is_recommended: Optional[bool] = None
    likes_count: int = 0
    comments_count: int = 0
    tags: list[str] = Field(default_factory=list)

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        return checked_rating(value, cls.RATING_SCALE)

    @field_validator("is_recommended", mode="before")
    @classmethod
    def coerce_recommendation(cls, value: Any) -> Optional[bool]:
        if isinstance(value, bool) or value is None:
            return value
        if isinstance(value, str):
            return _RECOMMENDATION_WORDS.get(value.strip().lower().replace(" ", "_"))
        return None

    @field_validator("likes_count", "comments_count", mode="before")
    @classmethod
    def coerce_counts(cls, value: Any) -> int:
        return non_negative_int(value)

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, value: Any) -> list[str]:
        return string_list(value)

    @model_validator(mode="after")
    def require_rating_or_recommendation(self) -> "FacebookReviewInput":
        if self.rating is None and self.is_recommended is None:
            raise ValueError("either a rating or a recommendation flag is required")
        return self


@register_validator(Platform.FACEBOOK)
class FacebookValidator(PlatformValidator):
    model = FacebookReviewInput
    field_aliases = {
        "business_identifier": ("facebookPageId", "pageId", "facebookId", "inputUrl", "pageUrl"),
        "rating": ("rating", "stars"),
        "is_recommended": ("isRecommended", "recommended", "recommendationType"),
        "published_at": ("date", "publishedAt", "created_time", "reviewDate"),
        "review_id": ("facebookReviewId", "reviewId", "id", "legacyId"),
        "text": ("text", "reviewText", "review_text"),
        "reviewer_name": ("userName", "user.name", "author", "name"),
        "reviewer_id": ("userId", "user.id"),
        "reviewer_avatar_url": ("userProfilePic", "user.profilePic"),
        "media_urls": ("photos", "images"),
        "response_text": ("responseFromOwnerText", "ownerResponse.text", "pageResponse"),
        "response_date": ("responseFromOwnerDate", "ownerResponse.date"),
        "review_url": ("url", "reviewUrl"),
        "likes_count": ("likesCount", "likes"),
        "comments_count": ("commentsCount", "comments_count"),
        "tags": ("tags",),
    }
