"""Base validator for scraped review payloads.

Each platform validator owns an alias table mapping a canonical field to
the ordered list of keys the scraping actors have used for it over time.
Alias resolution picks the first non-null candidate, so a key that is
present but null falls through to the next spelling. Only canonical fields
survive resolution; everything else the actor sent is dropped before the
pydantic model sees the record.
"""

import re
from abc import ABC
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, ClassVar, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from reviewhub.core.exceptions import RecordValidationError
from reviewhub.core.numeric import to_number
from reviewhub.models.schemas import Platform, RejectedRecord

logger = structlog.get_logger(__name__)

_MISSING = object()

# Epoch values above this are treated as milliseconds
_EPOCH_MS_THRESHOLD = 10_000_000_000


# =============================================================================
# Coercion helpers
# =============================================================================


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce a scraped date value to an aware UTC datetime.

    Accepts datetimes, dates, ISO-8601 strings (with or without "Z"),
    date-only strings and epoch seconds or milliseconds. Returns None for
    anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif to_number(value) is not None:
        seconds = to_number(value)
        if seconds > _EPOCH_MS_THRESHOLD:
            seconds = seconds / 1000.0
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def clean_text(value: Any) -> Optional[str]:
    """Strip strings; blank or non-string values become None."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def string_list(value: Any) -> list[str]:
    """Keep the non-blank strings of a list; anything else becomes []."""
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def non_negative_int(value: Any) -> int:
    """Counts (likes, votes, photos) default to 0 when missing or invalid."""
    number = to_number(value)
    if number is None or number < 0:
        return 0
    return int(number)


def checked_rating(value: Any, scale: tuple[int, int]) -> float:
    """Coerce a rating and enforce the native scale.

    Raises:
        ValueError: If the value is not a finite number inside the scale.
    """
    number = to_number(value)
    if number is None:
        raise ValueError("rating must be a finite number")
    low, high = scale
    if not low <= number <= high:
        raise ValueError(f"rating must be between {low} and {high}, got {number}")
    return number


_NIGHTS_PATTERN = re.compile(r"(\d+)")


def nights(value: Any) -> Optional[int]:
    """Parse a stay length given as a number or text such as '3 nights'."""
    if isinstance(value, str):
        match = _NIGHTS_PATTERN.search(value)
        return int(match.group(1)) if match else None
    number = to_number(value)
    if number is None or number < 0:
        return None
    return int(number)


# =============================================================================
# Validated review base model
# =============================================================================


class ValidatedReview(BaseModel):
    """Structurally sound review, still on its platform's native scale.

    Subclasses set RATING_SCALE and add platform-specific fields.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    RATING_SCALE: ClassVar[tuple[int, int]] = (1, 5)

    business_identifier: str = Field(..., min_length=1)
    rating: float
    published_at: datetime

    review_id: Optional[str] = None
    text: Optional[str] = None
    title: Optional[str] = None
    language: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_id: Optional[str] = None
    reviewer_avatar_url: Optional[str] = None
    media_urls: list[str] = Field(default_factory=list)
    response_text: Optional[str] = None
    response_date: Optional[datetime] = None
    review_url: Optional[str] = None

    @field_validator("business_identifier", mode="before")
    @classmethod
    def coerce_identifier(cls, value: Any) -> Any:
        return clean_text(value)

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, value: Any) -> float:
        return checked_rating(value, cls.RATING_SCALE)

    @field_validator("published_at", mode="before")
    @classmethod
    def coerce_published_at(cls, value: Any) -> datetime:
        parsed = parse_timestamp(value)
        if parsed is None:
            raise ValueError("publish date is missing or unparseable")
        return parsed

    @field_validator("response_date", mode="before")
    @classmethod
    def coerce_optional_date(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator(
        "review_id",
        "text",
        "title",
        "language",
        "reviewer_name",
        "reviewer_id",
        "reviewer_avatar_url",
        "response_text",
        "review_url",
        mode="before",
    )
    @classmethod
    def coerce_optional_text(cls, value: Any) -> Optional[str]:
        return clean_text(value)

    @field_validator("media_urls", mode="before")
    @classmethod
    def coerce_media(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            value = [value]
        urls = []
        for item in value if isinstance(value, (list, tuple)) else []:
            # Some actors send image objects instead of plain URLs
            if isinstance(item, Mapping):
                item = item.get("url") or item.get("image")
            if isinstance(item, str) and item.strip():
                urls.append(item.strip())
        return urls


# =============================================================================
# Validator
# =============================================================================


class ValidationReport(BaseModel):
    """Outcome of validating one batch for one platform."""

    accepted: list[ValidatedReview] = Field(default_factory=list)
    rejected: int = 0
    errors: list[RejectedRecord] = Field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)


class PlatformValidator(ABC):
    """Validates raw records from one platform's scraping actor.

    Subclasses declare:
        platform: the Platform they handle
        model: the ValidatedReview subclass to build
        field_aliases: canonical field -> candidate keys (dotted for nesting)
    """

    platform: ClassVar[Platform]
    model: ClassVar[type[ValidatedReview]]
    field_aliases: ClassVar[dict[str, tuple[str, ...]]]

    def resolve_aliases(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Build the canonical dict from whichever aliases the actor used."""
        resolved: dict[str, Any] = {}
        for field_name, candidates in self.field_aliases.items():
            for key in candidates:
                value = _lookup(raw, key)
                if value is not _MISSING and value is not None:
                    resolved[field_name] = value
                    break
        return resolved

    def prepare(self, resolved: dict[str, Any], raw: Mapping[str, Any]) -> dict[str, Any]:
        """Platform hook to derive fields before model validation."""
        return resolved

    def validate_record(self, raw: Any) -> ValidatedReview:
        """Validate a single raw record.

        Raises:
            RecordValidationError: If the record is not a mapping or fails
                any structural, type or range check.
        """
        if not isinstance(raw, Mapping):
            raise RecordValidationError(
                self.platform.value,
                f"record must be an object, got {type(raw).__name__}",
            )

        resolved = self.prepare(self.resolve_aliases(raw), raw)
        try:
            return self.model.model_validate(resolved)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise RecordValidationError(
                self.platform.value,
                f"{location}: {first.get('msg')}" if location else str(first.get("msg")),
                {"error_count": e.error_count()},
            ) from e

    def validate_batch(self, records: list[Any]) -> ValidationReport:
        """Validate every record, skipping the bad ones.

        One malformed record never aborts the batch; it is counted in
        `rejected` and described in `errors`.
        """
        report = ValidationReport()
        for index, raw in enumerate(records):
            try:
                report.accepted.append(self.validate_record(raw))
            except RecordValidationError as e:
                report.rejected += 1
                report.errors.append(RejectedRecord(index=index, reason=e.message))
                logger.warning(
                    "review_record_rejected",
                    platform=self.platform.value,
                    index=index,
                    reason=e.message,
                )

        logger.info(
            "review_batch_validated",
            platform=self.platform.value,
            accepted=report.accepted_count,
            rejected=report.rejected,
        )
        return report


def _lookup(raw: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted key path against nested mappings."""
    current: Any = raw
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current
