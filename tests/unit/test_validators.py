"""Unit tests for per-platform review validation.

Tests alias resolution, strict field allow-lists, native scale bounds and
per-record failure isolation.
"""

import json
from datetime import datetime, timezone

import pytest

from reviewhub.collectors import get_validator, list_validators
from reviewhub.collectors.validation import (
    BookingReviewInput,
    FacebookReviewInput,
    GoogleReviewInput,
    TripAdvisorReviewInput,
    parse_timestamp,
)
from reviewhub.core.exceptions import BatchValidationError, RecordValidationError
from reviewhub.models.schemas import Platform


class TestRegistry:
    """Tests for validator lookup."""

    def test_every_platform_has_a_validator(self):
        assert set(list_validators()) == set(Platform)

    def test_lookup_by_string(self):
        validator = get_validator("booking")

        assert validator.platform is Platform.BOOKING

    def test_unknown_platform(self):
        with pytest.raises(BatchValidationError):
            get_validator("yelp")


class TestParseTimestamp:
    """Tests for scraped date coercion."""

    def test_iso_with_z_suffix(self):
        assert parse_timestamp("2024-05-30T09:15:00.000Z") == datetime(
            2024, 5, 30, 9, 15, tzinfo=timezone.utc
        )

    def test_date_only_string_is_midnight_utc(self):
        assert parse_timestamp("2024-05-20") == datetime(2024, 5, 20, tzinfo=timezone.utc)

    def test_epoch_seconds_and_milliseconds(self):
        expected = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert parse_timestamp(1704067200) == expected
        assert parse_timestamp(1704067200000) == expected

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, {"date": "2024-01-01"}])
    def test_unparseable_values(self, value):
        assert parse_timestamp(value) is None


class TestAliasResolution:
    """Tests for the alias tables shared by all validators."""

    def test_null_alias_falls_through_to_next_spelling(self, raw_google_review):
        raw = dict(raw_google_review, stars=None, rating=3)

        validated = get_validator(Platform.GOOGLE_MAPS).validate_record(raw)

        assert validated.rating == 3.0

    def test_nested_paths(self, raw_tripadvisor_review):
        validated = get_validator(Platform.TRIPADVISOR).validate_record(raw_tripadvisor_review)

        assert validated.reviewer_name == "Chris"
        assert validated.reviewer_id == "tau-1"
        assert validated.reviewer_avatar_url == "https://img.example/avatar.jpg"
        assert validated.reviewer_location == "Lisbon, Portugal"

    def test_unknown_keys_are_dropped(self, raw_booking_review):
        validated = get_validator(Platform.BOOKING).validate_record(raw_booking_review)

        dumped = validated.model_dump()
        assert "unexpectedActorField" not in dumped
        assert "unexpected_actor_field" not in dumped

    def test_unknown_keys_rejected_by_model_directly(self):
        with pytest.raises(ValueError):
            GoogleReviewInput.model_validate(
                {
                    "business_identifier": "p",
                    "rating": 4,
                    "published_at": "2024-01-01",
                    "surprise": True,
                }
            )


class TestGoogleValidator:
    """Tests for map/local-business reviews."""

    def test_valid_record(self, raw_google_review):
        validated = get_validator(Platform.GOOGLE_MAPS).validate_record(raw_google_review)

        assert isinstance(validated, GoogleReviewInput)
        assert validated.business_identifier == "ChIJN1t_tDeuEmsRUsoyG83frY4"
        assert validated.review_id == "g-1"
        assert validated.likes_count == 2
        assert validated.media_urls == ["https://img.example/1.jpg"]
        assert validated.response_text is None

    @pytest.mark.parametrize("stars", [0, 6, "NaN", float("inf"), "great", None])
    def test_invalid_rating_rejected(self, raw_google_review, stars):
        raw = dict(raw_google_review, stars=stars)

        with pytest.raises(RecordValidationError) as exc_info:
            get_validator(Platform.GOOGLE_MAPS).validate_record(raw)

        assert exc_info.value.message.startswith("[google_maps]")

    def test_missing_identifier_rejected(self, raw_google_review):
        raw = {k: v for k, v in raw_google_review.items() if k != "placeId"}

        with pytest.raises(RecordValidationError):
            get_validator(Platform.GOOGLE_MAPS).validate_record(raw)

    def test_unparseable_date_rejected(self, raw_google_review):
        raw = dict(raw_google_review, publishedAtDate="last week")

        with pytest.raises(RecordValidationError):
            get_validator(Platform.GOOGLE_MAPS).validate_record(raw)

    def test_non_mapping_rejected(self):
        with pytest.raises(RecordValidationError):
            get_validator(Platform.GOOGLE_MAPS).validate_record(["not", "a", "record"])


class TestFacebookValidator:
    """Tests for recommendation-style reviews."""

    def test_recommendation_without_rating(self, raw_facebook_review):
        validated = get_validator(Platform.FACEBOOK).validate_record(raw_facebook_review)

        assert isinstance(validated, FacebookReviewInput)
        assert validated.rating is None
        assert validated.is_recommended is True
        assert validated.tags == ["Food", "Service"]

    def test_recommendation_words(self, raw_facebook_review):
        raw = dict(raw_facebook_review)
        del raw["isRecommended"]
        raw["recommendationType"] = "negative"

        validated = get_validator(Platform.FACEBOOK).validate_record(raw)

        assert validated.is_recommended is False

    def test_neither_rating_nor_recommendation_rejected(self, raw_facebook_review):
        raw = dict(raw_facebook_review)
        del raw["isRecommended"]

        with pytest.raises(RecordValidationError):
            get_validator(Platform.FACEBOOK).validate_record(raw)

    def test_explicit_rating_is_bounded(self, raw_facebook_review):
        raw = dict(raw_facebook_review, rating=9)

        with pytest.raises(RecordValidationError):
            get_validator(Platform.FACEBOOK).validate_record(raw)


class TestTripAdvisorValidator:
    """Tests for travel-site reviews."""

    def test_sub_rating_list_form(self, raw_tripadvisor_review):
        validated = get_validator(Platform.TRIPADVISOR).validate_record(raw_tripadvisor_review)

        assert isinstance(validated, TripAdvisorReviewInput)
        assert validated.sub_ratings == {
            "cleanliness": 1.0,
            "sleep_quality": 3.0,
            "value": None,
        }

    def test_sub_rating_dict_form(self, raw_tripadvisor_review):
        raw = dict(raw_tripadvisor_review)
        del raw["subratings"]
        raw["subRatings"] = {"service": 4, "food": "5", "parking": 3}

        validated = get_validator(Platform.TRIPADVISOR).validate_record(raw)

        assert validated.sub_ratings == {"service": 4.0, "food": 5.0}

    def test_owner_response_and_metadata_paths(self, raw_tripadvisor_review):
        raw = dict(
            raw_tripadvisor_review,
            ownerResponse={"text": "Sorry to hear that", "date": "2024-05-22"},
            reviewMetadata={"sentiment": -0.6, "keywords": ["dirty"], "topics": ["cleanliness"]},
        )

        validated = get_validator(Platform.TRIPADVISOR).validate_record(raw)

        assert validated.response_text == "Sorry to hear that"
        assert validated.response_date == datetime(2024, 5, 22, tzinfo=timezone.utc)
        assert validated.sentiment == -0.6
        assert validated.keywords == ["dirty"]

    def test_out_of_range_sentiment_dropped(self, raw_tripadvisor_review):
        raw = dict(raw_tripadvisor_review, reviewMetadata={"sentiment": 3})

        validated = get_validator(Platform.TRIPADVISOR).validate_record(raw)

        assert validated.sentiment is None


class TestBookingValidator:
    """Tests for accommodation-site reviews on the 1-10 scale."""

    def test_valid_record(self, raw_booking_review):
        validated = get_validator(Platform.BOOKING).validate_record(raw_booking_review)

        assert isinstance(validated, BookingReviewInput)
        assert validated.rating == 10.0
        assert validated.liked_text == "Great location"
        assert validated.disliked_text == "Small bathroom"
        assert validated.reviewer_country == "Germany"
        assert validated.guest_type == "Family with young children"
        assert validated.room_type == "Double Room"
        assert validated.length_of_stay == 4

    def test_flat_sub_ratings_collected(self, raw_booking_review):
        validated = get_validator(Platform.BOOKING).validate_record(raw_booking_review)

        # wifi=12 is outside the 1-10 scale
        assert validated.sub_ratings == {"cleanliness": 9.5, "staff": 10.0, "wifi": None}

    @pytest.mark.parametrize("score,accepted", [(1, True), (10, True), (0, False), (10.5, False)])
    def test_native_scale_bounds(self, raw_booking_review, score, accepted):
        raw = dict(raw_booking_review, rating=score)
        validator = get_validator(Platform.BOOKING)

        if accepted:
            assert validator.validate_record(raw).rating == float(score)
        else:
            with pytest.raises(RecordValidationError):
                validator.validate_record(raw)

    def test_score_alias(self, raw_booking_review):
        raw = dict(raw_booking_review)
        del raw["rating"]
        raw["review_score"] = "8.0"

        assert get_validator(Platform.BOOKING).validate_record(raw).rating == 8.0


class TestValidateBatch:
    """Tests for batch validation with partial success."""

    def test_bad_records_do_not_abort_batch(self, raw_google_review):
        records = [
            raw_google_review,
            dict(raw_google_review, stars=float("nan")),
            "garbage",
            dict(raw_google_review, reviewId="g-2", stars=1),
        ]

        report = get_validator(Platform.GOOGLE_MAPS).validate_batch(records)

        assert report.accepted_count == 2
        assert report.rejected == 2
        assert [error.index for error in report.errors] == [1, 2]

    def test_empty_batch(self):
        report = get_validator(Platform.BOOKING).validate_batch([])

        assert report.accepted_count == 0
        assert report.rejected == 0

    def test_rating_beyond_float_range_rejects_only_that_record(self, raw_google_review):
        huge = json.loads("1" + "0" * 400)
        records = [dict(raw_google_review, stars=huge), dict(raw_google_review, reviewId="g-2")]

        report = get_validator(Platform.GOOGLE_MAPS).validate_batch(records)

        assert report.accepted_count == 1
        assert report.rejected == 1
        assert report.errors[0].index == 0
