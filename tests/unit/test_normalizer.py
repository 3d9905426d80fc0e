"""Unit tests for the review normalizer and per-platform transformers."""

from uuid import uuid4

import pytest

from reviewhub.collectors import build_default_normalizer, get_validator
from reviewhub.collectors.normalization import (
    ReviewNormalizer,
    detect_topics,
    deterministic_review_id,
    map_trip_type,
    to_canonical_rating,
)
from reviewhub.models.schemas import Platform, TripType


@pytest.fixture
def normalizer() -> ReviewNormalizer:
    return build_default_normalizer()


def normalize(normalizer, platform, raw, profile_id=None):
    validated = get_validator(platform).validate_record(raw)
    return normalizer.normalize(platform, validated, profile_id or uuid4())


class TestCanonicalRating:
    """Tests for rescaling onto the 1-5 scale."""

    @pytest.mark.parametrize(
        "native,expected",
        [(10, 5.0), (1, 1.0), (5.5, 3.0), (8, pytest.approx(4.111, abs=1e-3))],
    )
    def test_booking_scale(self, native, expected):
        assert to_canonical_rating(native, Platform.BOOKING) == expected

    @pytest.mark.parametrize("platform", [Platform.GOOGLE_MAPS, Platform.TRIPADVISOR, Platform.FACEBOOK])
    def test_five_point_platforms_unchanged(self, platform):
        assert to_canonical_rating(4, platform) == 4.0

    @pytest.mark.parametrize("value", [None, float("nan"), float("inf")])
    def test_invalid_values_become_none(self, value):
        assert to_canonical_rating(value, Platform.BOOKING) is None


class TestHelpers:
    """Tests for trip type mapping, topic detection and generated ids."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("COUPLES", TripType.COUPLE),
            ("Family with young children", TripType.FAMILY_WITH_YOUNG_CHILDREN),
            ("solo-traveller", TripType.SOLO),
            ("Group of friends", TripType.FRIENDS),
            ("business", TripType.BUSINESS),
            ("astronaut", None),
            (None, None),
        ],
    )
    def test_map_trip_type(self, value, expected):
        assert map_trip_type(value) == expected

    def test_detect_topics(self):
        topics, keywords = detect_topics("The room was dirty and the price too high.")

        assert topics == ["pricing", "cleanliness", "room"]
        assert "dirty" in keywords
        assert "price" in keywords

    def test_detect_topics_empty(self):
        assert detect_topics(None) == ([], [])

    def test_generated_id_is_deterministic(self, raw_google_review):
        validated = get_validator(Platform.GOOGLE_MAPS).validate_record(raw_google_review)

        first = deterministic_review_id(Platform.GOOGLE_MAPS, "u-1", validated.published_at, "text")
        second = deterministic_review_id(Platform.GOOGLE_MAPS, "u-1", validated.published_at, "text")
        other = deterministic_review_id(Platform.GOOGLE_MAPS, "u-2", validated.published_at, "text")

        assert first == second
        assert first != other
        assert first.startswith("gen-")


class TestReviewNormalizer:
    """Tests for the transformer registry."""

    def test_all_platforms_registered(self, normalizer):
        assert set(normalizer.list_platforms()) == set(Platform)

    def test_unregistered_platform(self, raw_google_review):
        empty = ReviewNormalizer()
        validated = get_validator(Platform.GOOGLE_MAPS).validate_record(raw_google_review)

        assert not empty.has_transformer(Platform.GOOGLE_MAPS)
        with pytest.raises(ValueError):
            empty.normalize(Platform.GOOGLE_MAPS, validated, uuid4())

    def test_custom_transformer(self, raw_google_review):
        calls = []
        normalizer = build_default_normalizer()
        default = normalizer._transformers[Platform.GOOGLE_MAPS]

        def tracking(validated, profile_id):
            calls.append(profile_id)
            return default(validated, profile_id)

        normalizer.register_transformer(Platform.GOOGLE_MAPS, tracking)
        profile_id = uuid4()
        normalize(normalizer, Platform.GOOGLE_MAPS, raw_google_review, profile_id)

        assert calls == [profile_id]


class TestPlatformTransformers:
    """Tests for the canonical records each platform produces."""

    def test_google(self, normalizer, raw_google_review):
        profile_id = uuid4()
        result = normalize(normalizer, Platform.GOOGLE_MAPS, raw_google_review, profile_id)
        record = result.record

        assert record.business_profile_id == profile_id
        assert record.external_review_id == "g-1"
        assert record.rating == 4.0
        assert record.native_rating == 4.0
        assert record.photo_count == 1
        assert record.likes_count == 2
        assert record.response_text is None
        assert record.response_date is None
        assert result.metadata.review_id == record.id
        assert "wait time" in result.metadata.topics
        assert result.metadata.is_urgent is False

    def test_facebook_recommendation_maps_to_rating(self, normalizer, raw_facebook_review):
        recommended = normalize(normalizer, Platform.FACEBOOK, raw_facebook_review)
        not_recommended = normalize(
            normalizer,
            Platform.FACEBOOK,
            dict(raw_facebook_review, isRecommended=False),
        )

        assert recommended.record.rating == 5.0
        assert recommended.record.is_recommended is True
        assert recommended.record.native_rating is None
        assert not_recommended.record.rating == 1.0
        assert not_recommended.metadata.is_urgent is True

    def test_tripadvisor(self, normalizer, raw_tripadvisor_review):
        result = normalize(normalizer, Platform.TRIPADVISOR, raw_tripadvisor_review)
        record = result.record

        assert record.rating == 2.0
        assert record.trip_type is TripType.COUPLE
        assert record.reviewer_country == "Lisbon, Portugal"
        assert record.helpful_votes == 4
        assert record.sub_ratings == {"cleanliness": 1.0, "sleep_quality": 3.0, "value": None}
        assert result.metadata.is_urgent is True
        assert "cleanliness" in result.metadata.topics

    def test_tripadvisor_platform_keywords_win(self, normalizer, raw_tripadvisor_review):
        raw = dict(
            raw_tripadvisor_review,
            reviewMetadata={"sentiment": -0.5, "keywords": ["Dirty ", "dirty"], "topics": ["Hygiene"]},
        )

        metadata = normalize(normalizer, Platform.TRIPADVISOR, raw).metadata

        assert metadata.sentiment == -0.5
        assert metadata.keywords == ["dirty"]
        assert metadata.topics == ["hygiene"]

    def test_booking(self, normalizer, raw_booking_review):
        record = normalize(normalizer, Platform.BOOKING, raw_booking_review).record

        assert record.rating == 5.0
        assert record.native_rating == 10.0
        assert record.text == "Liked: Great location\nDisliked: Small bathroom"
        assert record.title == "Exceptional"
        assert record.trip_type is TripType.FAMILY_WITH_YOUNG_CHILDREN
        assert record.length_of_stay == 4
        assert record.sub_ratings["cleanliness"] == pytest.approx(4.778, abs=1e-3)
        assert record.sub_ratings["staff"] == 5.0
        assert record.sub_ratings["wifi"] is None
        assert "comfort" not in record.sub_ratings

    def test_booking_minimum_score(self, normalizer, raw_booking_review):
        record = normalize(normalizer, Platform.BOOKING, dict(raw_booking_review, rating=1)).record

        assert record.rating == 1.0

    def test_missing_review_id_is_generated(self, normalizer, raw_google_review):
        raw = {k: v for k, v in raw_google_review.items() if k != "reviewId"}

        first = normalize(normalizer, Platform.GOOGLE_MAPS, raw).record
        second = normalize(normalizer, Platform.GOOGLE_MAPS, raw).record

        assert first.external_review_id.startswith("gen-")
        assert first.external_review_id == second.external_review_id

    def test_response_date_dropped_without_text(self, normalizer, raw_google_review):
        raw = dict(raw_google_review, responseFromOwnerDate="2024-05-31T10:00:00Z")

        record = normalize(normalizer, Platform.GOOGLE_MAPS, raw).record

        assert record.response_text is None
        assert record.response_date is None

    def test_rating_always_within_canonical_range(self, normalizer, raw_booking_review):
        for score in (1, 2.5, 5, 7.3, 9.99, 10):
            record = normalize(
                normalizer, Platform.BOOKING, dict(raw_booking_review, rating=score)
            ).record
            assert 1.0 <= record.rating <= 5.0
