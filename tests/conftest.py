"""
Pytest Configuration and Shared Fixtures.

This module provides common fixtures for all tests:

- store: fresh InMemoryStore
- make_profile / make_review: builders for stored entities
- raw_google_review, raw_facebook_review, raw_tripadvisor_review,
  raw_booking_review: actor-shaped payloads per platform
- as_of: fixed instant the analytics tests aggregate at
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import pytest

from reviewhub.config.settings import get_settings
from reviewhub.core.circuit_breaker import reset_all_circuit_breakers
from reviewhub.models.schemas import BusinessProfile, Platform, ReviewMetadata, ReviewRecord
from reviewhub.storage.memory import InMemoryStore

AS_OF = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolate_global_state(monkeypatch):
    """Fresh settings and closed circuit breakers for every test."""
    monkeypatch.delenv("SCRAPER_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)
    get_settings.cache_clear()
    reset_all_circuit_breakers()
    yield
    get_settings.cache_clear()
    reset_all_circuit_breakers()


@pytest.fixture
def as_of() -> datetime:
    return AS_OF


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def make_profile():
    """Build a BusinessProfile for a platform."""

    def _make(platform: Platform = Platform.GOOGLE_MAPS, **overrides: Any) -> BusinessProfile:
        fields = {
            "owner_id": "team-1",
            "platform": platform,
            "external_identifier": f"{platform.value}-place-1",
        }
        fields.update(overrides)
        return BusinessProfile(**fields)

    return _make


@pytest.fixture
def make_review():
    """Build a ReviewRecord published `days_ago` days before AS_OF."""

    def _make(profile: BusinessProfile, days_ago: float = 1, **overrides: Any) -> ReviewRecord:
        fields = {
            "business_profile_id": profile.id,
            "platform": profile.platform,
            "external_review_id": f"ext-{uuid4().hex[:12]}",
            "rating": 5.0,
            "published_at": AS_OF - timedelta(days=days_ago),
        }
        fields.update(overrides)
        return ReviewRecord(**fields)

    return _make


@pytest.fixture
def metadata_for():
    """Build the metadata mapping the aggregator expects."""

    def _make(reviews: list[ReviewRecord], **overrides: Any) -> dict:
        return {r.id: ReviewMetadata(review_id=r.id, **overrides) for r in reviews}

    return _make


@pytest.fixture
def raw_google_review() -> dict:
    return {
        "placeId": "ChIJN1t_tDeuEmsRUsoyG83frY4",
        "reviewId": "g-1",
        "stars": 4,
        "publishedAtDate": "2024-05-30T09:15:00.000Z",
        "text": "Friendly staff but we had to wait a long time.",
        "name": "Ana",
        "reviewerId": "u-123",
        "reviewImageUrls": ["https://img.example/1.jpg"],
        "likesCount": 2,
        "responseFromOwnerText": None,
    }


@pytest.fixture
def raw_facebook_review() -> dict:
    return {
        "facebookPageId": "1234567890",
        "facebookReviewId": "fb-1",
        "isRecommended": True,
        "date": "2024-05-29T18:00:00Z",
        "text": "Great place",
        "userName": "Ben",
        "userId": "fbu-9",
        "likesCount": 3,
        "commentsCount": 1,
        "tags": ["Food", "Service"],
    }


@pytest.fixture
def raw_tripadvisor_review() -> dict:
    return {
        "locationId": "d123456",
        "id": "ta-1",
        "rating": 2,
        "publishedDate": "2024-05-20",
        "title": "Disappointing",
        "text": "The room was dirty and the price too high.",
        "user": {
            "name": "Chris",
            "userId": "tau-1",
            "userLocation": "Lisbon, Portugal",
            "avatar": {"image": "https://img.example/avatar.jpg"},
        },
        "tripType": "COUPLES",
        "subratings": [
            {"name": "Cleanliness", "value": 1},
            {"name": "SleepQuality", "rating": 3},
            {"name": "value", "value": 7},
        ],
        "helpfulVotes": 4,
    }


@pytest.fixture
def raw_booking_review() -> dict:
    return {
        "hotelId": "hotel-42",
        "reviewId": "bk-1",
        "rating": 10,
        "reviewDate": "2024-05-25",
        "reviewTitle": "Exceptional",
        "reviewTextParts": {"Liked": "Great location", "Disliked": "Small bathroom"},
        "userName": "Dana",
        "userLocation": "Germany",
        "travelerType": "Family with young children",
        "roomInfo": "Double Room",
        "lengthOfStay": "4 nights",
        "cleanliness": 9.5,
        "staff": 10,
        "wifi": 12,
        "unexpectedActorField": "ignored",
    }
