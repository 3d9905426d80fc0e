"""Unit tests for snapshot serving and review workflow actions."""

from datetime import timedelta
from uuid import uuid4

import pytest
import pytest_asyncio

from reviewhub.collectors import build_default_normalizer, get_validator
from reviewhub.core.exceptions import NotFoundError, PermanentError
from reviewhub.models.schemas import PeriodKey, Platform
from reviewhub.services import AnalyticsService, ProfileLocks


class Clock:
    """Settable clock injected into the service."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock(as_of) -> Clock:
    return Clock(as_of)


@pytest.fixture
def service(store, clock) -> AnalyticsService:
    return AnalyticsService(store, store, ProfileLocks(), max_age_seconds=600, clock=clock)


@pytest_asyncio.fixture
async def seeded(store, make_profile, raw_google_review):
    """A Google profile holding one 1-star unanswered review and one 4-star review."""
    profile = await store.create_profile(make_profile(Platform.GOOGLE_MAPS))
    validator = get_validator(Platform.GOOGLE_MAPS)
    normalizer = build_default_normalizer()
    items = [
        normalizer.normalize(
            Platform.GOOGLE_MAPS,
            validator.validate_record(dict(raw_google_review, reviewId=review_id, stars=stars)),
            profile.id,
        )
        for review_id, stars in (("low", 1), ("high", 4))
    ]
    await store.insert_reviews(items)
    return profile, {item.record.external_review_id: item.record for item in items}


class TestGetMetric:
    """Tests for stale-while-recompute snapshot serving."""

    @pytest.mark.asyncio
    async def test_computes_when_missing(self, service, store, seeded, as_of):
        profile, _ = seeded

        snapshot = await service.get_metric(profile.id, PeriodKey.LAST_7_DAYS)

        assert snapshot.review_count == 2
        assert snapshot.avg_rating == pytest.approx(2.5)
        assert snapshot.computed_at == as_of
        assert len(await store.list_snapshots(profile.id)) == len(PeriodKey)

    @pytest.mark.asyncio
    async def test_serves_fresh_snapshot(self, service, store, seeded, clock, as_of):
        profile, reviews = seeded
        await service.get_metric(profile.id, PeriodKey.ALL_TIME)
        # Change the data behind the service's back; a fresh snapshot must not notice
        del store.reviews[reviews["high"].id]
        clock.now = as_of + timedelta(seconds=300)

        snapshot = await service.get_metric(profile.id, PeriodKey.ALL_TIME)

        assert snapshot.review_count == 2
        assert snapshot.computed_at == as_of

    @pytest.mark.asyncio
    async def test_recomputes_stale_snapshot(self, service, store, seeded, clock, as_of):
        profile, reviews = seeded
        await service.get_metric(profile.id, PeriodKey.ALL_TIME)
        del store.reviews[reviews["high"].id]
        clock.now = as_of + timedelta(seconds=601)

        snapshot = await service.get_metric(profile.id, PeriodKey.ALL_TIME)

        assert snapshot.review_count == 1
        assert snapshot.computed_at == clock.now

    @pytest.mark.asyncio
    async def test_unknown_profile(self, service):
        with pytest.raises(NotFoundError):
            await service.get_metric(uuid4(), PeriodKey.ALL_TIME)

    @pytest.mark.asyncio
    async def test_recompute(self, service, store, seeded):
        profile, _ = seeded

        snapshots = await service.recompute(profile.id)

        assert [s.period_key for s in snapshots] == list(PeriodKey)
        assert (await store.get_distribution(profile.id)).total_reviews == 2


class TestComparisonAndDistribution:
    """Tests for derived views."""

    @pytest.mark.asyncio
    async def test_comparison_uses_next_shorter_window(self, service, seeded):
        profile, _ = seeded

        comparison = await service.get_comparison(profile.id, PeriodKey.LAST_30_DAYS)

        assert comparison.baseline_period_key is PeriodKey.LAST_7_DAYS
        assert comparison.review_count_change_percent == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_shortest_window_has_no_baseline(self, service, seeded):
        profile, _ = seeded

        with pytest.raises(PermanentError):
            await service.get_comparison(profile.id, PeriodKey.LAST_DAY)

    @pytest.mark.asyncio
    async def test_distribution_computed_on_demand(self, service, store, seeded):
        profile, _ = seeded
        assert await store.get_distribution(profile.id) is None

        distribution = await service.get_distribution(profile.id)

        assert distribution.ratings == {"1": 1, "2": 0, "3": 0, "4": 1, "5": 0}


class TestWorkflowActions:
    """Tests for read / important / reply."""

    @pytest.mark.asyncio
    async def test_mark_read_and_important(self, service, seeded):
        _, reviews = seeded
        review_id = reviews["high"].id

        read = await service.mark_read(review_id)
        important = await service.mark_important(review_id)
        unread = await service.mark_read(review_id, False)

        assert read.is_read is True
        assert important.is_important is True
        assert unread.is_read is False
        assert unread.is_important is True

    @pytest.mark.asyncio
    async def test_unknown_review(self, service):
        with pytest.raises(NotFoundError):
            await service.mark_read(uuid4())

    @pytest.mark.asyncio
    async def test_reply_clears_urgency_and_recomputes(self, service, store, seeded, as_of):
        profile, reviews = seeded
        low = reviews["low"]
        assert store.metadata[low.id].is_urgent is True

        updated = await service.attach_reply(low.id, "  We are sorry  ")

        assert updated.response_text == "We are sorry"
        assert updated.response_date == as_of
        assert store.metadata[low.id].is_urgent is False
        snapshot = await store.get_snapshot(profile.id, PeriodKey.ALL_TIME)
        assert snapshot.responded_count == 1

    @pytest.mark.asyncio
    async def test_blank_reply_clears_response(self, service, store, seeded):
        _, reviews = seeded
        low = reviews["low"]
        await service.attach_reply(low.id, "Thanks")

        cleared = await service.attach_reply(low.id, "   ")

        assert cleared.response_text is None
        assert cleared.response_date is None
        assert store.metadata[low.id].is_urgent is True
