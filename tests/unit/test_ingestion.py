"""Unit tests for batch ingestion."""

import asyncio
from datetime import datetime, timezone
from uuid import uuid4

import pytest
import pytest_asyncio

from reviewhub.core.exceptions import BatchValidationError, NotFoundError
from reviewhub.models.schemas import IngestionBatch, PeriodKey, Platform
from reviewhub.services import AnalyticsService, IngestionService, ProfileLocks, parse_batch
from reviewhub.storage.memory import InMemoryStore


@pytest.fixture
def locks() -> ProfileLocks:
    return ProfileLocks()


@pytest.fixture
def analytics(store, locks, as_of) -> AnalyticsService:
    return AnalyticsService(store, store, locks, clock=lambda: as_of)


@pytest.fixture
def service(store, analytics, locks) -> IngestionService:
    return IngestionService(store, analytics, locks, max_batch_size=10)


@pytest_asyncio.fixture
async def google_profile(store, make_profile):
    return await store.create_profile(make_profile(Platform.GOOGLE_MAPS))


def google_batch(profile, records) -> IngestionBatch:
    return IngestionBatch(
        platform=Platform.GOOGLE_MAPS,
        business_profile_id=profile.id,
        records=records,
    )


class TestParseBatch:
    """Tests for envelope validation."""

    def test_valid(self):
        profile_id = uuid4()

        batch = parse_batch(
            {"platform": "booking", "business_profile_id": str(profile_id), "records": []}
        )

        assert batch.platform is Platform.BOOKING
        assert batch.business_profile_id == profile_id

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            "records",
            {"platform": "yelp", "business_profile_id": str(uuid4()), "records": []},
            {"platform": "booking", "business_profile_id": "not-a-uuid", "records": []},
            {"platform": "booking", "business_profile_id": str(uuid4()), "records": {}},
            {"platform": "booking", "business_profile_id": str(uuid4())},
        ],
    )
    def test_malformed(self, payload):
        with pytest.raises(BatchValidationError):
            parse_batch(payload)


class TestIngest:
    """Tests for validation, dedup and storage of one batch."""

    @pytest.mark.asyncio
    async def test_stores_reviews_and_metadata(self, service, store, google_profile, raw_google_review):
        records = [raw_google_review, dict(raw_google_review, reviewId="g-2", stars=1)]

        result = await service.ingest(google_batch(google_profile, records))

        assert result.accepted == 2
        assert result.rejected == 0
        assert result.duplicates == 0
        reviews = await store.list_reviews(google_profile.id)
        metadata = await store.list_metadata(google_profile.id)
        assert {r.external_review_id for r in reviews} == {"g-1", "g-2"}
        assert set(metadata) == {r.id for r in reviews}
        urgent = {r.external_review_id for r in reviews if metadata[r.id].is_urgent}
        assert urgent == {"g-2"}

    @pytest.mark.asyncio
    async def test_partial_success(self, service, store, google_profile, raw_google_review):
        records = [raw_google_review, dict(raw_google_review, stars="NaN"), 42]

        result = await service.ingest(google_batch(google_profile, records))

        assert result.accepted == 1
        assert result.rejected == 2
        assert [error.index for error in result.errors] == [1, 2]

    @pytest.mark.asyncio
    async def test_replay_counts_duplicates(self, service, store, google_profile, raw_google_review):
        batch = google_batch(google_profile, [raw_google_review])
        await service.ingest(batch)

        replay = await service.ingest(batch)

        assert replay.accepted == 0
        assert replay.duplicates == 1
        assert len(await store.list_reviews(google_profile.id)) == 1

    @pytest.mark.asyncio
    async def test_in_batch_repeats_are_duplicates(self, service, store, google_profile, raw_google_review):
        result = await service.ingest(
            google_batch(google_profile, [raw_google_review, raw_google_review])
        )

        assert result.accepted == 1
        assert result.duplicates == 1

    @pytest.mark.asyncio
    async def test_duplicate_backfills_missing_response(
        self, service, store, google_profile, raw_google_review
    ):
        unanswered = dict(raw_google_review, stars=1)
        await service.ingest(google_batch(google_profile, [unanswered]))
        answered = dict(
            unanswered,
            text="Edited text that must not overwrite the stored one",
            responseFromOwnerText="Sorry about the wait",
            responseFromOwnerDate="2024-05-31T08:00:00Z",
        )

        result = await service.ingest(google_batch(google_profile, [answered]))

        assert result.duplicates == 1
        (review,) = await store.list_reviews(google_profile.id)
        assert review.text == raw_google_review["text"]
        assert review.response_text == "Sorry about the wait"
        assert review.response_date == datetime(2024, 5, 31, 8, tzinfo=timezone.utc)
        metadata = await store.list_metadata(google_profile.id)
        assert metadata[review.id].is_urgent is False

    @pytest.mark.asyncio
    async def test_updates_last_review_date(self, service, store, google_profile, raw_google_review):
        records = [
            dict(raw_google_review, reviewId="old", publishedAtDate="2024-01-01T00:00:00Z"),
            dict(raw_google_review, reviewId="new", publishedAtDate="2024-05-31T00:00:00Z"),
        ]

        await service.ingest(google_batch(google_profile, records))

        profile = await store.get_profile(google_profile.id)
        assert profile.last_review_date == datetime(2024, 5, 31, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_refreshes_snapshots(self, service, store, google_profile, raw_google_review, as_of):
        await service.ingest(google_batch(google_profile, [raw_google_review]))

        snapshot = await store.get_snapshot(google_profile.id, PeriodKey.LAST_7_DAYS)
        assert snapshot.review_count == 1
        assert snapshot.avg_rating == 4.0
        assert snapshot.computed_at == as_of
        assert (await store.get_distribution(google_profile.id)).total_reviews == 1

    @pytest.mark.asyncio
    async def test_recompute_disabled(self, store, analytics, locks, google_profile, raw_google_review):
        service = IngestionService(store, analytics, locks, recompute_on_ingest=False)

        await service.ingest(google_batch(google_profile, [raw_google_review]))

        assert await store.list_snapshots(google_profile.id) == []


class TestIngestRejections:
    """Tests for whole-batch failures."""

    @pytest.mark.asyncio
    async def test_unknown_profile(self, service, make_profile, raw_google_review):
        with pytest.raises(NotFoundError):
            await service.ingest(google_batch(make_profile(), [raw_google_review]))

    @pytest.mark.asyncio
    async def test_platform_mismatch(self, service, store, make_profile, raw_google_review):
        profile = await store.create_profile(make_profile(Platform.BOOKING))

        with pytest.raises(BatchValidationError):
            await service.ingest(google_batch(profile, [raw_google_review]))

        assert await store.list_reviews(profile.id) == []

    @pytest.mark.asyncio
    async def test_oversized_batch(self, service, store, google_profile, raw_google_review):
        records = [dict(raw_google_review, reviewId=f"g-{i}") for i in range(11)]

        with pytest.raises(BatchValidationError):
            await service.ingest(google_batch(google_profile, records))

        assert await store.list_reviews(google_profile.id) == []


class RecordingStore(InMemoryStore):
    """In-memory store whose writes yield to the event loop and log entry/exit."""

    def __init__(self):
        super().__init__()
        self.events: list[str] = []

    async def insert_reviews(self, reviews):
        self.events.append("insert:start")
        await asyncio.sleep(0.01)
        count = await super().insert_reviews(reviews)
        self.events.append("insert:end")
        return count

    async def put_snapshots(self, snapshots):
        self.events.append("snapshots:start")
        await asyncio.sleep(0.01)
        await super().put_snapshots(snapshots)
        self.events.append("snapshots:end")


class TestProfileSerialization:
    """Ingest and recompute of one profile never interleave."""

    @pytest.mark.asyncio
    async def test_ingest_and_recompute_same_profile(self, make_profile, raw_google_review, as_of):
        store = RecordingStore()
        locks = ProfileLocks()
        analytics = AnalyticsService(store, store, locks, clock=lambda: as_of)
        service = IngestionService(store, analytics, locks)
        profile = await store.create_profile(make_profile(Platform.GOOGLE_MAPS))

        await asyncio.gather(
            service.ingest(google_batch(profile, [raw_google_review])),
            analytics.recompute(profile.id),
            service.ingest(google_batch(profile, [dict(raw_google_review, reviewId="g-2")])),
        )

        pairs = list(zip(store.events[::2], store.events[1::2]))
        assert len(pairs) * 2 == len(store.events)
        for start, end in pairs:
            assert start.endswith(":start")
            assert end == start.replace(":start", ":end")
        snapshot = await store.get_snapshot(profile.id, PeriodKey.ALL_TIME)
        assert snapshot.review_count == 2

    @pytest.mark.asyncio
    async def test_different_profiles_do_not_contend(
        self, service, store, locks, make_profile, raw_google_review
    ):
        busy = await store.create_profile(make_profile(Platform.GOOGLE_MAPS))
        idle = await store.create_profile(make_profile(Platform.GOOGLE_MAPS))

        async with locks.get(busy.id):
            result = await asyncio.wait_for(
                service.ingest(google_batch(idle, [raw_google_review])), timeout=1
            )

        assert result.accepted == 1

    @pytest.mark.asyncio
    async def test_profile_deleted_while_waiting_for_lock(
        self, service, store, locks, google_profile, raw_google_review
    ):
        lock = locks.get(google_profile.id)
        await lock.acquire()
        pending = asyncio.create_task(
            service.ingest(google_batch(google_profile, [raw_google_review]))
        )
        await asyncio.sleep(0.01)
        await store.delete_profile(google_profile.id)
        lock.release()

        with pytest.raises(NotFoundError):
            await pending

        assert store.reviews == {}
        assert store.metadata == {}
        assert store.snapshots == {}
