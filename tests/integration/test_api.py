"""
End-to-end API tests.

Drives the FastAPI app in-process through httpx.ASGITransport against the
in-memory store. The scraper webhook is left unconfigured, so identifier
writes report notified=false.
"""

from uuid import UUID, uuid4

import httpx
import pytest
import pytest_asyncio

from reviewhub.api.dependencies import get_store, reset_dependencies
from reviewhub.api.main import create_app
from reviewhub.config.settings import get_settings


@pytest_asyncio.fixture
async def client():
    reset_dependencies()
    app = create_app()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    reset_dependencies()


async def configure(client, owner_id="team-1", platform="google_maps", identifier="place-A"):
    response = await client.put(
        "/api/v1/market-identifiers",
        json={"owner_id": owner_id, "platform": platform, "identifier": identifier},
    )
    assert response.status_code == 200
    return response.json()


async def ingest(client, profile_id, records, platform="google_maps"):
    return await client.post(
        "/api/v1/ingest",
        json={"platform": platform, "business_profile_id": profile_id, "records": records},
    )


class TestReviewFlow:
    """Configure an identifier, ingest, then query analytics and act on reviews."""

    @pytest.mark.asyncio
    async def test_full_flow(self, client, raw_google_review):
        configured = await configure(client)
        profile_id = configured["business_profile_id"]
        assert configured["transition"] == "created"
        assert configured["notified"] is False

        bound = await client.get("/api/v1/market-identifiers/team-1/google_maps/profile")
        assert bound.json()["id"] == profile_id

        records = [raw_google_review, dict(raw_google_review, reviewId="g-2", stars=2), {"stars": 9}]
        result = await ingest(client, profile_id, records)
        assert result.status_code == 200
        assert result.json()["accepted"] == 2
        assert result.json()["rejected"] == 1

        replay = await ingest(client, profile_id, records[:2])
        assert replay.json()["duplicates"] == 2

        metric = await client.get(f"/api/v1/analytics/{profile_id}/0")
        assert metric.status_code == 200
        body = metric.json()
        assert body["review_count"] == 2
        assert body["avg_rating"] == pytest.approx(3.0)
        assert body["period_label"] == "All Time"

        comparison = await client.get(f"/api/v1/analytics/{profile_id}/0/comparison")
        assert comparison.status_code == 200
        assert comparison.json()["baseline_period_key"] == 365

        distribution = await client.get(f"/api/v1/analytics/{profile_id}/distribution")
        assert distribution.json()["total_reviews"] == 2

        recomputed = await client.post(f"/api/v1/analytics/{profile_id}/recompute")
        assert len(recomputed.json()) == 7

        (review,) = [
            r for r in await get_store().list_reviews(UUID(profile_id))
            if r.external_review_id == "g-2"
        ]
        read = await client.post(f"/api/v1/reviews/{review.id}/read")
        assert read.json()["is_read"] is True
        important = await client.post(f"/api/v1/reviews/{review.id}/important", json={"value": True})
        assert important.json()["is_important"] is True
        reply = await client.post(f"/api/v1/reviews/{review.id}/reply", json={"text": "Sorry!"})
        assert reply.json()["response_text"] == "Sorry!"
        fetched = await client.get(f"/api/v1/reviews/{review.id}")
        assert fetched.json()["response_text"] == "Sorry!"

        responded = await client.get(f"/api/v1/analytics/{profile_id}/0")
        assert responded.json()["responded_count"] == 1

    @pytest.mark.asyncio
    async def test_changing_identifier_removes_old_data(self, client, raw_google_review):
        first = await configure(client, identifier="place-A")
        await ingest(client, first["business_profile_id"], [raw_google_review])

        second = await configure(client, identifier="place-B")

        assert second["transition"] == "changed"
        assert second["stale_profile_id"] == first["business_profile_id"]
        stale = await client.get(f"/api/v1/analytics/{first['business_profile_id']}/0")
        assert stale.status_code == 404
        listed = await client.get("/api/v1/market-identifiers/team-1")
        assert listed.json()["total"] == 1
        assert listed.json()["identifiers"][0]["identifier"] == "place-B"

    @pytest.mark.asyncio
    async def test_remove_identifier(self, client):
        await configure(client)

        removed = await client.delete("/api/v1/market-identifiers/team-1/google_maps")
        missing = await client.delete("/api/v1/market-identifiers/team-1/google_maps")

        assert removed.status_code == 204
        assert missing.status_code == 404


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_unknown_profile_is_404(self, client):
        response = await client.get(f"/api/v1/analytics/{uuid4()}/7")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_ingest_unknown_profile_is_404(self, client, raw_google_review):
        response = await ingest(client, str(uuid4()), [raw_google_review])

        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [[], {"platform": "yelp", "business_profile_id": str(uuid4()), "records": []}],
    )
    async def test_malformed_batch_is_400(self, client, payload):
        response = await client.post("/api/v1/ingest", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_batch"

    @pytest.mark.asyncio
    async def test_platform_mismatch_is_400(self, client, raw_booking_review):
        configured = await configure(client)

        response = await ingest(
            client, configured["business_profile_id"], [raw_booking_review], platform="booking"
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_shortest_period_comparison_is_400(self, client):
        configured = await configure(client)

        response = await client.get(
            f"/api/v1/analytics/{configured['business_profile_id']}/1/comparison"
        )

        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"

    @pytest.mark.asyncio
    async def test_unknown_period_key_is_422(self, client):
        configured = await configure(client)

        response = await client.get(f"/api/v1/analytics/{configured['business_profile_id']}/42")

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_unknown_review_is_404(self, client):
        assert (await client.get(f"/api/v1/reviews/{uuid4()}")).status_code == 404
        assert (await client.post(f"/api/v1/reviews/{uuid4()}/read")).status_code == 404

    @pytest.mark.asyncio
    async def test_unbound_profile_lookup_is_404(self, client):
        response = await client.get("/api/v1/market-identifiers/team-1/booking/profile")

        assert response.status_code == 404


class TestHealthAndMetrics:
    """Tests for operational endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["services"]["storage"]["status"] == "healthy"
        assert body["services"]["scraper_webhook"]["status"] == "degraded"
        assert body["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_liveness_and_readiness(self, client):
        assert (await client.get("/health/live")).json()["status"] == "alive"
        assert (await client.get("/health/ready")).json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_metrics(self, client, raw_google_review):
        configured = await configure(client)
        await ingest(client, configured["business_profile_id"], [raw_google_review])

        response = await client.get("/metrics/")

        assert response.status_code == 200
        assert "reviewhub_ingested_records_total" in response.text


class TestApiKey:
    """Tests for the API key middleware."""

    @pytest_asyncio.fixture
    async def secured_client(self, monkeypatch):
        monkeypatch.setenv("API_KEY_ENABLED", "true")
        monkeypatch.setenv("API_KEY", "s3cret")
        get_settings.cache_clear()
        reset_dependencies()
        transport = httpx.ASGITransport(app=create_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            yield http
        reset_dependencies()

    @pytest.mark.asyncio
    async def test_key_required(self, secured_client):
        missing = await secured_client.get("/api/v1/market-identifiers/team-1")
        wrong = await secured_client.get(
            "/api/v1/market-identifiers/team-1", headers={"X-API-Key": "nope"}
        )
        valid = await secured_client.get(
            "/api/v1/market-identifiers/team-1", headers={"X-API-Key": "s3cret"}
        )

        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert valid.status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_public(self, secured_client):
        assert (await secured_client.get("/health/live")).status_code == 200
