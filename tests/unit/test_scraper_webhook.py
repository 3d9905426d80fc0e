"""Unit tests for the scraper webhook client and its circuit breaker."""

import httpx
import pytest

from reviewhub.config.settings import get_settings
from reviewhub.core.circuit_breaker import CircuitBreaker, CircuitState, get_circuit_breaker
from reviewhub.core.exceptions import CircuitBreakerOpenError, WebhookDeliveryError
from reviewhub.models.schemas import MarketIdentifier, Platform
from reviewhub.services import ScraperWebhookClient, build_payload

WEBHOOK_URL = "https://scraper.test/hooks/identifier"


@pytest.fixture
def identifier() -> MarketIdentifier:
    return MarketIdentifier(owner_id="team-1", platform=Platform.BOOKING, identifier="hotel-42")


def client_returning(status_code: int = 200, calls: list = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def client_raising(exc: Exception) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestBuildPayload:
    """Tests for the notification body."""

    def test_team_defaults_to_owner(self, identifier):
        assert build_payload(identifier) == {
            "teamId": "team-1",
            "platform": "booking",
            "identifier": "hotel-42",
        }

    def test_location_included_when_set(self, identifier):
        identifier = identifier.model_copy(update={"team_id": "t-2", "location_id": "loc-1"})

        payload = build_payload(identifier)

        assert payload["teamId"] == "t-2"
        assert payload["locationId"] == "loc-1"


class TestScraperWebhookClient:
    """Tests for delivery outcomes."""

    @pytest.mark.asyncio
    async def test_delivered(self, identifier):
        calls = []
        hook = ScraperWebhookClient(
            url=WEBHOOK_URL, secret="s3cret", client=client_returning(202, calls)
        )

        assert await hook.notify(identifier) is True
        assert str(calls[0].url) == WEBHOOK_URL
        assert calls[0].method == "POST"

    @pytest.mark.asyncio
    async def test_disabled_without_url(self, identifier):
        hook = ScraperWebhookClient(url="")

        assert hook.enabled is False
        assert await hook.notify(identifier) is False

    @pytest.mark.asyncio
    async def test_url_from_settings(self, monkeypatch, identifier):
        monkeypatch.setenv("SCRAPER_WEBHOOK_URL", WEBHOOK_URL)
        get_settings.cache_clear()

        hook = ScraperWebhookClient(client=client_returning(200))

        assert hook.enabled is True
        assert await hook.notify(identifier) is True

    @pytest.mark.asyncio
    async def test_error_status_raises_on_send(self, identifier):
        hook = ScraperWebhookClient(url=WEBHOOK_URL, client=client_returning(500))

        with pytest.raises(WebhookDeliveryError) as exc_info:
            await hook.send(identifier)

        assert exc_info.value.details["status_code"] == 500

    @pytest.mark.asyncio
    async def test_transport_errors_are_not_raised_by_notify(self, identifier):
        timeout = ScraperWebhookClient(
            url=WEBHOOK_URL, client=client_raising(httpx.ReadTimeout("slow"))
        )
        refused = ScraperWebhookClient(
            url=WEBHOOK_URL, client=client_raising(httpx.ConnectError("refused"))
        )

        assert await timeout.notify(identifier) is False
        assert await refused.notify(identifier) is False

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self, identifier):
        calls = []
        hook = ScraperWebhookClient(url=WEBHOOK_URL, client=client_returning(503, calls))
        breaker = get_circuit_breaker("scraper_webhook")

        for _ in range(breaker.failure_threshold):
            assert await hook.notify(identifier) is False

        assert breaker.state is CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            await hook.send(identifier)
        assert await hook.notify(identifier) is False
        assert len(calls) == breaker.failure_threshold

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, identifier):
        async with ScraperWebhookClient(url=WEBHOOK_URL, client=client_returning()) as hook:
            assert await hook.notify(identifier) is True

        assert hook._client is None


class TestCircuitBreaker:
    """Tests for state transitions."""

    @pytest.mark.asyncio
    async def test_opens_at_threshold(self):
        breaker = CircuitBreaker(name="test_open", failure_threshold=2)

        await breaker.record_failure()
        assert breaker.can_execute() is True
        await breaker.record_failure()

        assert breaker.state is CircuitState.OPEN
        assert breaker.can_execute() is False
        assert breaker.time_until_recovery() > 0

    @pytest.mark.asyncio
    async def test_half_open_then_closed(self):
        breaker = CircuitBreaker(name="test_recover", failure_threshold=1, recovery_timeout=0)

        await breaker.record_failure()

        assert breaker.state is CircuitState.HALF_OPEN
        await breaker.record_success()
        assert breaker.state is CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker(name="test_reopen", failure_threshold=1, recovery_timeout=0)
        await breaker.record_failure()
        assert breaker.state is CircuitState.HALF_OPEN

        breaker.recovery_timeout = 60
        await breaker.record_failure()

        assert breaker.state is CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        breaker = CircuitBreaker(name="test_reset", failure_threshold=2)

        await breaker.record_failure()
        await breaker.record_success()
        await breaker.record_failure()

        assert breaker.state is CircuitState.CLOSED
