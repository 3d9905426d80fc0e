"""Outbound notification to the external scraper service.

When a market identifier is configured or changed, the scraper service is
asked to collect data for the new identifier. Delivery is best-effort: a
single attempt guarded by a circuit breaker, no synchronous retry, and
failures are logged and counted rather than raised to the caller of the
configuration action.
"""

from typing import Any, Optional

import httpx
import structlog

from reviewhub.config.settings import get_settings
from reviewhub.core.circuit_breaker import get_circuit_breaker
from reviewhub.core.exceptions import CircuitBreakerOpenError, WebhookDeliveryError
from reviewhub.models.schemas import MarketIdentifier
from reviewhub.monitoring.metrics import record_webhook_delivery

logger = structlog.get_logger(__name__)

_webhook_breaker = get_circuit_breaker("scraper_webhook", failure_threshold=5, recovery_timeout=60)


def build_payload(identifier: MarketIdentifier) -> dict[str, Any]:
    """JSON body for the identifier-configured notification.

    teamId falls back to the owner id when no team is set.
    """
    payload: dict[str, Any] = {
        "teamId": identifier.team_id or identifier.owner_id,
        "platform": identifier.platform.value,
        "identifier": identifier.identifier,
    }
    if identifier.location_id:
        payload["locationId"] = identifier.location_id
    return payload


class ScraperWebhookClient:
    """Async client for the scraper service webhook.

    Example:
        async with ScraperWebhookClient(url="https://scraper.internal/hooks/identifier") as hook:
            delivered = await hook.notify(identifier)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        secret: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            url: Webhook URL. Loads from settings when omitted; None disables delivery.
            secret: Bearer token sent in the Authorization header.
            timeout: Request timeout in seconds.
            client: Pre-built httpx client (tests inject a mock transport).
        """
        settings = get_settings()
        self._url = url if url is not None else settings.scraper_webhook_url
        if secret is None and settings.scraper_webhook_secret:
            secret = settings.scraper_webhook_secret.get_secret_value()
        self._secret = secret
        self._timeout = timeout or settings.scraper_webhook_timeout_seconds
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def __aenter__(self) -> "ScraperWebhookClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._secret:
                headers["Authorization"] = f"Bearer {self._secret}"
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers=headers,
            )
        return self._client

    async def send(self, identifier: MarketIdentifier) -> None:
        """Deliver one notification.

        Raises:
            CircuitBreakerOpenError: When recent deliveries kept failing.
            WebhookDeliveryError: On timeout, transport error or non-2xx status.
        """
        if not _webhook_breaker.can_execute():
            raise CircuitBreakerOpenError("scraper_webhook", _webhook_breaker.time_until_recovery())

        client = await self._ensure_client()
        payload = build_payload(identifier)
        try:
            response = await client.post(self._url, json=payload)
        except httpx.TimeoutException as e:
            await _webhook_breaker.record_failure()
            raise WebhookDeliveryError(
                f"Webhook timeout: {e}", {"platform": payload["platform"]}
            ) from e
        except httpx.RequestError as e:
            await _webhook_breaker.record_failure()
            raise WebhookDeliveryError(
                f"Webhook request failed: {e}", {"platform": payload["platform"]}
            ) from e

        if response.status_code >= 400:
            await _webhook_breaker.record_failure()
            raise WebhookDeliveryError(
                f"Webhook returned {response.status_code}",
                {"platform": payload["platform"], "status_code": response.status_code},
            )

        await _webhook_breaker.record_success()

    async def notify(self, identifier: MarketIdentifier) -> bool:
        """Best-effort delivery. Returns True when the scraper acknowledged it."""
        platform = identifier.platform.value
        if not self.enabled:
            logger.debug("scraper_webhook_disabled", platform=platform)
            record_webhook_delivery(platform, "skipped")
            return False

        try:
            await self.send(identifier)
        except CircuitBreakerOpenError as e:
            logger.warning(
                "scraper_webhook_circuit_open",
                platform=platform,
                recovery_time=e.recovery_time,
            )
            record_webhook_delivery(platform, "circuit_open")
            return False
        except WebhookDeliveryError as e:
            logger.error(
                "scraper_webhook_failed",
                platform=platform,
                owner_id=identifier.owner_id,
                error=e.message,
                details=e.details,
            )
            record_webhook_delivery(platform, "failed")
            return False

        logger.info(
            "scraper_webhook_delivered",
            platform=platform,
            owner_id=identifier.owner_id,
            identifier=identifier.identifier,
        )
        record_webhook_delivery(platform, "delivered")
        return True
