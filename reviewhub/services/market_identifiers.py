"""
Market identifier reconciliation.

A market identifier binds (owner, platform) to the external id a scraper
uses for that platform. Writing one is a small state machine:

- unset -> configured (created): binding stored, profile created, scraper notified
- configured -> configured, new value (changed): profile bound to the old
  value deleted with everything it owns, profile for the new value created,
  scraper notified
- configured -> configured, same value (unchanged): timestamps only; the
  scraper is notified again only when forced

The data mutation runs as one store call. The notification runs after it
has committed and can fail without undoing anything.

Usage:
    reconciler = MarketIdentifierReconciler(store, webhook, locks)
    result = await reconciler.configure("team-1", Platform.BOOKING, "hotel-42")
    result.transition  # IdentifierTransition.CREATED
"""

from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

import structlog

from reviewhub.core.exceptions import ReconciliationError
from reviewhub.models.schemas import BusinessProfile, MarketIdentifier, Platform
from reviewhub.monitoring.metrics import record_identifier_transition
from reviewhub.services.locks import ProfileLocks
from reviewhub.services.scraper_webhook import ScraperWebhookClient
from reviewhub.storage.base import ReviewStore

logger = structlog.get_logger(__name__)


class IdentifierTransition(str, Enum):
    CREATED = "created"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass
class ReconcileResult:
    """What a configuration write did."""

    identifier: MarketIdentifier
    transition: IdentifierTransition
    profile: BusinessProfile
    stale_profile_id: Optional[UUID] = None
    notified: bool = False


class MarketIdentifierReconciler:
    """Applies identifier configuration writes and their side effects."""

    def __init__(
        self,
        store: ReviewStore,
        webhook: Optional[ScraperWebhookClient] = None,
        locks: Optional[ProfileLocks] = None,
    ):
        self._store = store
        self._webhook = webhook
        self._locks = locks or ProfileLocks()

    async def configure(
        self,
        owner_id: str,
        platform: Platform,
        identifier: str,
        team_id: Optional[str] = None,
        location_id: Optional[str] = None,
        force: bool = False,
    ) -> ReconcileResult:
        """Bind (owner, platform) to an identifier.

        Args:
            owner_id: Owning team or location.
            platform: Platform the identifier belongs to.
            identifier: External id (place id, page URL, listing URL, ...).
            team_id: Sent to the scraper as teamId; defaults to owner_id there.
            location_id: Sent to the scraper as locationId when set.
            force: Re-send the notification even if nothing changed.

        Returns:
            ReconcileResult describing the transition.
        """
        requested = MarketIdentifier(
            owner_id=owner_id,
            platform=platform,
            identifier=identifier.strip(),
            team_id=team_id,
            location_id=location_id,
        )
        # Ingest and recompute of the profile about to be cascaded must not
        # interleave with its delete
        doomed = await self._bound_profile_id(owner_id, platform, exclude=requested.identifier)
        async with self._lock_for(doomed):
            replacement = await self._store.replace_identifier(requested)
        if replacement.stale_profile_id is not None:
            self._locks.discard(replacement.stale_profile_id)

        if replacement.previous_identifier is None:
            transition = IdentifierTransition.CREATED
        elif replacement.previous_identifier == requested.identifier:
            transition = IdentifierTransition.UNCHANGED
        else:
            transition = IdentifierTransition.CHANGED

        log = logger.bind(
            owner_id=owner_id,
            platform=platform.value,
            transition=transition.value,
        )
        record_identifier_transition(platform.value, transition.value)

        if transition is IdentifierTransition.CHANGED:
            if replacement.stale_profile_id is None:
                error = ReconciliationError(
                    platform.value,
                    "no profile bound to the previous identifier",
                    {"previous_identifier": replacement.previous_identifier},
                )
                log.warning("stale_profile_missing", error=str(error))
            else:
                log.info(
                    "stale_profile_cascaded",
                    stale_profile_id=str(replacement.stale_profile_id),
                    previous_identifier=replacement.previous_identifier,
                )

        notified = False
        if transition is not IdentifierTransition.UNCHANGED or force:
            notified = await self._notify(replacement.identifier)

        log.info(
            "market_identifier_configured",
            identifier=requested.identifier,
            profile_id=str(replacement.profile.id),
            notified=notified,
        )
        return ReconcileResult(
            identifier=replacement.identifier,
            transition=transition,
            profile=replacement.profile,
            stale_profile_id=replacement.stale_profile_id,
            notified=notified,
        )

    async def remove_identifier(self, owner_id: str, platform: Platform) -> bool:
        """Unbind (owner, platform) and delete the bound profile.

        Returns:
            False when nothing was bound.
        """
        doomed = await self._bound_profile_id(owner_id, platform)
        async with self._lock_for(doomed):
            removal = await self._store.remove_identifier(owner_id, platform)
        if removal is None:
            return False
        if removal.deleted_profile_id is not None:
            self._locks.discard(removal.deleted_profile_id)

        record_identifier_transition(platform.value, "removed")
        logger.info(
            "market_identifier_removed",
            owner_id=owner_id,
            platform=platform.value,
            deleted_profile_id=str(removal.deleted_profile_id) if removal.deleted_profile_id else None,
        )
        return True

    async def get_identifier(self, owner_id: str, platform: Platform) -> Optional[MarketIdentifier]:
        return await self._store.get_identifier(owner_id, platform)

    async def list_identifiers(self, owner_id: str) -> list[MarketIdentifier]:
        return await self._store.list_identifiers(owner_id)

    async def get_profile(self, owner_id: str, platform: Platform) -> Optional[BusinessProfile]:
        """Business profile bound to the current identifier, if any."""
        identifier = await self._store.get_identifier(owner_id, platform)
        if identifier is None:
            return None
        return await self._store.find_profile(owner_id, platform, identifier.identifier)

    async def _notify(self, identifier: MarketIdentifier) -> bool:
        if self._webhook is None:
            return False
        return await self._webhook.notify(identifier)

    async def _bound_profile_id(
        self, owner_id: str, platform: Platform, exclude: Optional[str] = None
    ) -> Optional[UUID]:
        """Profile bound to the current identifier, unless it equals `exclude`."""
        current = await self._store.get_identifier(owner_id, platform)
        if current is None or current.identifier == exclude:
            return None
        profile = await self._store.find_profile(owner_id, platform, current.identifier)
        return profile.id if profile else None

    def _lock_for(self, profile_id: Optional[UUID]):
        if profile_id is None:
            return nullcontext()
        return self._locks.get(profile_id)
