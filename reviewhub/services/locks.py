"""Per-profile mutual exclusion shared by ingestion and analytics."""

import asyncio
from uuid import UUID


class ProfileLocks:
    """Keyed registry of asyncio locks, one per business profile.

    Ingesting a batch and recomputing snapshots for the same profile are
    serialized; different profiles never contend.

    Usage:
        locks = ProfileLocks()
        async with locks.get(profile_id):
            ...
    """

    def __init__(self):
        self._locks: dict[UUID, asyncio.Lock] = {}

    def get(self, profile_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(profile_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[profile_id] = lock
        return lock

    def discard(self, profile_id: UUID) -> None:
        """Forget the lock of a deleted profile unless someone holds it."""
        lock = self._locks.get(profile_id)
        if lock is not None and not lock.locked():
            del self._locks[profile_id]

    def __len__(self) -> int:
        return len(self._locks)
