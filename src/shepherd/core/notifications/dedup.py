"""Event id claims so a re-emitted event is delivered at most once.

Redis ``SET NX EX`` is used when available, which makes the claim hold across
worker processes. Without Redis, claims are kept in a per-process TTL map.
"""

import time
from collections import OrderedDict
from uuid import UUID

from src.shepherd.core.redis import get_redis

PREFIX_NOTIFICATION_EVENT = "notification_event"


class EventDeduplicator:
    def __init__(self, ttl_seconds: int, max_local_entries: int = 10_000):
        self.ttl_seconds = ttl_seconds
        self.max_local_entries = max_local_entries
        self._local: OrderedDict[UUID, float] = OrderedDict()

    async def claim(self, event_id: UUID) -> bool:
        """Claim an event id. Returns False if it was already claimed."""
        redis = await get_redis()
        if redis is not None:
            claimed = await redis.set(
                f"{PREFIX_NOTIFICATION_EVENT}:{event_id}", "1", nx=True, ex=self.ttl_seconds
            )
            return bool(claimed)
        return self._claim_local(event_id)

    async def release(self, event_id: UUID) -> None:
        """Drop a claim after a failed delivery so a later re-emit can deliver."""
        redis = await get_redis()
        if redis is not None:
            await redis.delete(f"{PREFIX_NOTIFICATION_EVENT}:{event_id}")
            return
        self._local.pop(event_id, None)

    def _claim_local(self, event_id: UUID) -> bool:
        now = time.monotonic()
        self._evict_expired(now)
        if event_id in self._local:
            return False
        self._local[event_id] = now + self.ttl_seconds
        while len(self._local) > self.max_local_entries:
            self._local.popitem(last=False)
        return True

    def _evict_expired(self, now: float) -> None:
        while self._local:
            oldest_id, expires_at = next(iter(self._local.items()))
            if expires_at > now:
                break
            del self._local[oldest_id]
