"""Redis cache of each trainer's (tier, status) subscription snapshot.

Only the snapshot is cached; entitlements are re-resolved from it on every
read so ceiling changes apply immediately on deploy. The cache is best-effort:
Redis failures are logged and callers fall back to the database.

Each trainer also has a generation counter that ``invalidate`` bumps. A
snapshot is stored with the generation observed before its database read and
only served while that generation is current, so a read that raced a billing
change cannot put the old (tier, status) back into the cache.
"""

import json
from dataclasses import dataclass

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from mealplanner.core.config import get_settings
from mealplanner.db.redis import get_redis_or_none, make_key

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SubscriptionSnapshot:
    tier: str | None
    status: str | None


NO_SUBSCRIPTION = SubscriptionSnapshot(tier=None, status=None)


class EntitlementCache:
    """Per-trainer subscription snapshot cache with TTL expiry."""

    def __init__(self, redis: Redis, ttl_seconds: int | None = None):
        self.redis = redis
        self.ttl_seconds = ttl_seconds or get_settings().entitlement_cache_ttl_seconds

    @staticmethod
    def _key(trainer_id: str) -> str:
        return make_key("entitlements", trainer_id)

    @staticmethod
    def _generation_key(trainer_id: str) -> str:
        return make_key("entitlement-generation", trainer_id)

    async def generation(self, trainer_id: str) -> int | None:
        """Current invalidation generation, or None when Redis is unreachable."""
        try:
            raw = await self.redis.get(self._generation_key(trainer_id))
        except RedisError as exc:
            logger.warning("entitlement_cache_read_failed", trainer_id=trainer_id, error=str(exc))
            return None
        return int(raw or 0)

    async def get(self, trainer_id: str) -> SubscriptionSnapshot | None:
        """Return the cached snapshot, or None on a miss or Redis failure."""
        try:
            raw, generation = await self.redis.mget(self._key(trainer_id), self._generation_key(trainer_id))
        except RedisError as exc:
            logger.warning("entitlement_cache_read_failed", trainer_id=trainer_id, error=str(exc))
            return None

        if raw is None:
            return None
        data = json.loads(raw)
        if data.get("generation", 0) != int(generation or 0):
            return None
        return SubscriptionSnapshot(tier=data.get("tier"), status=data.get("status"))

    async def set(self, trainer_id: str, snapshot: SubscriptionSnapshot, generation: int = 0) -> None:
        """Store ``snapshot`` read under ``generation``; see the module docstring."""
        payload = json.dumps({"tier": snapshot.tier, "status": snapshot.status, "generation": generation})
        try:
            await self.redis.set(self._key(trainer_id), payload, ex=self.ttl_seconds)
        except RedisError as exc:
            logger.warning("entitlement_cache_write_failed", trainer_id=trainer_id, error=str(exc))

    async def invalidate(self, trainer_id: str) -> None:
        try:
            await self.redis.incr(self._generation_key(trainer_id))
            await self.redis.delete(self._key(trainer_id))
        except RedisError as exc:
            # Entry still expires via TTL
            logger.error("entitlement_cache_invalidate_failed", trainer_id=trainer_id, error=str(exc))
            return
        logger.info("entitlement_cache_invalidated", trainer_id=trainer_id)


def get_entitlement_cache() -> EntitlementCache | None:
    """Cache bound to the shared Redis client, or None when Redis is not initialized."""
    redis = get_redis_or_none()
    if redis is None:
        return None
    return EntitlementCache(redis)
