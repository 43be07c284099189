"""Shared Redis client used for best-effort caches."""

import redis.asyncio as redis

from mealplanner.core.config import get_settings

KEY_PREFIX = "mealplanner"

_redis: redis.Redis | None = None


def make_key(*parts: str) -> str:
    """Build a namespaced key, e.g. ``mealplanner:entitlements:<trainer_id>``."""
    return ":".join((KEY_PREFIX, *parts))


async def init_redis(url: str | None = None) -> None:
    """Connect the shared client and verify the server answers."""
    global _redis

    if _redis is not None:
        return

    _redis = redis.from_url(
        url or get_settings().redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await _redis.ping()


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis_or_none() -> redis.Redis | None:
    """Shared client for optional caching; None when Redis is not configured."""
    return _redis
