"""Subscription lookup and entitlement resolution for a trainer."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mealplanner.db.models.subscription import TrainerSubscription
from mealplanner.domain.entitlements import Entitlements, resolve_for_snapshot
from mealplanner.services.entitlement_cache import (
    NO_SUBSCRIPTION,
    SubscriptionSnapshot,
    get_entitlement_cache,
)

logger = structlog.get_logger(__name__)


async def get_subscription(session: AsyncSession, trainer_id: str) -> TrainerSubscription | None:
    result = await session.execute(
        select(TrainerSubscription).where(TrainerSubscription.trainer_id == trainer_id)
    )
    return result.scalar_one_or_none()


def snapshot_of(subscription: TrainerSubscription | None) -> SubscriptionSnapshot:
    if subscription is None:
        return NO_SUBSCRIPTION
    return SubscriptionSnapshot(tier=str(subscription.tier), status=str(subscription.status))


async def load_snapshot(session: AsyncSession, trainer_id: str) -> SubscriptionSnapshot:
    """Cached (tier, status) for the trainer, filling the cache from the database on a miss."""
    cache = get_entitlement_cache()
    generation = None
    if cache is not None:
        cached = await cache.get(trainer_id)
        if cached is not None:
            return cached
        # Read before the database so a concurrent invalidation outdates our write
        generation = await cache.generation(trainer_id)

    snapshot = snapshot_of(await get_subscription(session, trainer_id))
    if cache is not None and generation is not None:
        await cache.set(trainer_id, snapshot, generation)
    return snapshot


async def resolve_trainer_entitlements(
    session: AsyncSession, trainer_id: str
) -> tuple[SubscriptionSnapshot, Entitlements]:
    """Resolve a trainer's entitlements, applying the subscription status check."""
    snapshot = await load_snapshot(session, trainer_id)
    return snapshot, resolve_for_snapshot(snapshot.tier, snapshot.status)


async def invalidate_entitlements(trainer_id: str) -> None:
    cache = get_entitlement_cache()
    if cache is not None:
        await cache.invalidate(trainer_id)
