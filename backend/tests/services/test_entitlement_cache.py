"""Tests for the Redis subscription-snapshot cache and entitlement resolution."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import select

from mealplanner.db.models.subscription import TrainerSubscription
from mealplanner.domain.tiers import SubscriptionStatus, Tier
from mealplanner.services import entitlement_service
from mealplanner.services.entitlement_cache import EntitlementCache, SubscriptionSnapshot
from mealplanner.services.entitlement_service import (
    invalidate_entitlements,
    load_snapshot,
    resolve_trainer_entitlements,
)

pytestmark = pytest.mark.integration


async def test_cache_round_trip_with_ttl(fake_redis):
    cache = EntitlementCache(fake_redis, ttl_seconds=60)

    await cache.set("t1", SubscriptionSnapshot(tier="professional", status="active"))

    assert await cache.get("t1") == SubscriptionSnapshot(tier="professional", status="active")
    assert 0 < await fake_redis.ttl("mealplanner:entitlements:t1") <= 60


async def test_cache_miss_and_invalidate(fake_redis):
    cache = EntitlementCache(fake_redis, ttl_seconds=60)
    await cache.set("t1", SubscriptionSnapshot(tier="starter", status="active"))

    await cache.invalidate("t1")

    assert await cache.get("t1") is None


async def test_redis_failure_reads_as_miss():
    broken = AsyncMock()
    broken.mget.side_effect = RedisConnectionError("down")
    broken.set.side_effect = RedisConnectionError("down")
    cache = EntitlementCache(broken, ttl_seconds=60)

    assert await cache.get("t1") is None
    # Write failures are logged, not raised
    await cache.set("t1", SubscriptionSnapshot(tier="starter", status="active"))


async def test_load_snapshot_fills_cache(db_session, fake_redis, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE, SubscriptionStatus.TRIALING)

    snapshot = await load_snapshot(db_session, trainer.id)

    assert snapshot == SubscriptionSnapshot(tier="enterprise", status="trialing")
    assert await fake_redis.get(f"mealplanner:entitlements:{trainer.id}") is not None


async def _resolve(session_factory, trainer_id: str):
    async with session_factory() as session:
        return await resolve_trainer_entitlements(session, trainer_id)


async def test_cached_snapshot_is_served_until_invalidated(session_factory, fake_redis, create_trainer):
    trainer = await create_trainer(Tier.STARTER)
    await _resolve(session_factory, trainer.id)

    async with session_factory() as session:
        subscription = (
            await session.execute(select(TrainerSubscription).where(TrainerSubscription.trainer_id == trainer.id))
        ).scalar_one()
        subscription.tier = Tier.PROFESSIONAL
        await session.commit()

    _, stale = await _resolve(session_factory, trainer.id)
    assert stale.tier is Tier.STARTER

    await invalidate_entitlements(trainer.id)

    _, fresh = await _resolve(session_factory, trainer.id)
    assert fresh.tier is Tier.PROFESSIONAL


async def test_no_subscription_resolves_to_baseline(db_session, fake_redis, create_trainer):
    trainer = await create_trainer(tier=None)

    snapshot, entitlements = await resolve_trainer_entitlements(db_session, trainer.id)

    assert snapshot.tier is None
    assert entitlements.is_baseline
    assert entitlements.max_customers == 0


async def test_lapsed_status_resolves_to_baseline_without_redis(db_session, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE, SubscriptionStatus.UNPAID)

    snapshot, entitlements = await resolve_trainer_entitlements(db_session, trainer.id)

    assert snapshot == SubscriptionSnapshot(tier="enterprise", status="unpaid")
    assert entitlements.is_baseline
    assert entitlements.accessible_meal_type_names == frozenset()


async def test_snapshot_written_under_old_generation_is_not_served(fake_redis):
    cache = EntitlementCache(fake_redis, ttl_seconds=60)
    generation = await cache.generation("t1")

    await cache.invalidate("t1")
    await cache.set("t1", SubscriptionSnapshot(tier="starter", status="active"), generation)

    assert await cache.get("t1") is None


async def test_read_racing_a_billing_change_does_not_recache_old_status(
    session_factory, fake_redis, create_trainer, monkeypatch
):
    trainer = await create_trainer(Tier.PROFESSIONAL)
    read_subscription = entitlement_service.get_subscription

    async def read_then_billing_change_lands(session, trainer_id):
        subscription = await read_subscription(session, trainer_id)
        # Webhook commits and invalidates after our read, before our cache write
        await invalidate_entitlements(trainer_id)
        return subscription

    monkeypatch.setattr(entitlement_service, "get_subscription", read_then_billing_change_lands)
    snapshot, _ = await _resolve(session_factory, trainer.id)
    monkeypatch.setattr(entitlement_service, "get_subscription", read_subscription)
    assert snapshot.status == "active"

    async with session_factory() as session:
        subscription = (
            await session.execute(select(TrainerSubscription).where(TrainerSubscription.trainer_id == trainer.id))
        ).scalar_one()
        subscription.status = SubscriptionStatus.CANCELED
        await session.commit()

    assert await EntitlementCache(fake_redis).get(trainer.id) is None
    snapshot, entitlements = await _resolve(session_factory, trainer.id)
    assert snapshot.status == "canceled"
    assert entitlements.is_baseline
