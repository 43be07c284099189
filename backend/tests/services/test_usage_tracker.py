"""Tests for per-period quota enforcement."""

import asyncio
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from mealplanner.core.exceptions import QuotaExceededError
from mealplanner.domain.entitlements import UsageCounter, resolve_entitlements
from mealplanner.domain.tiers import Tier
from mealplanner.services.entitlement_service import get_subscription
from mealplanner.services.usage_tracker import UsageTracker

pytestmark = pytest.mark.integration


async def _consume(session_factory, trainer_id: str, counter: UsageCounter, times: int = 1, now=None):
    results = []
    for _ in range(times):
        async with session_factory() as session:
            async with session.begin():
                results.append(await UsageTracker(session).check_and_increment(trainer_id, counter, now=now))
    return results


async def _count(session_factory, trainer_id: str, counter: UsageCounter, now=None) -> int:
    async with session_factory() as session:
        period = await UsageTracker(session).get_current_usage(trainer_id, now)
    return getattr(period, counter.column) if period is not None else 0


# ============================================================================
# Ceilings
# ============================================================================


async def test_starter_allows_nine_customers_then_denies(session_factory, create_trainer):
    trainer = await create_trainer(Tier.STARTER)

    results = await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, times=10)

    assert [r.allowed for r in results] == [True] * 9 + [False]
    assert results[8].current_count == 9
    assert results[9].current_count == 9
    assert results[9].limit == 9
    assert await _count(session_factory, trainer.id, UsageCounter.CUSTOMERS) == 9


async def test_professional_at_nineteen_reaches_twenty_then_raises(session_factory, create_trainer):
    trainer = await create_trainer(Tier.PROFESSIONAL)
    await _consume(session_factory, trainer.id, UsageCounter.MEAL_PLANS, times=19)

    async with session_factory() as session:
        async with session.begin():
            check = await UsageTracker(session).enforce(trainer.id, UsageCounter.MEAL_PLANS)
    assert check.allowed
    assert check.current_count == 20

    with pytest.raises(QuotaExceededError) as exc_info:
        async with session_factory() as session:
            async with session.begin():
                await UsageTracker(session).enforce(trainer.id, UsageCounter.MEAL_PLANS)

    err = exc_info.value
    assert err.resource == "meal_plans"
    assert err.limit == 20
    assert err.current == 20
    assert err.tier == "professional"
    assert err.upgrade_tier == "enterprise"
    assert err.status_code == 429
    assert await _count(session_factory, trainer.id, UsageCounter.MEAL_PLANS) == 20


async def test_enterprise_is_unlimited(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE)

    results = await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, times=30)

    assert all(r.allowed for r in results)
    assert results[-1].current_count == 30
    assert results[-1].limit is None


async def test_lapsed_subscription_is_denied_without_writing(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE, status="canceled")

    [result] = await _consume(session_factory, trainer.id, UsageCounter.MEAL_PLANS)

    assert not result.allowed
    assert result.limit == 0
    async with session_factory() as session:
        assert await UsageTracker(session).get_current_usage(trainer.id) is None


async def test_trainer_without_subscription_is_denied(session_factory, create_trainer):
    trainer = await create_trainer(tier=None)

    [result] = await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS)

    assert not result.allowed
    assert result.current_count == 0


async def test_export_counter_follows_format_access(session_factory, create_trainer):
    trainer = await create_trainer(Tier.STARTER)

    pdf, csv = (
        (await _consume(session_factory, trainer.id, UsageCounter.EXPORTS_PDF))[0],
        (await _consume(session_factory, trainer.id, UsageCounter.EXPORTS_CSV))[0],
    )

    assert pdf.allowed and pdf.limit is None
    assert not csv.allowed and csv.limit == 0


async def test_denied_increment_rolls_back_with_caller(session_factory, create_trainer):
    """A counter increment is undone if the guarded write fails afterwards."""
    trainer = await create_trainer(Tier.STARTER)

    with pytest.raises(RuntimeError):
        async with session_factory() as session:
            async with session.begin():
                await UsageTracker(session).enforce(trainer.id, UsageCounter.CUSTOMERS)
                raise RuntimeError("insert failed")

    assert await _count(session_factory, trainer.id, UsageCounter.CUSTOMERS) == 0


# ============================================================================
# Concurrency
# ============================================================================


async def test_concurrent_increments_never_exceed_limit(session_factory, create_trainer):
    trainer = await create_trainer(Tier.STARTER)
    await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, times=5)

    async def attempt():
        async with session_factory() as session:
            async with session.begin():
                return await UsageTracker(session).check_and_increment(trainer.id, UsageCounter.CUSTOMERS)

    results = await asyncio.gather(*(attempt() for _ in range(10)))

    assert sum(r.allowed for r in results) == 4
    assert await _count(session_factory, trainer.id, UsageCounter.CUSTOMERS) == 9


async def test_concurrent_first_use_creates_one_period_row(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE)

    async def attempt():
        async with session_factory() as session:
            async with session.begin():
                return await UsageTracker(session).check_and_increment(trainer.id, UsageCounter.MEAL_PLANS)

    results = await asyncio.gather(*(attempt() for _ in range(6)))

    assert all(r.allowed for r in results)
    assert sorted(r.current_count for r in results) == [1, 2, 3, 4, 5, 6]


# ============================================================================
# Periods
# ============================================================================


def test_period_bounds_default_to_calendar_month():
    start, end = UsageTracker._get_period_bounds(None, datetime(2030, 2, 14, 9, 0, tzinfo=UTC))

    assert start == datetime(2030, 2, 1, tzinfo=UTC)
    assert end == datetime(2030, 3, 1, tzinfo=UTC)


def test_period_bounds_december_rolls_into_next_year():
    start, end = UsageTracker._get_period_bounds(None, datetime(2030, 12, 31, 23, 59, tzinfo=UTC))

    assert start == datetime(2030, 12, 1, tzinfo=UTC)
    assert end == datetime(2031, 1, 1, tzinfo=UTC)


def test_period_bounds_use_subscription_period():
    subscription = SimpleNamespace(
        current_period_start=datetime(2030, 1, 10, tzinfo=UTC),
        current_period_end=datetime(2030, 2, 10, tzinfo=UTC),
    )

    start, end = UsageTracker._get_period_bounds(subscription, datetime(2030, 2, 1, tzinfo=UTC))

    assert (start, end) == (subscription.current_period_start, subscription.current_period_end)


def test_period_bounds_hold_ended_period_until_renewal():
    subscription = SimpleNamespace(
        current_period_start=datetime(2030, 1, 10, tzinfo=UTC),
        current_period_end=datetime(2030, 2, 10, tzinfo=UTC),
    )

    start, end = UsageTracker._get_period_bounds(subscription, datetime(2030, 2, 11, tzinfo=UTC))

    assert (start, end) == (subscription.current_period_start, subscription.current_period_end)


def test_period_bounds_before_subscription_start_use_month():
    subscription = SimpleNamespace(
        current_period_start=datetime(2030, 1, 10, tzinfo=UTC),
        current_period_end=datetime(2030, 2, 10, tzinfo=UTC),
    )

    start, _ = UsageTracker._get_period_bounds(subscription, datetime(2030, 1, 5, tzinfo=UTC))

    assert start == datetime(2030, 1, 1, tzinfo=UTC)


async def test_new_period_starts_from_zero(session_factory, create_trainer):
    trainer = await create_trainer(Tier.STARTER)
    january = datetime(2030, 1, 15, tzinfo=UTC)
    february = datetime(2030, 2, 15, tzinfo=UTC)

    await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, times=9, now=january)
    [result] = await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, now=february)

    assert result.allowed
    assert result.current_count == 1


async def test_align_period_folds_overlapping_row_into_subscription_period(session_factory, create_trainer):
    trainer = await create_trainer(Tier.STARTER)
    october = datetime(2030, 10, 20, tzinfo=UTC)
    await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, times=4, now=october)
    await _consume(session_factory, trainer.id, UsageCounter.MEAL_PLANS, times=2, now=october)

    async with session_factory() as session:
        async with session.begin():
            subscription = await get_subscription(session, trainer.id)
            subscription.current_period_start = datetime(2030, 10, 18, tzinfo=UTC)
            subscription.current_period_end = datetime(2030, 11, 18, tzinfo=UTC)
            await session.flush()
            await UsageTracker(session).align_period(trainer.id, now=october)

    async with session_factory() as session:
        period = await UsageTracker(session).get_current_usage(trainer.id, october)
    assert period.period_start.replace(tzinfo=UTC) == datetime(2030, 10, 18, tzinfo=UTC)
    assert period.customers_count == 4
    assert period.meal_plans_count == 2

    [next_add] = await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, now=october)
    assert next_add.current_count == 5


async def test_summarize_reports_percentages(session_factory, create_trainer):
    trainer = await create_trainer(Tier.PROFESSIONAL)
    await _consume(session_factory, trainer.id, UsageCounter.CUSTOMERS, times=5)

    async with session_factory() as session:
        summary = await UsageTracker(session).summarize(trainer.id, resolve_entitlements(Tier.PROFESSIONAL))

    assert summary["counters"]["customers"] == {"used": 5, "limit": 20, "percentage": 25}
    assert summary["counters"]["exports_pdf"] == {"used": 0, "limit": None, "percentage": 0}
    assert summary["counters"]["exports_excel"]["limit"] == 0
