"""Per-period usage counters with atomic check-and-increment."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mealplanner.core.exceptions import QuotaExceededError
from mealplanner.db.models.subscription import TrainerSubscription
from mealplanner.db.models.usage_period import UsagePeriod
from mealplanner.domain.entitlements import (
    Entitlements,
    UsageCounter,
    minimum_tier_for_limit,
    resolve_for_subscription,
)
from mealplanner.services.entitlement_service import get_subscription

logger = structlog.get_logger(__name__)

_usage = UsagePeriod.__table__


@dataclass(frozen=True)
class UsageCheck:
    counter: UsageCounter
    allowed: bool
    current_count: int
    limit: int | None  # None = unlimited


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class UsageTracker:
    """Track per-billing-period consumption against tier ceilings.

    All methods run inside the caller's session and never commit, so a
    counter increment succeeds or rolls back together with the business
    write it guards.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check_and_increment(
        self,
        trainer_id: str,
        counter: UsageCounter,
        now: datetime | None = None,
    ) -> UsageCheck:
        """Increment ``counter`` if the trainer is still under their ceiling.

        The ceiling check and the increment are one conditional UPDATE, so
        concurrent callers can never push the count past the limit.

        Args:
            trainer_id: Trainer whose quota is consumed
            counter: Which counter to consume
            now: Current time (for deterministic testing)

        Returns:
            UsageCheck; on denial the counter is left unchanged
        """
        now = now or datetime.now(UTC)
        subscription = await get_subscription(self.session, trainer_id)
        entitlements = resolve_for_subscription(subscription)
        limit = entitlements.limit_for(counter)
        start, end = self._get_period_bounds(subscription, now)

        if limit == 0:
            current = await self._read_count(trainer_id, counter, start)
            logger.info("quota_denied", trainer_id=trainer_id, resource=counter.value, limit=0, current=current)
            return UsageCheck(counter=counter, allowed=False, current_count=current, limit=0)

        await self._ensure_period(trainer_id, start, end)

        column = _usage.c[counter.column]
        stmt = (
            update(_usage)
            .where(_usage.c.trainer_id == trainer_id, _usage.c.period_start == start)
            .values({column: column + 1})
            .returning(column)
        )
        if limit is not None:
            stmt = stmt.where(column < limit)

        result = await self.session.execute(stmt)
        new_count = result.scalar_one_or_none()

        if new_count is None:
            current = await self._read_count(trainer_id, counter, start)
            logger.info("quota_denied", trainer_id=trainer_id, resource=counter.value, limit=limit, current=current)
            return UsageCheck(counter=counter, allowed=False, current_count=current, limit=limit)

        return UsageCheck(counter=counter, allowed=True, current_count=new_count, limit=limit)

    async def enforce(
        self,
        trainer_id: str,
        counter: UsageCounter,
        now: datetime | None = None,
    ) -> UsageCheck:
        """Like ``check_and_increment`` but raises when the ceiling is reached.

        Raises:
            QuotaExceededError: naming the resource, its limit and current usage
        """
        check = await self.check_and_increment(trainer_id, counter, now=now)
        if check.allowed:
            return check

        subscription = await get_subscription(self.session, trainer_id)
        entitlements = resolve_for_subscription(subscription)
        upgrade = minimum_tier_for_limit(counter, check.current_count)
        raise QuotaExceededError(
            resource=counter.value,
            limit=check.limit or 0,
            current=check.current_count,
            tier=entitlements.tier.value if entitlements.tier else None,
            upgrade_tier=upgrade.value if upgrade and upgrade != entitlements.tier else None,
        )

    async def get_current_usage(self, trainer_id: str, now: datetime | None = None) -> UsagePeriod | None:
        """Return the usage row for the current billing period, if one exists."""
        now = now or datetime.now(UTC)
        subscription = await get_subscription(self.session, trainer_id)
        start, _ = self._get_period_bounds(subscription, now)
        result = await self.session.execute(
            select(UsagePeriod).where(UsagePeriod.trainer_id == trainer_id, UsagePeriod.period_start == start)
        )
        return result.scalar_one_or_none()

    async def start_period(self, trainer_id: str, now: datetime | None = None) -> tuple[datetime, datetime]:
        """Open the usage row for the current billing period (no-op if it exists)."""
        now = now or datetime.now(UTC)
        subscription = await get_subscription(self.session, trainer_id)
        start, end = self._get_period_bounds(subscription, now)
        await self._ensure_period(trainer_id, start, end)
        return start, end

    async def align_period(self, trainer_id: str, now: datetime | None = None) -> None:
        """Fold open usage rows into the subscription's current period.

        Called after a webhook rewrites the period bounds. A row whose window
        overlaps the new period was counting the same stretch of time, so its
        counters move onto the new row instead of restarting at zero. Rows that
        ended at or before the new period start are finished periods and stay.
        """
        start, end = await self.start_period(trainer_id, now)

        result = await self.session.execute(
            select(_usage)
            .where(
                _usage.c.trainer_id == trainer_id,
                _usage.c.period_start != start,
                _usage.c.period_start < end,
                _usage.c.period_end > start,
            )
            .with_for_update()
        )
        overlapping = result.all()

        values = {_usage.c.period_end: end}
        for counter in UsageCounter:
            carried = sum(getattr(row, counter.column) for row in overlapping)
            if carried:
                column = _usage.c[counter.column]
                values[column] = column + carried
        await self.session.execute(
            update(_usage)
            .where(_usage.c.trainer_id == trainer_id, _usage.c.period_start == start)
            .values(values)
        )

        if overlapping:
            await self.session.execute(delete(_usage).where(_usage.c.id.in_([row.id for row in overlapping])))
            logger.info(
                "usage_period_realigned",
                trainer_id=trainer_id,
                period_start=start.isoformat(),
                merged_rows=len(overlapping),
            )

    async def summarize(
        self,
        trainer_id: str,
        entitlements: Entitlements,
        now: datetime | None = None,
    ) -> dict:
        """Build the usage block for API responses.

        Returns:
            {"period_start", "period_end", "counters": {name: {"used", "limit", "percentage"}}}
        """
        now = now or datetime.now(UTC)
        subscription = await get_subscription(self.session, trainer_id)
        start, end = self._get_period_bounds(subscription, now)
        period = await self.get_current_usage(trainer_id, now)

        counters: dict[str, dict] = {}
        for counter in UsageCounter:
            used = getattr(period, counter.column) if period is not None else 0
            limit = entitlements.limit_for(counter)
            percentage = 0 if not limit else min(100, round(used * 100 / limit))
            counters[counter.value] = {"used": used, "limit": limit, "percentage": percentage}

        return {
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "counters": counters,
        }

    async def _read_count(self, trainer_id: str, counter: UsageCounter, period_start: datetime) -> int:
        result = await self.session.execute(
            select(_usage.c[counter.column]).where(
                _usage.c.trainer_id == trainer_id,
                _usage.c.period_start == period_start,
            )
        )
        value = result.scalar_one_or_none()
        return value or 0

    async def _ensure_period(self, trainer_id: str, start: datetime, end: datetime) -> None:
        """Create the (trainer, period) row if missing without racing other requests."""
        values = {
            "id": str(uuid.uuid4()),
            "trainer_id": trainer_id,
            "period_start": start,
            "period_end": end,
            "created_at": datetime.now(UTC),
        }
        dialect = self.session.get_bind().dialect.name

        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            existing = await self._read_period_id(trainer_id, start)
            if existing is not None:
                return
            try:
                async with self.session.begin_nested():
                    self.session.add(UsagePeriod(**values))
            except IntegrityError:
                pass  # created concurrently
            return

        stmt = insert(_usage).values(**values).on_conflict_do_nothing(
            index_elements=["trainer_id", "period_start"]
        )
        await self.session.execute(stmt)

    async def _read_period_id(self, trainer_id: str, start: datetime) -> str | None:
        result = await self.session.execute(
            select(_usage.c.id).where(_usage.c.trainer_id == trainer_id, _usage.c.period_start == start)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _get_period_bounds(
        subscription: TrainerSubscription | None,
        now: datetime | None = None,
    ) -> tuple[datetime, datetime]:
        """Billing period containing ``now``.

        Uses the subscription's current period once it has started. Past
        ``current_period_end`` the same period stays in force until the renewal
        webhook moves the bounds, so a late webhook never resets the counters.
        Without stored bounds the UTC calendar month applies.

        Args:
            subscription: Trainer's subscription, if any
            now: Current time (for deterministic testing)

        Returns:
            (period_start, period_end) as aware UTC datetimes
        """
        now = _as_utc(now or datetime.now(UTC))

        if subscription is not None and subscription.current_period_start and subscription.current_period_end:
            start = _as_utc(subscription.current_period_start)
            end = _as_utc(subscription.current_period_end)
            if start <= now:
                return start, end

        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        next_month = (month_start + timedelta(days=32)).replace(day=1)
        return month_start, next_month
