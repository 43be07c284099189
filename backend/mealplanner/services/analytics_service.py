"""AnalyticsService: per-trainer business summary (professional tier and up)."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.db.models.grocery_list import GroceryList
from mealplanner.db.models.meal_plan import MealPlan
from mealplanner.db.models.trainer_customer import TrainerCustomer
from mealplanner.domain.entitlements import Entitlements
from mealplanner.schemas.accounts import AnalyticsSummaryResponse, MealTypeCount
from mealplanner.services.usage_tracker import UsageTracker


class AnalyticsService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_summary(self, trainer_id: str, entitlements: Entitlements) -> AnalyticsSummaryResponse:
        async with self.session_factory() as session:
            total_customers = await session.scalar(
                select(func.count()).select_from(TrainerCustomer).where(TrainerCustomer.trainer_id == trainer_id)
            )
            total_meal_plans = await session.scalar(
                select(func.count()).select_from(MealPlan).where(MealPlan.trainer_id == trainer_id)
            )
            assigned_meal_plans = await session.scalar(
                select(func.count())
                .select_from(MealPlan)
                .where(MealPlan.trainer_id == trainer_id, MealPlan.customer_id.is_not(None))
            )
            grocery_lists = await session.scalar(
                select(func.count())
                .select_from(GroceryList)
                .join(MealPlan, GroceryList.meal_plan_id == MealPlan.id)
                .where(MealPlan.trainer_id == trainer_id)
            )
            by_type = await session.execute(
                select(MealPlan.meal_type, func.count())
                .where(MealPlan.trainer_id == trainer_id)
                .group_by(MealPlan.meal_type)
                .order_by(func.count().desc(), MealPlan.meal_type)
            )
            usage = await UsageTracker(session).summarize(trainer_id, entitlements)

        return AnalyticsSummaryResponse(
            tier=entitlements.tier.value if entitlements.tier else None,
            total_customers=total_customers or 0,
            total_meal_plans=total_meal_plans or 0,
            assigned_meal_plans=assigned_meal_plans or 0,
            grocery_lists=grocery_lists or 0,
            meal_plans_by_type=[MealTypeCount(meal_type=name, count=count) for name, count in by_type.all()],
            usage=usage["counters"],
        )
