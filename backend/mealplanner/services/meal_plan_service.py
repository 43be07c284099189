"""MealPlanService: meal plan creation under tier rules, and deletion.

Deleting a meal plan deletes the grocery lists generated from it (ON DELETE
CASCADE on grocery_lists.meal_plan_id). Standalone lists are untouched. The
delete response reports how many lists went with the plan.
"""

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.core.exceptions import AuthorizationError
from mealplanner.db.models.grocery_list import GroceryList
from mealplanner.db.models.meal_plan import MealPlan
from mealplanner.db.models.trainer_customer import TrainerCustomer
from mealplanner.domain.entitlements import (
    UsageCounter,
    denial_reason,
    minimum_tier_for_meal_type,
    resolve_for_subscription,
)
from mealplanner.domain.meal_types import MEAL_TYPES_BY_NAME
from mealplanner.schemas.planning import DeleteMealPlanResponse, MealPlanListResponse, MealPlanResponse
from mealplanner.services.entitlement_service import get_subscription
from mealplanner.services.usage_tracker import UsageTracker

logger = structlog.get_logger(__name__)


def to_meal_plan_response(plan: MealPlan) -> MealPlanResponse:
    return MealPlanResponse(
        id=plan.id,
        name=plan.name,
        meal_type=plan.meal_type,
        customer_id=plan.customer_id,
        plan_data=plan.plan_data or {},
        created_at=plan.created_at,
    )


class MealPlanService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_meal_plan(
        self,
        trainer_id: str,
        name: str,
        meal_type: str,
        customer_id: str | None = None,
        plan_data: dict | None = None,
    ) -> MealPlanResponse:
        """Create a meal plan, consuming one unit of the meal_plans quota.

        Raises:
            HTTPException(404): unknown meal type or customer not linked to the trainer
            AuthorizationError: meal type is above the trainer's tier
            QuotaExceededError: trainer is at their meal plan ceiling for the period
        """
        if meal_type not in MEAL_TYPES_BY_NAME:
            raise HTTPException(status_code=404, detail=f"Unknown meal type: {meal_type}")

        async with self.session_factory() as session:
            async with session.begin():
                subscription = await get_subscription(session, trainer_id)
                entitlements = resolve_for_subscription(subscription)
                if not entitlements.can_access_meal_type(meal_type):
                    raise AuthorizationError(
                        resource=f"meal_type:{meal_type}",
                        required_tier=minimum_tier_for_meal_type(meal_type).value,
                        current_tier=str(subscription.tier) if subscription else None,
                        reason=denial_reason(str(subscription.tier) if subscription else None, entitlements),
                    )

                if customer_id is not None:
                    linked = await session.execute(
                        select(TrainerCustomer.id).where(
                            TrainerCustomer.trainer_id == trainer_id,
                            TrainerCustomer.customer_id == customer_id,
                        )
                    )
                    if linked.scalar_one_or_none() is None:
                        raise HTTPException(status_code=404, detail="Customer not found")

                usage = await UsageTracker(session).enforce(trainer_id, UsageCounter.MEAL_PLANS)

                plan = MealPlan(
                    trainer_id=trainer_id,
                    customer_id=customer_id,
                    name=name,
                    meal_type=meal_type,
                    plan_data=plan_data or {},
                )
                session.add(plan)
                await session.flush()

            logger.info(
                "meal_plan_created",
                trainer_id=trainer_id,
                meal_plan_id=plan.id,
                meal_plans_used=usage.current_count,
                meal_plans_limit=usage.limit,
            )
            return to_meal_plan_response(plan)

    async def list_meal_plans(self, trainer_id: str) -> MealPlanListResponse:
        async with self.session_factory() as session:
            result = await session.execute(
                select(MealPlan).where(MealPlan.trainer_id == trainer_id).order_by(MealPlan.created_at)
            )
            return MealPlanListResponse(meal_plans=[to_meal_plan_response(p) for p in result.scalars().all()])

    async def get_meal_plan(self, session: AsyncSession, trainer_id: str, meal_plan_id: str) -> MealPlan:
        result = await session.execute(
            select(MealPlan).where(MealPlan.id == meal_plan_id, MealPlan.trainer_id == trainer_id)
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            raise HTTPException(status_code=404, detail="Meal plan not found")
        return plan

    async def delete_meal_plan(self, trainer_id: str, meal_plan_id: str) -> DeleteMealPlanResponse:
        """Delete a meal plan; the database removes its generated grocery lists."""
        async with self.session_factory() as session:
            async with session.begin():
                await self.get_meal_plan(session, trainer_id, meal_plan_id)

                linked = await session.execute(
                    select(func.count()).select_from(GroceryList).where(GroceryList.meal_plan_id == meal_plan_id)
                )
                lists_removed = linked.scalar_one()

                await session.execute(delete(MealPlan).where(MealPlan.id == meal_plan_id))

        logger.info(
            "meal_plan_deleted",
            trainer_id=trainer_id,
            meal_plan_id=meal_plan_id,
            grocery_lists_removed=lists_removed,
        )
        return DeleteMealPlanResponse(id=meal_plan_id, grocery_lists_removed=lists_removed)
