"""GroceryListService: customer grocery lists, standalone or generated from a meal plan."""

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from mealplanner.db.models.grocery_list import GroceryList, GroceryListItem
from mealplanner.db.models.meal_plan import MealPlan
from mealplanner.schemas.planning import (
    GroceryItemRequest,
    GroceryItemResponse,
    GroceryListResponse,
    GroceryListsResponse,
)

logger = structlog.get_logger(__name__)


def _to_response(grocery_list: GroceryList) -> GroceryListResponse:
    return GroceryListResponse(
        id=grocery_list.id,
        name=grocery_list.name,
        meal_plan_id=grocery_list.meal_plan_id,
        is_active=grocery_list.is_active,
        items=[
            GroceryItemResponse(
                id=item.id,
                name=item.name,
                category=item.category,
                quantity=item.quantity,
                unit=item.unit,
                is_checked=item.is_checked,
                recipe_id=item.recipe_id,
            )
            for item in grocery_list.items
        ],
        created_at=grocery_list.created_at,
    )


class GroceryListService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_grocery_list(
        self,
        customer_id: str,
        name: str,
        meal_plan_id: str | None = None,
        items: list[GroceryItemRequest] | None = None,
    ) -> GroceryListResponse:
        """Create a grocery list for a customer.

        A list linked to a meal plan is deleted together with that plan, so
        linking is only allowed to plans assigned to this customer.

        Raises:
            HTTPException(404): meal plan not found or not assigned to the customer
        """
        async with self.session_factory() as session:
            async with session.begin():
                if meal_plan_id is not None:
                    result = await session.execute(
                        select(MealPlan.id).where(MealPlan.id == meal_plan_id, MealPlan.customer_id == customer_id)
                    )
                    if result.scalar_one_or_none() is None:
                        raise HTTPException(status_code=404, detail="Meal plan not found")

                grocery_list = GroceryList(customer_id=customer_id, name=name, meal_plan_id=meal_plan_id)
                session.add(grocery_list)
                await session.flush()

                for item in items or []:
                    session.add(GroceryListItem(grocery_list_id=grocery_list.id, **item.model_dump()))

            logger.info(
                "grocery_list_created",
                customer_id=customer_id,
                grocery_list_id=grocery_list.id,
                standalone=meal_plan_id is None,
            )
            return await self._load(session, grocery_list.id)

    async def list_grocery_lists(self, customer_id: str) -> GroceryListsResponse:
        async with self.session_factory() as session:
            result = await session.execute(
                select(GroceryList)
                .options(selectinload(GroceryList.items))
                .where(GroceryList.customer_id == customer_id)
                .order_by(GroceryList.created_at)
            )
            return GroceryListsResponse(grocery_lists=[_to_response(gl) for gl in result.scalars().all()])

    async def delete_grocery_list(self, customer_id: str, grocery_list_id: str) -> None:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(GroceryList).where(GroceryList.id == grocery_list_id, GroceryList.customer_id == customer_id)
            )
            if result.rowcount == 0:
                raise HTTPException(status_code=404, detail="Grocery list not found")
            await session.commit()

    async def _load(self, session: AsyncSession, grocery_list_id: str) -> GroceryListResponse:
        result = await session.execute(
            select(GroceryList)
            .options(selectinload(GroceryList.items))
            .where(GroceryList.id == grocery_list_id)
            .execution_options(populate_existing=True)
        )
        return _to_response(result.scalar_one())
