"""MealTypeService: the meal-type catalogue as seen by a given tier."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.db.models.recipe_type_category import RecipeTypeCategory
from mealplanner.domain.entitlements import Entitlements, minimum_tier_for_meal_type
from mealplanner.schemas.catalog import (
    MealTypeListResponse,
    MealTypeResponse,
    MealTypeStatusListResponse,
    MealTypeStatusResponse,
)


def _fields(category: RecipeTypeCategory) -> dict:
    return {
        "name": category.name,
        "display_name": category.display_name,
        "tier_level": str(category.tier_level),
        "is_seasonal": category.is_seasonal,
        "sort_order": category.sort_order,
    }


class MealTypeService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _all_categories(self) -> list[RecipeTypeCategory]:
        async with self.session_factory() as session:
            result = await session.execute(select(RecipeTypeCategory).order_by(RecipeTypeCategory.sort_order))
            return list(result.scalars().all())

    async def get_accessible_meal_types(self, entitlements: Entitlements) -> MealTypeListResponse:
        categories = await self._all_categories()
        return MealTypeListResponse(
            tier=entitlements.tier.value if entitlements.tier else None,
            meal_types=[
                MealTypeResponse(**_fields(c))
                for c in categories
                if entitlements.can_access_meal_type(c.name)
            ],
        )

    async def get_all_meal_types_with_status(self, entitlements: Entitlements) -> MealTypeStatusListResponse:
        """Every meal type, flagged with whether this tier can use it (for upgrade prompts)."""
        categories = await self._all_categories()
        return MealTypeStatusListResponse(
            tier=entitlements.tier.value if entitlements.tier else None,
            meal_types=[
                MealTypeStatusResponse(
                    **_fields(c),
                    is_accessible=entitlements.can_access_meal_type(c.name),
                    required_tier=minimum_tier_for_meal_type(c.name).value,
                )
                for c in categories
            ],
        )
