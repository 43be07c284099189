"""Idempotent seed data for the meal-type catalogue."""

from sqlalchemy import select

from mealplanner.db.base import get_session_factory
from mealplanner.db.models.recipe_type_category import RecipeTypeCategory
from mealplanner.domain.meal_types import MEAL_TYPE_CATALOGUE


async def seed_meal_types() -> int:
    """Insert catalogue entries that don't exist yet. Returns how many were added.

    Existing rows are left untouched; the catalogue is read-only at runtime.
    """
    factory = get_session_factory()
    added = 0

    async with factory() as session:
        result = await session.execute(select(RecipeTypeCategory.name))
        existing = set(result.scalars().all())

        for definition in MEAL_TYPE_CATALOGUE:
            if definition.name in existing:
                continue
            session.add(
                RecipeTypeCategory(
                    name=definition.name,
                    display_name=definition.display_name,
                    tier_level=definition.tier_level,
                    is_seasonal=definition.is_seasonal,
                    sort_order=definition.sort_order,
                )
            )
            added += 1

        await session.commit()

    return added
