"""RecipeService: recipe queries filtered by the caller's tier."""

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.core.exceptions import AuthorizationError
from mealplanner.db.models.recipe import Recipe
from mealplanner.domain.entitlements import SEASONAL_MIN_TIER, Entitlements, denial_reason
from mealplanner.domain.tiers import parse_tier
from mealplanner.domain.visibility import is_recipe_visible, visibility_clause
from mealplanner.schemas.catalog import RecipeListResponse, RecipeResponse

logger = structlog.get_logger(__name__)


def to_recipe_response(recipe: Recipe) -> RecipeResponse:
    return RecipeResponse(
        id=recipe.id,
        name=recipe.name,
        description=recipe.description,
        meal_types=list(recipe.meal_types or []),
        calories=recipe.calories,
        protein_grams=recipe.protein_grams,
        tier_level=str(recipe.tier_level),
        is_seasonal=recipe.is_seasonal,
    )


class RecipeService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_visible_recipes(
        self,
        entitlements: Entitlements,
        meal_type: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> RecipeListResponse:
        """Approved recipes the tier may see, capped at ``max_recipes_visible`` overall.

        The ceiling applies to the whole visible library (oldest first), so
        paging past it returns nothing.
        """
        ceiling = entitlements.max_recipes_visible
        where = [
            Recipe.is_approved.is_(True),
            visibility_clause(Recipe.tier_level, Recipe.is_seasonal, entitlements),
        ]
        if search:
            where.append(Recipe.name.ilike(f"%{search}%"))

        async with self.session_factory() as session:
            # Ceiling is applied before filtering by meal type (JSON column, filtered in Python)
            visible = (
                select(Recipe)
                .where(*where)
                .order_by(Recipe.created_at, Recipe.id)
                .limit(ceiling)
            )
            result = await session.execute(visible)
            recipes = list(result.scalars().all())

        if meal_type:
            recipes = [r for r in recipes if meal_type in (r.meal_types or [])]

        page = recipes[offset:offset + limit]
        return RecipeListResponse(
            recipes=[to_recipe_response(r) for r in page],
            total=len(recipes),
            max_visible=ceiling,
        )

    async def get_recipe(self, entitlements: Entitlements, recipe_id: str, stored_tier: str | None) -> RecipeResponse:
        """Fetch one recipe.

        Raises:
            HTTPException(404): recipe does not exist
            AuthorizationError: recipe exists but is above the caller's tier
        """
        async with self.session_factory() as session:
            recipe = await session.get(Recipe, recipe_id)

        if recipe is None or not recipe.is_approved:
            raise HTTPException(status_code=404, detail="Recipe not found")

        if not is_recipe_visible(recipe.tier_level, recipe.is_seasonal, entitlements):
            required = parse_tier(recipe.tier_level)
            if recipe.is_seasonal and required.rank < SEASONAL_MIN_TIER.rank:
                required = SEASONAL_MIN_TIER
            raise AuthorizationError(
                resource=f"recipe:{recipe_id}",
                required_tier=required.value,
                current_tier=stored_tier,
                reason=denial_reason(stored_tier, entitlements),
            )

        return to_recipe_response(recipe)

    async def count_visible(self, session: AsyncSession, entitlements: Entitlements) -> int:
        result = await session.execute(
            select(func.count())
            .select_from(Recipe)
            .where(
                Recipe.is_approved.is_(True),
                visibility_clause(Recipe.tier_level, Recipe.is_seasonal, entitlements),
            )
        )
        return min(result.scalar_one(), entitlements.max_recipes_visible)

    async def delete_recipe(self, recipe_id: str) -> None:
        """Delete a recipe; favorites, ratings, interactions and recommendations go with it."""
        async with self.session_factory() as session:
            result = await session.execute(delete(Recipe).where(Recipe.id == recipe_id))
            if result.rowcount == 0:
                raise HTTPException(status_code=404, detail="Recipe not found")
            await session.commit()
        logger.info("recipe_deleted", recipe_id=recipe_id)
