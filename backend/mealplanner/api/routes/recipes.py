"""Recipe routes. Visibility follows the caller's tier."""

from fastapi import APIRouter, Depends, Query, Response

from mealplanner.core.access_gate import TrainerContext, check_meal_type, get_trainer_context
from mealplanner.core.auth import AuthenticatedUser, require_admin
from mealplanner.db.base import get_session_factory
from mealplanner.schemas.catalog import RecipeListResponse, RecipeResponse
from mealplanner.services.recipe_service import RecipeService

router = APIRouter()


@router.get("", response_model=RecipeListResponse)
async def list_recipes(
    meal_type: str | None = None,
    search: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    ctx: TrainerContext = Depends(get_trainer_context),
):
    if meal_type is not None:
        check_meal_type(ctx, meal_type)
    service = RecipeService(get_session_factory())
    return await service.list_visible_recipes(
        ctx.entitlements,
        meal_type=meal_type,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(recipe_id: str, ctx: TrainerContext = Depends(get_trainer_context)):
    """Single recipe; 403 upgrade-required when it exists above the caller's tier."""
    service = RecipeService(get_session_factory())
    return await service.get_recipe(ctx.entitlements, recipe_id, ctx.current_tier)


@router.delete("/{recipe_id}", status_code=204)
async def delete_recipe(recipe_id: str, admin: AuthenticatedUser = Depends(require_admin)):
    service = RecipeService(get_session_factory())
    await service.delete_recipe(recipe_id)
    return Response(status_code=204)
