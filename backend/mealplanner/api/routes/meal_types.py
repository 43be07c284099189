from fastapi import APIRouter, Depends, Query

from mealplanner.core.access_gate import TrainerContext, get_trainer_context, require_meal_type_access
from mealplanner.db.base import get_session_factory
from mealplanner.schemas.catalog import MealTypeListResponse, MealTypeStatusListResponse, RecipeListResponse
from mealplanner.services.meal_type_service import MealTypeService
from mealplanner.services.recipe_service import RecipeService

router = APIRouter()


@router.get("", response_model=MealTypeListResponse)
async def list_accessible_meal_types(ctx: TrainerContext = Depends(get_trainer_context)):
    """Meal types the caller's tier unlocks."""
    service = MealTypeService(get_session_factory())
    return await service.get_accessible_meal_types(ctx.entitlements)


@router.get("/all", response_model=MealTypeStatusListResponse)
async def list_all_meal_types(ctx: TrainerContext = Depends(get_trainer_context)):
    """Every meal type with ``is_accessible`` and the tier that unlocks it."""
    service = MealTypeService(get_session_factory())
    return await service.get_all_meal_types_with_status(ctx.entitlements)


@router.get("/{meal_type}/recipes", response_model=RecipeListResponse)
async def list_meal_type_recipes(
    meal_type: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    ctx: TrainerContext = Depends(require_meal_type_access()),
):
    service = RecipeService(get_session_factory())
    return await service.list_visible_recipes(ctx.entitlements, meal_type=meal_type, limit=limit, offset=offset)
