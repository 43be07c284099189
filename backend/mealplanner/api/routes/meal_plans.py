"""Meal plan routes, including tier-gated exports."""

from fastapi import APIRouter, Depends, Response

from mealplanner.core.access_gate import (
    TrainerContext,
    check_meal_type,
    require_active_subscription,
    require_export_format,
)
from mealplanner.db.base import get_session_factory
from mealplanner.domain.entitlements import ExportFormat
from mealplanner.schemas.planning import (
    CreateMealPlanRequest,
    DeleteMealPlanResponse,
    MealPlanListResponse,
    MealPlanResponse,
)
from mealplanner.services.export_service import ExportService
from mealplanner.services.meal_plan_service import MealPlanService

router = APIRouter()


@router.post("", response_model=MealPlanResponse, status_code=201)
async def create_meal_plan(
    body: CreateMealPlanRequest,
    ctx: TrainerContext = Depends(require_active_subscription()),
):
    """Create a meal plan. The meal type must be unlocked and the meal_plans quota not exhausted."""
    check_meal_type(ctx, body.meal_type)
    service = MealPlanService(get_session_factory())
    return await service.create_meal_plan(
        ctx.trainer_id,
        name=body.name,
        meal_type=body.meal_type,
        customer_id=body.customer_id,
        plan_data=body.plan_data,
    )


@router.get("", response_model=MealPlanListResponse)
async def list_meal_plans(ctx: TrainerContext = Depends(require_active_subscription())):
    service = MealPlanService(get_session_factory())
    return await service.list_meal_plans(ctx.trainer_id)


@router.delete("/{meal_plan_id}", response_model=DeleteMealPlanResponse)
async def delete_meal_plan(
    meal_plan_id: str,
    ctx: TrainerContext = Depends(require_active_subscription()),
):
    """Delete a plan. Grocery lists generated from it are removed by the database."""
    service = MealPlanService(get_session_factory())
    return await service.delete_meal_plan(ctx.trainer_id, meal_plan_id)


@router.get("/{meal_plan_id}/export/{export_format}")
async def export_meal_plan(
    meal_plan_id: str,
    export_format: ExportFormat,
    ctx: TrainerContext = Depends(require_export_format()),
):
    service = ExportService(get_session_factory())
    rendered, filename = await service.export_meal_plan(ctx.trainer_id, meal_plan_id, export_format)
    return Response(
        content=rendered.content,
        media_type=rendered.media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
