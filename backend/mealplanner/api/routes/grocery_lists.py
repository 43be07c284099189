"""Customer grocery lists."""

from fastapi import APIRouter, Depends, Response

from mealplanner.core.auth import AuthenticatedUser, require_role
from mealplanner.db.base import get_session_factory
from mealplanner.schemas.planning import CreateGroceryListRequest, GroceryListResponse, GroceryListsResponse
from mealplanner.services.grocery_list_service import GroceryListService

router = APIRouter()

require_customer = require_role("customer")


@router.post("", response_model=GroceryListResponse, status_code=201)
async def create_grocery_list(
    body: CreateGroceryListRequest,
    user: AuthenticatedUser = Depends(require_customer),
):
    """Create a standalone list, or one tied to a meal plan assigned to the caller."""
    service = GroceryListService(get_session_factory())
    return await service.create_grocery_list(
        user.user_id,
        name=body.name,
        meal_plan_id=body.meal_plan_id,
        items=body.items,
    )


@router.get("", response_model=GroceryListsResponse)
async def list_grocery_lists(user: AuthenticatedUser = Depends(require_customer)):
    service = GroceryListService(get_session_factory())
    return await service.list_grocery_lists(user.user_id)


@router.delete("/{grocery_list_id}", status_code=204)
async def delete_grocery_list(grocery_list_id: str, user: AuthenticatedUser = Depends(require_customer)):
    service = GroceryListService(get_session_factory())
    await service.delete_grocery_list(user.user_id, grocery_list_id)
    return Response(status_code=204)
