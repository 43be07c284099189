"""Customer, meal plan and grocery list schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class AddCustomerRequest(BaseModel):
    email: EmailStr
    name: str | None = Field(default=None, max_length=255)


class CustomerResponse(BaseModel):
    customer_id: str
    email: str
    name: str | None
    status: str
    linked_at: datetime


class CustomerListResponse(BaseModel):
    customers: list[CustomerResponse]


class CreateMealPlanRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    meal_type: str
    customer_id: str | None = None
    plan_data: dict = Field(default_factory=dict)


class MealPlanResponse(BaseModel):
    id: str
    name: str
    meal_type: str
    customer_id: str | None
    plan_data: dict
    created_at: datetime


class MealPlanListResponse(BaseModel):
    meal_plans: list[MealPlanResponse]


class DeleteMealPlanResponse(BaseModel):
    id: str
    # Lists generated from the plan are removed with it
    grocery_lists_removed: int


class GroceryItemRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = "produce"
    quantity: str = "1"
    unit: str = "pcs"
    recipe_id: str | None = None


class CreateGroceryListRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    meal_plan_id: str | None = None
    items: list[GroceryItemRequest] = Field(default_factory=list)


class GroceryItemResponse(BaseModel):
    id: str
    name: str
    category: str
    quantity: str
    unit: str
    is_checked: bool
    recipe_id: str | None


class GroceryListResponse(BaseModel):
    id: str
    name: str
    meal_plan_id: str | None
    is_active: bool
    items: list[GroceryItemResponse]
    created_at: datetime


class GroceryListsResponse(BaseModel):
    grocery_lists: list[GroceryListResponse]
