"""Meal-type and recipe schemas."""

from pydantic import BaseModel


class MealTypeResponse(BaseModel):
    name: str
    display_name: str
    tier_level: str
    is_seasonal: bool
    sort_order: int


class MealTypeStatusResponse(MealTypeResponse):
    is_accessible: bool
    required_tier: str


class MealTypeListResponse(BaseModel):
    tier: str | None
    meal_types: list[MealTypeResponse]


class MealTypeStatusListResponse(BaseModel):
    tier: str | None
    meal_types: list[MealTypeStatusResponse]


class RecipeResponse(BaseModel):
    id: str
    name: str
    description: str
    meal_types: list[str]
    calories: int | None
    protein_grams: int | None
    tier_level: str
    is_seasonal: bool


class RecipeListResponse(BaseModel):
    recipes: list[RecipeResponse]
    total: int
    max_visible: int
