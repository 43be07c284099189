"""Account deletion and analytics schemas."""

from pydantic import BaseModel


class DeleteUserResponse(BaseModel):
    user_id: str
    removed: dict[str, int]  # "<table>.<column>" -> rows cascaded or nulled


class MealTypeCount(BaseModel):
    meal_type: str
    count: int


class AnalyticsSummaryResponse(BaseModel):
    tier: str | None
    total_customers: int
    total_meal_plans: int
    assigned_meal_plans: int
    grocery_lists: int
    meal_plans_by_type: list[MealTypeCount]
    usage: dict[str, dict]
