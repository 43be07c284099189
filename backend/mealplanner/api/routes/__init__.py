from fastapi import APIRouter

from mealplanner.api.routes import (
    analytics,
    billing,
    branding,
    customers,
    entitlements,
    grocery_lists,
    health,
    meal_plans,
    meal_types,
    recipes,
    users,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(billing.router, tags=["billing"])
api_router.include_router(entitlements.router, tags=["entitlements"])
api_router.include_router(meal_types.router, prefix="/meal-types", tags=["meal-types"])
api_router.include_router(recipes.router, prefix="/recipes", tags=["recipes"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(meal_plans.router, prefix="/meal-plans", tags=["meal-plans"])
api_router.include_router(grocery_lists.router, prefix="/grocery-lists", tags=["grocery-lists"])
api_router.include_router(branding.router, prefix="/branding", tags=["branding"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(users.router, tags=["users"])
