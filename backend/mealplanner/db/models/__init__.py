"""Re-export all models so Base.metadata sees them."""

from mealplanner.db.models.branding import BrandingAuditLog, TrainerBrandingSettings
from mealplanner.db.models.engagement import (
    RecipeRating,
    RecipeRecommendation,
    UserRecipeInteraction,
    UserSession,
)
from mealplanner.db.models.favorites import CollectionRecipe, FavoriteCollection, RecipeFavorite
from mealplanner.db.models.grocery_list import GroceryList, GroceryListItem
from mealplanner.db.models.meal_plan import MealPlan
from mealplanner.db.models.recipe import Recipe
from mealplanner.db.models.recipe_type_category import RecipeTypeCategory
from mealplanner.db.models.stripe_event import StripeWebhookEvent
from mealplanner.db.models.subscription import TrainerSubscription
from mealplanner.db.models.trainer_customer import TrainerCustomer
from mealplanner.db.models.usage_period import UsagePeriod
from mealplanner.db.models.user import User

__all__ = [
    "BrandingAuditLog",
    "CollectionRecipe",
    "FavoriteCollection",
    "GroceryList",
    "GroceryListItem",
    "MealPlan",
    "Recipe",
    "RecipeFavorite",
    "RecipeRating",
    "RecipeRecommendation",
    "RecipeTypeCategory",
    "StripeWebhookEvent",
    "TrainerBrandingSettings",
    "TrainerCustomer",
    "TrainerSubscription",
    "UsagePeriod",
    "User",
    "UserRecipeInteraction",
    "UserSession",
]
