"""Meal-type catalogue: static reference data seeded into recipe_type_categories."""

from dataclasses import dataclass

from mealplanner.domain.tiers import Tier


@dataclass(frozen=True)
class MealTypeDefinition:
    name: str
    display_name: str
    tier_level: Tier
    sort_order: int
    is_seasonal: bool = False


MEAL_TYPE_CATALOGUE: tuple[MealTypeDefinition, ...] = (
    # Starter
    MealTypeDefinition("breakfast", "Breakfast", Tier.STARTER, 1),
    MealTypeDefinition("lunch", "Lunch", Tier.STARTER, 2),
    MealTypeDefinition("dinner", "Dinner", Tier.STARTER, 3),
    MealTypeDefinition("snack", "Snack", Tier.STARTER, 4),
    MealTypeDefinition("post-workout", "Post-Workout", Tier.STARTER, 5),
    # Professional
    MealTypeDefinition("keto", "Keto", Tier.PROFESSIONAL, 6),
    MealTypeDefinition("vegan", "Vegan", Tier.PROFESSIONAL, 7),
    MealTypeDefinition("paleo", "Paleo", Tier.PROFESSIONAL, 8),
    MealTypeDefinition("pre-workout", "Pre-Workout", Tier.PROFESSIONAL, 9),
    MealTypeDefinition("high-protein", "High-Protein", Tier.PROFESSIONAL, 10),
    # Enterprise
    MealTypeDefinition("low-carb", "Low-Carb", Tier.ENTERPRISE, 11),
    MealTypeDefinition("mediterranean", "Mediterranean", Tier.ENTERPRISE, 12),
    MealTypeDefinition("diabetic-friendly", "Diabetic-Friendly", Tier.ENTERPRISE, 13),
    MealTypeDefinition("gluten-free", "Gluten-Free", Tier.ENTERPRISE, 14),
    MealTypeDefinition("bulking", "Bulking", Tier.ENTERPRISE, 15),
    MealTypeDefinition("cutting", "Cutting", Tier.ENTERPRISE, 16),
    MealTypeDefinition("seasonal-special", "Seasonal Special", Tier.ENTERPRISE, 17, is_seasonal=True),
)

MEAL_TYPES_BY_NAME: dict[str, MealTypeDefinition] = {m.name: m for m in MEAL_TYPE_CATALOGUE}
