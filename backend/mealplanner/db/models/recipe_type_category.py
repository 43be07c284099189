"""RecipeTypeCategory model: the seeded meal-type catalogue."""

from sqlalchemy import Boolean, Column, Integer, String

from mealplanner.db.base import Base
from mealplanner.db.models._types import TierLevel


class RecipeTypeCategory(Base):
    __tablename__ = "recipe_type_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    tier_level = Column(TierLevel, nullable=False)
    is_seasonal = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
