"""GroceryList and GroceryListItem models.

A list generated from a meal plan is deleted with that plan. A standalone
list (meal_plan_id IS NULL) lives until its customer is deleted.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from mealplanner.db.base import Base


class GroceryList(Base):
    __tablename__ = "grocery_lists"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    meal_plan_id = Column(
        String(36),
        ForeignKey("meal_plans.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))

    meal_plan = relationship("MealPlan", back_populates="grocery_lists")
    items = relationship("GroceryListItem", back_populates="grocery_list", passive_deletes=True)


class GroceryListItem(Base):
    __tablename__ = "grocery_list_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    grocery_list_id = Column(
        String(36),
        ForeignKey("grocery_lists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Item keeps its name if the source recipe is removed
    recipe_id = Column(String(36), ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False, default="produce")
    quantity = Column(String(50), nullable=False, default="1")
    unit = Column(String(20), nullable=False, default="pcs")
    is_checked = Column(Boolean, nullable=False, default=False)

    grocery_list = relationship("GroceryList", back_populates="items")
