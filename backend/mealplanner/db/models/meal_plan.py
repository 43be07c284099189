"""MealPlan model: a trainer's plan, optionally assigned to a customer."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from mealplanner.db.base import Base


class MealPlan(Base):
    __tablename__ = "meal_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL = unassigned plan in the trainer's library
    customer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    meal_type = Column(String(50), nullable=False)
    # {"days": [{"day": 1, "meals": [{"recipe_id": ..., "servings": 1}]}]}
    plan_data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))

    grocery_lists = relationship("GroceryList", back_populates="meal_plan", passive_deletes=True)
