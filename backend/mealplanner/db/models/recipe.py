"""Recipe model with its minimum viewing tier."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from mealplanner.db.base import Base
from mealplanner.db.models._types import TierLevel
from mealplanner.domain.tiers import Tier


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")

    # ["breakfast", "keto", ...]
    meal_types = Column(JSON, nullable=False, default=list)
    calories = Column(Integer, nullable=True)
    protein_grams = Column(Integer, nullable=True)

    tier_level = Column(TierLevel, nullable=False, default=Tier.STARTER, index=True)
    is_seasonal = Column(Boolean, nullable=False, default=False)
    is_approved = Column(Boolean, nullable=False, default=True)

    creator_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
