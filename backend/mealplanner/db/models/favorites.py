"""Recipe favorites and favorite collections."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint

from mealplanner.db.base import Base


class RecipeFavorite(Base):
    __tablename__ = "recipe_favorites"
    __table_args__ = (UniqueConstraint("user_id", "recipe_id", name="uq_favorite_user_recipe"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipe_id = Column(String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    notes = Column(Text, nullable=True)

    favorited_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))


class FavoriteCollection(Base):
    __tablename__ = "favorite_collections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))


class CollectionRecipe(Base):
    __tablename__ = "collection_recipes"
    __table_args__ = (UniqueConstraint("collection_id", "recipe_id", name="uq_collection_recipe"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    collection_id = Column(
        String(36),
        ForeignKey("favorite_collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    recipe_id = Column(String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    # Shared collections outlive the collaborator who added the recipe
    added_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    added_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
