"""User model: trainers, customers and admins share one table."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String

from mealplanner.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)

    # admin | trainer | customer
    role = Column(String(20), nullable=False, default="customer")

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
