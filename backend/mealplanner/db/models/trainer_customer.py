"""TrainerCustomer model: which customers a trainer manages."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from mealplanner.db.base import Base


class TrainerCustomer(Base):
    __tablename__ = "trainer_customers"
    __table_args__ = (UniqueConstraint("trainer_id", "customer_id", name="uq_trainer_customer"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # active | archived
    status = Column(String(20), nullable=False, default="active")

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
