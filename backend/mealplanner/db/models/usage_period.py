"""UsagePeriod model: per-trainer counters for one billing period.

Counters only increase, and only through UsageTracker.
A new billing period gets a new row; older rows are kept as history. When a
webhook re-anchors the current period, rows overlapping it are folded into
the new row rather than left behind.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from mealplanner.db.base import Base


class UsagePeriod(Base):
    __tablename__ = "tier_usage_tracking"
    __table_args__ = (UniqueConstraint("trainer_id", "period_start", name="uq_usage_trainer_period"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    period_start = Column(DateTime(timezone=True), nullable=False)
    period_end = Column(DateTime(timezone=True), nullable=False)

    customers_count = Column(Integer, nullable=False, default=0)
    meal_plans_count = Column(Integer, nullable=False, default=0)
    ai_generations_count = Column(Integer, nullable=False, default=0)
    exports_pdf_count = Column(Integer, nullable=False, default=0)
    exports_csv_count = Column(Integer, nullable=False, default=0)
    exports_excel_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
