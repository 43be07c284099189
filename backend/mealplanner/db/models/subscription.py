"""TrainerSubscription model: the trainer's current billing tier and status.

Billing events only ever update this row; a cancelled Stripe subscription
becomes status=canceled. The row disappears only when the trainer is deleted.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String

from mealplanner.db.base import Base
from mealplanner.db.models._types import SubscriptionStatusType, TierLevel
from mealplanner.domain.tiers import SubscriptionStatus, Tier


class TrainerSubscription(Base):
    __tablename__ = "trainer_subscriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # Stripe
    stripe_customer_id = Column(String(255), unique=True, nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, index=True)

    tier = Column(TierLevel, nullable=False, default=Tier.STARTER)
    status = Column(SubscriptionStatusType, nullable=False, default=SubscriptionStatus.TRIALING)

    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    trial_end = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
