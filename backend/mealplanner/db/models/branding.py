"""Trainer branding settings and their audit log.

Colors and logo need professional or higher. White-label and custom-domain
fields need enterprise; BrandingService enforces this on write and masks the
fields on read when the trainer's entitlements no longer include them.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text

from mealplanner.db.base import Base


class TrainerBrandingSettings(Base):
    __tablename__ = "trainer_branding_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # Professional+
    logo_url = Column(Text, nullable=True)
    primary_color = Column(String(7), nullable=True)  # #RRGGBB
    secondary_color = Column(String(7), nullable=True)
    accent_color = Column(String(7), nullable=True)

    # Enterprise only
    white_label_enabled = Column(Boolean, nullable=False, default=False)
    custom_domain = Column(String(255), nullable=True)
    custom_domain_verified = Column(Boolean, nullable=False, default=False)
    domain_verification_token = Column(String(64), nullable=True)
    domain_verified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


class BrandingAuditLog(Base):
    __tablename__ = "branding_audit_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # created | updated | domain_reset | domain_verified
    action = Column(String(50), nullable=False)
    field_changed = Column(String(50), nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)

    changed_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
