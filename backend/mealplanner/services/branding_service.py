"""BrandingService: trainer branding with per-field tier checks and an audit trail.

Field access:
- logo and colors: custom_branding (professional+)
- white_label_enabled: white_label (enterprise)
- custom_domain: custom_domain (enterprise)

Stored enterprise-only values are masked when read back for a trainer whose
entitlements no longer include them (downgrade or lapsed subscription).
"""

import re
import secrets
from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealplanner.core.config import get_settings
from mealplanner.core.exceptions import AuthorizationError, BrandingValidationError
from mealplanner.db.models.branding import BrandingAuditLog, TrainerBrandingSettings
from mealplanner.domain.entitlements import (
    Entitlements,
    Feature,
    denial_reason,
    minimum_tier_for_feature,
    resolve_for_subscription,
)
from mealplanner.schemas.branding import BrandingResponse, PublicBrandingResponse, UpdateBrandingRequest
from mealplanner.services.entitlement_service import get_subscription

logger = structlog.get_logger(__name__)

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
DOMAIN = re.compile(r"^(?=.{4,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")

COLOR_FIELDS = ("primary_color", "secondary_color", "accent_color")

FIELD_FEATURES: dict[str, Feature] = {
    "logo_url": Feature.CUSTOM_BRANDING,
    "primary_color": Feature.CUSTOM_BRANDING,
    "secondary_color": Feature.CUSTOM_BRANDING,
    "accent_color": Feature.CUSTOM_BRANDING,
    "white_label_enabled": Feature.WHITE_LABEL,
    "custom_domain": Feature.CUSTOM_DOMAIN,
}


def _normalize(field: str, value):
    if field == "white_label_enabled":
        return bool(value)
    if value is None:
        return None
    if field in COLOR_FIELDS:
        if not HEX_COLOR.match(value):
            raise BrandingValidationError(field, f"{field} must be a hex color like #1A2B3C")
        return value.upper()
    if field == "custom_domain":
        domain = value.strip().lower().rstrip(".")
        if not domain:
            return None
        if not DOMAIN.match(domain):
            raise BrandingValidationError(field, f"Invalid domain: {value}")
        return domain
    return value


def _to_response(branding: TrainerBrandingSettings | None, entitlements: Entitlements) -> BrandingResponse:
    can_customize = entitlements.has_feature(Feature.CUSTOM_BRANDING)
    can_white_label = entitlements.has_feature(Feature.WHITE_LABEL)
    can_domain = entitlements.has_feature(Feature.CUSTOM_DOMAIN)

    if branding is None:
        return BrandingResponse(
            logo_url=None,
            primary_color=None,
            secondary_color=None,
            accent_color=None,
            white_label_enabled=False,
            custom_domain=None,
            custom_domain_verified=False,
            domain_verification_token=None,
            domain_verified_at=None,
            can_customize=can_customize,
            can_white_label=can_white_label,
        )

    return BrandingResponse(
        logo_url=branding.logo_url if can_customize else None,
        primary_color=branding.primary_color if can_customize else None,
        secondary_color=branding.secondary_color if can_customize else None,
        accent_color=branding.accent_color if can_customize else None,
        white_label_enabled=bool(branding.white_label_enabled) and can_white_label,
        custom_domain=branding.custom_domain if can_domain else None,
        custom_domain_verified=bool(branding.custom_domain_verified) and can_domain,
        domain_verification_token=branding.domain_verification_token if can_domain else None,
        domain_verified_at=branding.domain_verified_at if can_domain else None,
        can_customize=can_customize,
        can_white_label=can_white_label,
    )


class BrandingService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _load(self, session: AsyncSession, trainer_id: str) -> TrainerBrandingSettings | None:
        result = await session.execute(
            select(TrainerBrandingSettings).where(TrainerBrandingSettings.trainer_id == trainer_id)
        )
        return result.scalar_one_or_none()

    async def get_branding(self, trainer_id: str, entitlements: Entitlements) -> BrandingResponse:
        async with self.session_factory() as session:
            branding = await self._load(session, trainer_id)
        return _to_response(branding, entitlements)

    async def update_branding(
        self,
        trainer_id: str,
        update: UpdateBrandingRequest,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> BrandingResponse:
        """Apply a partial branding update.

        Every requested field is checked against the trainer's entitlements
        before anything is written. Each changed field gets an audit row.
        Changing the custom domain clears its verification and issues a new
        verification token.

        Raises:
            AuthorizationError: a requested field needs a higher tier
            BrandingValidationError: malformed color or domain
        """
        requested = update.model_dump(exclude_unset=True)

        async with self.session_factory() as session:
            async with session.begin():
                subscription = await get_subscription(session, trainer_id)
                entitlements = resolve_for_subscription(subscription)
                stored_tier = str(subscription.tier) if subscription else None

                for field in requested:
                    feature = FIELD_FEATURES[field]
                    if not entitlements.has_feature(feature):
                        raise AuthorizationError(
                            resource=f"branding:{field}",
                            required_tier=minimum_tier_for_feature(feature).value,
                            current_tier=stored_tier,
                            reason=denial_reason(stored_tier, entitlements),
                        )

                changes = {field: _normalize(field, value) for field, value in requested.items()}

                branding = await self._load(session, trainer_id)
                if branding is None:
                    branding = TrainerBrandingSettings(trainer_id=trainer_id, white_label_enabled=False)
                    session.add(branding)
                    session.add(self._audit(trainer_id, "created", None, None, None, ip_address, user_agent))

                for field, new_value in changes.items():
                    old_value = getattr(branding, field)
                    if old_value == new_value:
                        continue
                    setattr(branding, field, new_value)
                    session.add(self._audit(trainer_id, "updated", field, old_value, new_value, ip_address, user_agent))

                    if field == "custom_domain":
                        branding.custom_domain_verified = False
                        branding.domain_verified_at = None
                        branding.domain_verification_token = secrets.token_hex(32) if new_value else None
                        session.add(self._audit(trainer_id, "domain_reset", field, old_value, new_value, ip_address, user_agent))

                await session.flush()

            logger.info("branding_updated", trainer_id=trainer_id, fields=sorted(changes))
            return _to_response(branding, entitlements)

    async def mark_domain_verified(self, trainer_id: str, token: str) -> BrandingResponse:
        """Record a successful domain ownership check for the pending token.

        Raises:
            BrandingValidationError: no domain pending or token mismatch
        """
        async with self.session_factory() as session:
            async with session.begin():
                subscription = await get_subscription(session, trainer_id)
                entitlements = resolve_for_subscription(subscription)
                stored_tier = str(subscription.tier) if subscription else None
                if not entitlements.has_feature(Feature.CUSTOM_DOMAIN):
                    raise AuthorizationError(
                        resource="branding:custom_domain",
                        required_tier=minimum_tier_for_feature(Feature.CUSTOM_DOMAIN).value,
                        current_tier=stored_tier,
                        reason=denial_reason(stored_tier, entitlements),
                    )

                branding = await self._load(session, trainer_id)
                if branding is None or not branding.custom_domain or not branding.domain_verification_token:
                    raise BrandingValidationError("custom_domain", "No custom domain awaiting verification")
                if not secrets.compare_digest(branding.domain_verification_token, token):
                    raise BrandingValidationError("custom_domain", "Verification token does not match")

                branding.custom_domain_verified = True
                branding.domain_verified_at = datetime.now(UTC)
                session.add(
                    self._audit(trainer_id, "domain_verified", "custom_domain", None, branding.custom_domain, None, None)
                )

            logger.info("custom_domain_verified", trainer_id=trainer_id, domain=branding.custom_domain)
            return _to_response(branding, entitlements)

    async def get_public_branding(self, trainer_id: str) -> PublicBrandingResponse:
        """Branding shown to a trainer's customers.

        Platform branding is hidden only for an entitled enterprise trainer
        with white-label switched on.
        """
        async with self.session_factory() as session:
            subscription = await get_subscription(session, trainer_id)
            branding = await self._load(session, trainer_id)

        entitlements = resolve_for_subscription(subscription)
        view = _to_response(branding, entitlements)
        show_platform = not view.white_label_enabled
        return PublicBrandingResponse(
            logo_url=view.logo_url,
            primary_color=view.primary_color,
            secondary_color=view.secondary_color,
            accent_color=view.accent_color,
            show_platform_branding=show_platform,
            platform_name=get_settings().platform_name if show_platform else None,
        )

    async def get_audit_log(self, trainer_id: str, limit: int = 100) -> list[BrandingAuditLog]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(BrandingAuditLog)
                .where(BrandingAuditLog.trainer_id == trainer_id)
                .order_by(BrandingAuditLog.changed_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    @staticmethod
    def _audit(
        trainer_id: str,
        action: str,
        field: str | None,
        old_value,
        new_value,
        ip_address: str | None,
        user_agent: str | None,
    ) -> BrandingAuditLog:
        return BrandingAuditLog(
            trainer_id=trainer_id,
            action=action,
            field_changed=field,
            old_value=None if old_value is None else str(old_value),
            new_value=None if new_value is None else str(new_value),
            ip_address=ip_address,
            user_agent=user_agent,
        )
