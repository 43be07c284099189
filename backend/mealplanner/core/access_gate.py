"""Tier-based access gating for routes.

Resolution logic:
1. Authenticate the caller (401 when missing or invalid)
2. Require a trainer (or admin) role (403 otherwise)
3. Load the trainer's (tier, status) snapshot from the cache, else the database
4. Apply the status check: only trialing/active subscriptions carry paid entitlements
5. Compare the required feature / meal type / export format against the resolved set

Denials raise AuthorizationError, which the app renders as a 403 "upgrade
required" body naming the resource and the tier that unlocks it.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException

from mealplanner.core.auth import AuthenticatedUser, require_role
from mealplanner.core.exceptions import AuthorizationError
from mealplanner.core.logging import bind_trainer_context
from mealplanner.db.base import get_session_factory
from mealplanner.domain.entitlements import (
    Entitlements,
    ExportFormat,
    Feature,
    denial_reason,
    minimum_tier_for_export_format,
    minimum_tier_for_feature,
    minimum_tier_for_meal_type,
)
from mealplanner.domain.meal_types import MEAL_TYPES_BY_NAME
from mealplanner.domain.tiers import Tier
from mealplanner.services.entitlement_cache import SubscriptionSnapshot
from mealplanner.services.entitlement_service import resolve_trainer_entitlements

require_trainer = require_role("trainer")


@dataclass(frozen=True)
class TrainerContext:
    """Authenticated trainer with resolved entitlements."""

    user: AuthenticatedUser
    snapshot: SubscriptionSnapshot
    entitlements: Entitlements

    @property
    def trainer_id(self) -> str:
        return self.user.user_id

    @property
    def current_tier(self) -> str | None:
        return self.snapshot.tier


async def get_trainer_context(user: AuthenticatedUser = Depends(require_trainer)) -> TrainerContext:
    factory = get_session_factory()
    async with factory() as session:
        snapshot, entitlements = await resolve_trainer_entitlements(session, user.user_id)
    bind_trainer_context(user.user_id, snapshot.tier, snapshot.status)
    return TrainerContext(user=user, snapshot=snapshot, entitlements=entitlements)


def deny(ctx: TrainerContext, resource: str, required_tier: Tier | None) -> AuthorizationError:
    """Build the denial for ``resource``, distinguishing lapsed subscriptions from low tiers."""
    return AuthorizationError(
        resource=resource,
        required_tier=required_tier.value if required_tier else None,
        current_tier=ctx.current_tier,
        reason=denial_reason(ctx.snapshot.tier, ctx.entitlements),
    )


def check_feature(ctx: TrainerContext, feature: Feature | str) -> None:
    if not ctx.entitlements.has_feature(feature):
        raise deny(ctx, str(feature), minimum_tier_for_feature(feature))


def check_meal_type(ctx: TrainerContext, meal_type: str) -> None:
    if meal_type not in MEAL_TYPES_BY_NAME:
        raise HTTPException(status_code=404, detail=f"Unknown meal type: {meal_type}")
    required = minimum_tier_for_meal_type(meal_type)
    if not ctx.entitlements.can_access_meal_type(meal_type):
        raise deny(ctx, f"meal_type:{meal_type}", required)


def check_export_format(ctx: TrainerContext, export_format: ExportFormat | str) -> None:
    required = minimum_tier_for_export_format(export_format)
    if not ctx.entitlements.can_export(export_format):
        raise deny(ctx, f"export:{export_format}", required)


def require_active_subscription():
    """Create a dependency that admits any trialing/active subscription."""

    async def dependency(ctx: TrainerContext = Depends(get_trainer_context)) -> TrainerContext:
        if ctx.entitlements.is_baseline:
            raise deny(ctx, "subscription", Tier.STARTER)
        return ctx

    return dependency


def require_tier(tier: Tier):
    """Create a dependency that requires at least ``tier``."""

    async def dependency(ctx: TrainerContext = Depends(get_trainer_context)) -> TrainerContext:
        current = ctx.entitlements.tier
        if current is None or not current.at_least(tier):
            raise deny(ctx, f"tier:{tier.value}", tier)
        return ctx

    return dependency


def require_feature(feature: Feature):
    """Create a FastAPI dependency that requires a tier feature.

    Usage:
        @router.get("/analytics", dependencies=[Depends(require_feature(Feature.ANALYTICS))])
        async def analytics():
            ...
    """

    async def dependency(ctx: TrainerContext = Depends(get_trainer_context)) -> TrainerContext:
        check_feature(ctx, feature)
        return ctx

    return dependency


def require_export_format():
    """Dependency gating the ``export_format`` path parameter."""

    async def dependency(
        export_format: ExportFormat,
        ctx: TrainerContext = Depends(get_trainer_context),
    ) -> TrainerContext:
        check_export_format(ctx, export_format)
        return ctx

    return dependency


def require_meal_type_access():
    """Dependency gating the ``meal_type`` path parameter."""

    async def dependency(
        meal_type: str,
        ctx: TrainerContext = Depends(get_trainer_context),
    ) -> TrainerContext:
        check_meal_type(ctx, meal_type)
        return ctx

    return dependency
