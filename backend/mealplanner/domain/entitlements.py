"""Entitlement resolution: tier -> quotas, meal types, export formats, features.

Every tier ceiling lives here. Handlers and services ask the resolver instead
of comparing tier names themselves.

Resolution is pure: the same tier always produces an equal ``Entitlements``.
Subscription status is applied on top by ``resolve_for_subscription``; only
trialing and active subscriptions receive paid entitlements.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from mealplanner.core.exceptions import ConfigurationError
from mealplanner.domain.meal_types import MEAL_TYPE_CATALOGUE, MEAL_TYPES_BY_NAME
from mealplanner.domain.tiers import (
    ENTITLED_STATUSES,
    TIERS_ASCENDING,
    SubscriptionStatus,
    Tier,
    parse_status,
    parse_tier,
)


class Feature(StrEnum):
    ANALYTICS = "analytics"
    BULK_OPERATIONS = "bulk_operations"
    CUSTOM_BRANDING = "custom_branding"
    SEASONAL_RECIPES = "seasonal_recipes"
    API_ACCESS = "api_access"
    WHITE_LABEL = "white_label"
    CUSTOM_DOMAIN = "custom_domain"


class ExportFormat(StrEnum):
    PDF = "pdf"
    CSV = "csv"
    EXCEL = "excel"


class UsageCounter(StrEnum):
    CUSTOMERS = "customers"
    MEAL_PLANS = "meal_plans"
    AI_GENERATIONS = "ai_generations"
    EXPORTS_PDF = "exports_pdf"
    EXPORTS_CSV = "exports_csv"
    EXPORTS_EXCEL = "exports_excel"

    @property
    def column(self) -> str:
        """Name of the tier_usage_tracking column backing this counter."""
        return f"{self.value}_count"

    @classmethod
    def for_export(cls, export_format: ExportFormat) -> "UsageCounter":
        return cls(f"exports_{export_format.value}")


# Per-tier ceilings (None = unlimited)
TIER_LIMITS: dict[Tier, dict[str, int | None]] = {
    Tier.STARTER: {
        "max_customers": 9,
        "max_meal_plans": 10,
        "max_ai_generations": 100,
        "max_recipes_visible": 1000,
    },
    Tier.PROFESSIONAL: {
        "max_customers": 20,
        "max_meal_plans": 20,
        "max_ai_generations": 500,
        "max_recipes_visible": 2500,
    },
    Tier.ENTERPRISE: {
        "max_customers": None,
        "max_meal_plans": None,
        "max_ai_generations": None,
        "max_recipes_visible": 4000,
    },
}

FEATURE_MIN_TIER: dict[Feature, Tier] = {
    Feature.ANALYTICS: Tier.PROFESSIONAL,
    Feature.BULK_OPERATIONS: Tier.PROFESSIONAL,
    Feature.CUSTOM_BRANDING: Tier.PROFESSIONAL,
    Feature.SEASONAL_RECIPES: Tier.PROFESSIONAL,
    Feature.API_ACCESS: Tier.ENTERPRISE,
    Feature.WHITE_LABEL: Tier.ENTERPRISE,
    Feature.CUSTOM_DOMAIN: Tier.ENTERPRISE,
}

EXPORT_FORMAT_MIN_TIER: dict[ExportFormat, Tier] = {
    ExportFormat.PDF: Tier.STARTER,
    ExportFormat.CSV: Tier.PROFESSIONAL,
    ExportFormat.EXCEL: Tier.ENTERPRISE,
}

# Seasonal content unlocks at this tier regardless of its own tier_level
SEASONAL_MIN_TIER = FEATURE_MIN_TIER[Feature.SEASONAL_RECIPES]


@dataclass(frozen=True)
class Entitlements:
    """Resolved permissions and quotas for one tier."""

    tier: Tier | None
    max_customers: int | None
    max_meal_plans: int | None
    max_ai_generations: int | None
    max_recipes_visible: int
    accessible_meal_type_names: frozenset[str]
    allowed_export_formats: frozenset[str]
    feature_flags: frozenset[str]

    @property
    def is_baseline(self) -> bool:
        return self.tier is None

    def has_feature(self, feature: Feature | str) -> bool:
        return str(feature) in self.feature_flags

    def can_access_meal_type(self, name: str) -> bool:
        return name in self.accessible_meal_type_names

    def can_export(self, export_format: ExportFormat | str) -> bool:
        return str(export_format) in self.allowed_export_formats

    def limit_for(self, counter: UsageCounter) -> int | None:
        """Ceiling for a usage counter; None means unlimited, 0 means not allowed."""
        if counter is UsageCounter.CUSTOMERS:
            return self.max_customers
        if counter is UsageCounter.MEAL_PLANS:
            return self.max_meal_plans
        if counter is UsageCounter.AI_GENERATIONS:
            return self.max_ai_generations
        export_format = counter.value.removeprefix("exports_")
        return None if self.can_export(export_format) else 0

    def as_dict(self) -> dict:
        return {
            "tier": self.tier.value if self.tier else None,
            "max_customers": self.max_customers,
            "max_meal_plans": self.max_meal_plans,
            "max_ai_generations": self.max_ai_generations,
            "max_recipes_visible": self.max_recipes_visible,
            "accessible_meal_types": sorted(
                self.accessible_meal_type_names,
                key=lambda name: MEAL_TYPES_BY_NAME[name].sort_order,
            ),
            "export_formats": sorted(
                self.allowed_export_formats,
                key=lambda fmt: EXPORT_FORMAT_MIN_TIER[ExportFormat(fmt)].rank,
            ),
            "features": sorted(self.feature_flags),
        }


BASELINE_ENTITLEMENTS = Entitlements(
    tier=None,
    max_customers=0,
    max_meal_plans=0,
    max_ai_generations=0,
    max_recipes_visible=0,
    accessible_meal_type_names=frozenset(),
    allowed_export_formats=frozenset(),
    feature_flags=frozenset(),
)


def _unlocked(tier: Tier, min_tier: Tier, is_seasonal: bool = False) -> bool:
    if is_seasonal and tier.rank < SEASONAL_MIN_TIER.rank:
        return False
    return min_tier.rank <= tier.rank


def _build(tier: Tier) -> Entitlements:
    limits = TIER_LIMITS.get(tier)
    if limits is None:
        raise ConfigurationError(f"No ceilings configured for tier {tier.value!r}")

    return Entitlements(
        tier=tier,
        max_customers=limits["max_customers"],
        max_meal_plans=limits["max_meal_plans"],
        max_ai_generations=limits["max_ai_generations"],
        max_recipes_visible=limits["max_recipes_visible"],
        accessible_meal_type_names=frozenset(
            m.name for m in MEAL_TYPE_CATALOGUE if _unlocked(tier, m.tier_level, m.is_seasonal)
        ),
        allowed_export_formats=frozenset(
            f.value for f, min_tier in EXPORT_FORMAT_MIN_TIER.items() if _unlocked(tier, min_tier)
        ),
        feature_flags=frozenset(
            f.value for f, min_tier in FEATURE_MIN_TIER.items() if _unlocked(tier, min_tier)
        ),
    )


_RESOLVED: dict[Tier, Entitlements] = {}


def resolve_entitlements(tier: Tier | str) -> Entitlements:
    """Resolve the entitlement set for a tier.

    Raises:
        ConfigurationError: tier is not recognized
    """
    parsed = parse_tier(tier)
    if parsed not in _RESOLVED:
        _RESOLVED[parsed] = _build(parsed)
    return _RESOLVED[parsed]


class SubscriptionLike(Protocol):
    tier: str
    status: str


def is_entitled_status(status: SubscriptionStatus | str | None) -> bool:
    if status is None:
        return False
    return parse_status(status) in ENTITLED_STATUSES


def resolve_for_subscription(subscription: SubscriptionLike | None) -> Entitlements:
    """Resolve entitlements, applying the subscription status check.

    A missing subscription, or one whose status is not trialing/active,
    resolves to the baseline no matter which tier is stored.
    """
    if subscription is None or not is_entitled_status(subscription.status):
        return BASELINE_ENTITLEMENTS
    return resolve_entitlements(subscription.tier)


def resolve_for_snapshot(tier: str | None, status: str | None) -> Entitlements:
    """Same as ``resolve_for_subscription`` for a cached (tier, status) pair."""
    if tier is None or not is_entitled_status(status):
        return BASELINE_ENTITLEMENTS
    return resolve_entitlements(tier)


def minimum_tier_for_feature(feature: Feature | str) -> Tier:
    try:
        return FEATURE_MIN_TIER[Feature(feature)]
    except ValueError:
        raise ConfigurationError(f"Unknown feature flag: {feature!r}") from None


def minimum_tier_for_export_format(export_format: ExportFormat | str) -> Tier:
    try:
        return EXPORT_FORMAT_MIN_TIER[ExportFormat(export_format)]
    except ValueError:
        raise ConfigurationError(f"Unknown export format: {export_format!r}") from None


def minimum_tier_for_meal_type(name: str) -> Tier:
    definition = MEAL_TYPES_BY_NAME.get(name)
    if definition is None:
        raise ConfigurationError(f"Unknown meal type: {name!r}")
    if definition.is_seasonal and definition.tier_level.rank < SEASONAL_MIN_TIER.rank:
        return SEASONAL_MIN_TIER
    return definition.tier_level


def minimum_tier_for_limit(counter: UsageCounter, current: int) -> Tier | None:
    """Lowest tier whose ceiling for ``counter`` exceeds ``current``."""
    for tier in TIERS_ASCENDING:
        limit = resolve_entitlements(tier).limit_for(counter)
        if limit is None or limit > current:
            return tier
    return None


def denial_reason(stored_tier: str | None, entitlements: Entitlements) -> str:
    """Why a caller was denied: no subscription, lapsed subscription, or too low a tier."""
    if stored_tier is None:
        return "no_subscription"
    if entitlements.is_baseline:
        return "subscription_inactive"
    return "tier_insufficient"
