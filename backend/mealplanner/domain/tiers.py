"""Subscription tiers and statuses.

Tiers are totally ordered by capability: every tier is a superset of the one
below it. All "minimum tier" checks compare integer ranks, never names.
"""

from enum import StrEnum

from mealplanner.core.exceptions import ConfigurationError


class Tier(StrEnum):
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"

    @property
    def rank(self) -> int:
        return TIER_RANK[self]

    def at_least(self, other: "Tier") -> bool:
        return self.rank >= other.rank


class SubscriptionStatus(StrEnum):
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELED = "canceled"


TIER_RANK: dict[Tier, int] = {
    Tier.STARTER: 1,
    Tier.PROFESSIONAL: 2,
    Tier.ENTERPRISE: 3,
}

TIERS_ASCENDING: tuple[Tier, ...] = tuple(sorted(Tier, key=lambda t: TIER_RANK[t]))

# Only these statuses carry paid entitlements
ENTITLED_STATUSES: frozenset[SubscriptionStatus] = frozenset(
    {SubscriptionStatus.TRIALING, SubscriptionStatus.ACTIVE}
)


def parse_tier(value: str | Tier) -> Tier:
    """Coerce a stored or external value to a Tier.

    Raises:
        ConfigurationError: value is not a known tier
    """
    if isinstance(value, Tier):
        return value
    try:
        return Tier(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown subscription tier: {value!r}") from None


def parse_status(value: str | SubscriptionStatus) -> SubscriptionStatus:
    if isinstance(value, SubscriptionStatus):
        return value
    try:
        return SubscriptionStatus(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown subscription status: {value!r}") from None


def next_tier(tier: Tier) -> Tier | None:
    """Return the tier directly above ``tier``, or None at the top."""
    idx = TIERS_ASCENDING.index(tier)
    if idx + 1 < len(TIERS_ASCENDING):
        return TIERS_ASCENDING[idx + 1]
    return None
