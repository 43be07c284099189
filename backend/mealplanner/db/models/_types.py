"""Column types shared by several models."""

from sqlalchemy import Enum

from mealplanner.domain.tiers import SubscriptionStatus, Tier


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


# Stored as the lowercase value ("starter"), not the member name
TierLevel = Enum(Tier, name="tier_level", values_callable=_enum_values, validate_strings=True)
SubscriptionStatusType = Enum(
    SubscriptionStatus,
    name="subscription_status",
    values_callable=_enum_values,
    validate_strings=True,
)
