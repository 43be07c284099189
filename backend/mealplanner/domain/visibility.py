"""Recipe visibility rule.

A recipe is visible to a trainer at tier T when its tier_level rank is at most
rank(T), and seasonal recipes additionally need T >= professional.
"""

from sqlalchemy import ColumnElement, and_, case, false, not_

from mealplanner.domain.entitlements import SEASONAL_MIN_TIER, Entitlements
from mealplanner.domain.tiers import TIER_RANK, Tier, parse_tier


def is_recipe_visible(tier_level: Tier | str, is_seasonal: bool, entitlements: Entitlements) -> bool:
    if entitlements.tier is None:
        return False
    viewer = entitlements.tier
    if parse_tier(tier_level).rank > viewer.rank:
        return False
    if is_seasonal and viewer.rank < SEASONAL_MIN_TIER.rank:
        return False
    return True


def tier_rank_expression(column) -> ColumnElement[int]:
    """SQL CASE expression mapping a stored tier name to its rank."""
    return case(
        {tier.value: rank for tier, rank in TIER_RANK.items()},
        value=column,
        else_=len(TIER_RANK) + 1,
    )


def visibility_clause(tier_column, seasonal_column, entitlements: Entitlements) -> ColumnElement[bool]:
    """WHERE clause selecting the rows ``is_recipe_visible`` would accept."""
    if entitlements.tier is None:
        return false()

    viewer = entitlements.tier
    clause = tier_rank_expression(tier_column) <= viewer.rank
    if viewer.rank < SEASONAL_MIN_TIER.rank:
        clause = and_(clause, not_(seasonal_column))
    return clause
