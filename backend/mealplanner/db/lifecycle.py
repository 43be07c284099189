"""Declared ON DELETE policy for every dependent foreign key.

The database applies these rules; application code never deletes children by
hand. ``verify_cascade_rules`` runs at startup and refuses to boot if a model
drifts from the policy below.

Meal plan -> grocery list: CASCADE. Lists generated from a plan are removed
with it; standalone lists (meal_plan_id IS NULL) are never affected.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy import MetaData, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mealplanner.core.exceptions import ConfigurationError
from mealplanner.db.base import Base

logger = structlog.get_logger(__name__)

CASCADE = "CASCADE"
SET_NULL = "SET NULL"


@dataclass(frozen=True)
class CascadeRule:
    table: str
    column: str
    parent_table: str
    on_delete: str


CASCADE_POLICY: tuple[CascadeRule, ...] = (
    # User deleted
    CascadeRule("trainer_customers", "trainer_id", "users", CASCADE),
    CascadeRule("trainer_customers", "customer_id", "users", CASCADE),
    CascadeRule("trainer_subscriptions", "trainer_id", "users", CASCADE),
    CascadeRule("tier_usage_tracking", "trainer_id", "users", CASCADE),
    CascadeRule("meal_plans", "trainer_id", "users", CASCADE),
    CascadeRule("meal_plans", "customer_id", "users", CASCADE),
    CascadeRule("grocery_lists", "customer_id", "users", CASCADE),
    CascadeRule("recipe_favorites", "user_id", "users", CASCADE),
    CascadeRule("favorite_collections", "user_id", "users", CASCADE),
    CascadeRule("collection_recipes", "added_by", "users", SET_NULL),
    CascadeRule("recipe_ratings", "user_id", "users", CASCADE),
    CascadeRule("user_recipe_interactions", "user_id", "users", CASCADE),
    CascadeRule("recipe_recommendations", "user_id", "users", CASCADE),
    CascadeRule("user_sessions", "user_id", "users", CASCADE),
    CascadeRule("trainer_branding_settings", "trainer_id", "users", CASCADE),
    CascadeRule("branding_audit_log", "trainer_id", "users", CASCADE),
    CascadeRule("recipes", "creator_id", "users", SET_NULL),
    # Meal plan deleted
    CascadeRule("grocery_lists", "meal_plan_id", "meal_plans", CASCADE),
    # Grocery list deleted
    CascadeRule("grocery_list_items", "grocery_list_id", "grocery_lists", CASCADE),
    # Collection deleted
    CascadeRule("collection_recipes", "collection_id", "favorite_collections", CASCADE),
    # Recipe deleted
    CascadeRule("recipe_favorites", "recipe_id", "recipes", CASCADE),
    CascadeRule("collection_recipes", "recipe_id", "recipes", CASCADE),
    CascadeRule("recipe_ratings", "recipe_id", "recipes", CASCADE),
    CascadeRule("user_recipe_interactions", "recipe_id", "recipes", CASCADE),
    CascadeRule("recipe_recommendations", "recipe_id", "recipes", CASCADE),
    CascadeRule("grocery_list_items", "recipe_id", "recipes", SET_NULL),
)


def rules_for_parent(parent_table: str) -> list[CascadeRule]:
    return [rule for rule in CASCADE_POLICY if rule.parent_table == parent_table]


def _normalize(on_delete: str | None) -> str | None:
    return on_delete.upper() if on_delete else None


def verify_cascade_rules(metadata: MetaData) -> None:
    """Check every model foreign key against CASCADE_POLICY.

    Fails on a declared rule whose column is missing or whose ON DELETE action
    differs, on any undeclared foreign key, and on SET NULL columns that are
    NOT NULL (the delete would be rejected by the database).

    Raises:
        ConfigurationError: listing every mismatch found
    """
    problems: list[str] = []
    declared = {(rule.table, rule.column): rule for rule in CASCADE_POLICY}

    for (table_name, column_name), rule in declared.items():
        table = metadata.tables.get(table_name)
        if table is None or column_name not in table.c:
            problems.append(f"{table_name}.{column_name}: column not found")
            continue

        column = table.c[column_name]
        fks = [fk for fk in column.foreign_keys if fk.column.table.name == rule.parent_table]
        if not fks:
            problems.append(f"{table_name}.{column_name}: no foreign key to {rule.parent_table}")
            continue

        actual = _normalize(fks[0].ondelete)
        if actual != rule.on_delete:
            problems.append(f"{table_name}.{column_name}: ON DELETE {actual} (expected {rule.on_delete})")
        if rule.on_delete == SET_NULL and not column.nullable:
            problems.append(f"{table_name}.{column_name}: SET NULL on a NOT NULL column")

    for table in metadata.tables.values():
        for fk in table.foreign_keys:
            if (table.name, fk.parent.name) not in declared:
                problems.append(f"{table.name}.{fk.parent.name}: foreign key missing from cascade policy")

    if problems:
        logger.error("cascade_policy_mismatch", problems=problems)
        raise ConfigurationError("Cascade policy mismatch: " + "; ".join(sorted(problems)))


async def count_dependents(session: AsyncSession, parent_table: str, parent_id: str) -> dict[str, int]:
    """Count rows that reference ``parent_id`` through each declared rule.

    Keys are ``"<table>.<column>"``; zero counts are included so callers can
    assert that nothing references a deleted row.
    """
    import mealplanner.db.models  # noqa: F401

    counts: dict[str, int] = {}
    for rule in rules_for_parent(parent_table):
        table = Base.metadata.tables[rule.table]
        result = await session.execute(
            select(func.count()).select_from(table).where(table.c[rule.column] == parent_id)
        )
        counts[f"{rule.table}.{rule.column}"] = result.scalar_one()
    return counts
