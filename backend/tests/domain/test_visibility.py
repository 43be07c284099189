"""Tests for the recipe visibility rule (Python and SQL forms)."""

import pytest
from sqlalchemy import Boolean, Column, MetaData, String, Table, select
from sqlalchemy.dialects import sqlite

from mealplanner.domain.entitlements import BASELINE_ENTITLEMENTS, resolve_entitlements
from mealplanner.domain.tiers import Tier
from mealplanner.domain.visibility import is_recipe_visible, visibility_clause

pytestmark = pytest.mark.unit

STARTER = resolve_entitlements(Tier.STARTER)
PROFESSIONAL = resolve_entitlements(Tier.PROFESSIONAL)
ENTERPRISE = resolve_entitlements(Tier.ENTERPRISE)


@pytest.mark.parametrize(
    "tier_level,is_seasonal,entitlements,expected",
    [
        ("starter", False, STARTER, True),
        ("professional", False, STARTER, False),
        ("starter", True, STARTER, False),
        ("starter", True, PROFESSIONAL, True),
        ("professional", False, PROFESSIONAL, True),
        ("enterprise", False, PROFESSIONAL, False),
        ("enterprise", True, ENTERPRISE, True),
        ("starter", False, BASELINE_ENTITLEMENTS, False),
    ],
)
def test_is_recipe_visible(tier_level, is_seasonal, entitlements, expected):
    assert is_recipe_visible(tier_level, is_seasonal, entitlements) is expected


def _compile(entitlements) -> str:
    table = Table("t", MetaData(), Column("tier_level", String), Column("is_seasonal", Boolean))
    stmt = select(table).where(visibility_clause(table.c.tier_level, table.c.is_seasonal, entitlements))
    return str(stmt.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def test_starter_clause_excludes_seasonal():
    sql = _compile(STARTER)
    assert "CASE" in sql
    assert "NOT t.is_seasonal" in sql or "t.is_seasonal = 0" in sql


def test_professional_clause_allows_seasonal():
    assert "is_seasonal" not in _compile(PROFESSIONAL).split("WHERE", 1)[1]


def test_baseline_clause_is_always_false():
    where = _compile(BASELINE_ENTITLEMENTS).split("WHERE", 1)[1]
    assert "0 = 1" in where or "false" in where.lower()
