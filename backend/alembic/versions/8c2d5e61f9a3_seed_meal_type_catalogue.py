"""seed meal type catalogue

Revision ID: 8c2d5e61f9a3
Revises: 3f1a9c7e2b40
Create Date: 2026-09-14 10:05:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c2d5e61f9a3"
down_revision: str | Sequence[str] | None = "3f1a9c7e2b40"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Frozen copy: migrations must not change when the runtime catalogue does
MEAL_TYPES = [
    ("breakfast", "Breakfast", "starter", False, 1),
    ("lunch", "Lunch", "starter", False, 2),
    ("dinner", "Dinner", "starter", False, 3),
    ("snack", "Snack", "starter", False, 4),
    ("post-workout", "Post-Workout", "starter", False, 5),
    ("keto", "Keto", "professional", False, 6),
    ("vegan", "Vegan", "professional", False, 7),
    ("paleo", "Paleo", "professional", False, 8),
    ("pre-workout", "Pre-Workout", "professional", False, 9),
    ("high-protein", "High-Protein", "professional", False, 10),
    ("low-carb", "Low-Carb", "enterprise", False, 11),
    ("mediterranean", "Mediterranean", "enterprise", False, 12),
    ("diabetic-friendly", "Diabetic-Friendly", "enterprise", False, 13),
    ("gluten-free", "Gluten-Free", "enterprise", False, 14),
    ("bulking", "Bulking", "enterprise", False, 15),
    ("cutting", "Cutting", "enterprise", False, 16),
    ("seasonal-special", "Seasonal Special", "enterprise", True, 17),
]


def upgrade() -> None:
    """Insert the 17 meal types."""
    categories = sa.table(
        "recipe_type_categories",
        sa.column("name", sa.String),
        sa.column("display_name", sa.String),
        sa.column("tier_level", sa.Enum("starter", "professional", "enterprise", name="tier_level")),
        sa.column("is_seasonal", sa.Boolean),
        sa.column("sort_order", sa.Integer),
    )
    op.bulk_insert(
        categories,
        [
            {
                "name": name,
                "display_name": display_name,
                "tier_level": tier_level,
                "is_seasonal": is_seasonal,
                "sort_order": sort_order,
            }
            for name, display_name, tier_level, is_seasonal, sort_order in MEAL_TYPES
        ],
    )


def downgrade() -> None:
    """Remove the seeded meal types."""
    names = ", ".join(f"'{row[0]}'" for row in MEAL_TYPES)
    op.execute(f"DELETE FROM recipe_type_categories WHERE name IN ({names})")
