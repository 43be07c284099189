"""create entitlement and planning schema

Revision ID: 3f1a9c7e2b40
Revises:
Create Date: 2026-09-14 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1a9c7e2b40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TIER_LEVEL = sa.Enum("starter", "professional", "enterprise", name="tier_level")
SUBSCRIPTION_STATUS = sa.Enum("trialing", "active", "past_due", "unpaid", "canceled", name="subscription_status")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), nullable=False)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _user_fk(name: str, ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.String(length=36), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable)


def _recipe_fk(ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        "recipe_id", sa.String(length=36), sa.ForeignKey("recipes.id", ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    """Create users, subscriptions, usage tracking, catalogue, planning and engagement tables.

    Every foreign key carries its ON DELETE rule; application code never
    deletes dependent rows itself.
    """
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="customer"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "trainer_customers",
        _id(),
        _user_fk("trainer_id"),
        _user_fk("customer_id"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trainer_id", "customer_id", name="uq_trainer_customer"),
    )
    op.create_index(op.f("ix_trainer_customers_trainer_id"), "trainer_customers", ["trainer_id"])
    op.create_index(op.f("ix_trainer_customers_customer_id"), "trainer_customers", ["customer_id"])

    op.create_table(
        "trainer_subscriptions",
        _id(),
        _user_fk("trainer_id"),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("tier", TIER_LEVEL, nullable=False, server_default="starter"),
        sa.Column("status", SUBSCRIPTION_STATUS, nullable=False, server_default="trialing"),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("trial_end", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _created_at("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_trainer_subscriptions_trainer_id"), "trainer_subscriptions", ["trainer_id"], unique=True)
    op.create_index(
        op.f("ix_trainer_subscriptions_stripe_customer_id"),
        "trainer_subscriptions",
        ["stripe_customer_id"],
        unique=True,
    )
    op.create_index(
        op.f("ix_trainer_subscriptions_stripe_subscription_id"), "trainer_subscriptions", ["stripe_subscription_id"]
    )

    op.create_table(
        "tier_usage_tracking",
        _id(),
        _user_fk("trainer_id"),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("customers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("meal_plans_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ai_generations_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("exports_pdf_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("exports_csv_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("exports_excel_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("trainer_id", "period_start", name="uq_usage_trainer_period"),
    )
    op.create_index(op.f("ix_tier_usage_tracking_trainer_id"), "tier_usage_tracking", ["trainer_id"])

    op.create_table(
        "recipe_type_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("tier_level", TIER_LEVEL, nullable=False),
        sa.Column("is_seasonal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_recipe_type_categories_name"), "recipe_type_categories", ["name"], unique=True)

    op.create_table(
        "recipes",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("meal_types", sa.JSON(), nullable=False),
        sa.Column("calories", sa.Integer(), nullable=True),
        sa.Column("protein_grams", sa.Integer(), nullable=True),
        sa.Column("tier_level", TIER_LEVEL, nullable=False, server_default="starter"),
        sa.Column("is_seasonal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.true()),
        _user_fk("creator_id", ondelete="SET NULL", nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_recipes_tier_level"), "recipes", ["tier_level"])

    op.create_table(
        "meal_plans",
        _id(),
        _user_fk("trainer_id"),
        _user_fk("customer_id", nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("meal_type", sa.String(length=50), nullable=False),
        sa.Column("plan_data", sa.JSON(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_meal_plans_trainer_id"), "meal_plans", ["trainer_id"])
    op.create_index(op.f("ix_meal_plans_customer_id"), "meal_plans", ["customer_id"])

    op.create_table(
        "grocery_lists",
        _id(),
        _user_fk("customer_id"),
        sa.Column(
            "meal_plan_id",
            sa.String(length=36),
            sa.ForeignKey("meal_plans.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_grocery_lists_customer_id"), "grocery_lists", ["customer_id"])
    op.create_index(op.f("ix_grocery_lists_meal_plan_id"), "grocery_lists", ["meal_plan_id"])

    op.create_table(
        "grocery_list_items",
        _id(),
        sa.Column(
            "grocery_list_id",
            sa.String(length=36),
            sa.ForeignKey("grocery_lists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _recipe_fk(ondelete="SET NULL", nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False, server_default="produce"),
        sa.Column("quantity", sa.String(length=50), nullable=False, server_default="1"),
        sa.Column("unit", sa.String(length=20), nullable=False, server_default="pcs"),
        sa.Column("is_checked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_grocery_list_items_grocery_list_id"), "grocery_list_items", ["grocery_list_id"])

    op.create_table(
        "recipe_favorites",
        _id(),
        _user_fk("user_id"),
        _recipe_fk(),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at("favorited_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "recipe_id", name="uq_favorite_user_recipe"),
    )
    op.create_index(op.f("ix_recipe_favorites_user_id"), "recipe_favorites", ["user_id"])
    op.create_index(op.f("ix_recipe_favorites_recipe_id"), "recipe_favorites", ["recipe_id"])

    op.create_table(
        "favorite_collections",
        _id(),
        _user_fk("user_id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_favorite_collections_user_id"), "favorite_collections", ["user_id"])

    op.create_table(
        "collection_recipes",
        _id(),
        sa.Column(
            "collection_id",
            sa.String(length=36),
            sa.ForeignKey("favorite_collections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _recipe_fk(),
        _user_fk("added_by", ondelete="SET NULL", nullable=True),
        _created_at("added_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("collection_id", "recipe_id", name="uq_collection_recipe"),
    )
    op.create_index(op.f("ix_collection_recipes_collection_id"), "collection_recipes", ["collection_id"])
    op.create_index(op.f("ix_collection_recipes_recipe_id"), "collection_recipes", ["recipe_id"])

    op.create_table(
        "recipe_ratings",
        _id(),
        _user_fk("user_id"),
        _recipe_fk(),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("review", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "recipe_id", name="uq_rating_user_recipe"),
    )
    op.create_index(op.f("ix_recipe_ratings_user_id"), "recipe_ratings", ["user_id"])
    op.create_index(op.f("ix_recipe_ratings_recipe_id"), "recipe_ratings", ["recipe_id"])

    op.create_table(
        "user_recipe_interactions",
        _id(),
        _user_fk("user_id"),
        _recipe_fk(),
        sa.Column("interaction_type", sa.String(length=20), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_recipe_interactions_user_id"), "user_recipe_interactions", ["user_id"])
    op.create_index(op.f("ix_user_recipe_interactions_recipe_id"), "user_recipe_interactions", ["recipe_id"])

    op.create_table(
        "recipe_recommendations",
        _id(),
        _user_fk("user_id"),
        _recipe_fk(),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reason", sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_recipe_recommendations_user_id"), "recipe_recommendations", ["user_id"])
    op.create_index(op.f("ix_recipe_recommendations_recipe_id"), "recipe_recommendations", ["recipe_id"])

    op.create_table(
        "user_sessions",
        _id(),
        _user_fk("user_id"),
        _created_at("started_at"),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_sessions_user_id"), "user_sessions", ["user_id"])

    op.create_table(
        "trainer_branding_settings",
        _id(),
        _user_fk("trainer_id"),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("primary_color", sa.String(length=7), nullable=True),
        sa.Column("secondary_color", sa.String(length=7), nullable=True),
        sa.Column("accent_color", sa.String(length=7), nullable=True),
        sa.Column("white_label_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("custom_domain", sa.String(length=255), nullable=True),
        sa.Column("custom_domain_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("domain_verification_token", sa.String(length=64), nullable=True),
        sa.Column("domain_verified_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _created_at("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_trainer_branding_settings_trainer_id"), "trainer_branding_settings", ["trainer_id"], unique=True
    )

    op.create_table(
        "branding_audit_log",
        _id(),
        _user_fk("trainer_id"),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("field_changed", sa.String(length=50), nullable=True),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        _created_at("changed_at"),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_branding_audit_log_trainer_id"), "branding_audit_log", ["trainer_id"])

    op.create_table(
        "stripe_webhook_events",
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=True),
        _created_at("processed_at"),
        sa.PrimaryKeyConstraint("event_id"),
    )


def downgrade() -> None:
    """Drop all tables (children first) and the enum types."""
    for table in (
        "stripe_webhook_events",
        "branding_audit_log",
        "trainer_branding_settings",
        "user_sessions",
        "recipe_recommendations",
        "user_recipe_interactions",
        "recipe_ratings",
        "collection_recipes",
        "favorite_collections",
        "recipe_favorites",
        "grocery_list_items",
        "grocery_lists",
        "meal_plans",
        "recipes",
        "recipe_type_categories",
        "tier_usage_tracking",
        "trainer_subscriptions",
        "trainer_customers",
        "users",
    ):
        op.drop_table(table)
    SUBSCRIPTION_STATUS.drop(op.get_bind(), checkfirst=True)
    TIER_LEVEL.drop(op.get_bind(), checkfirst=True)
