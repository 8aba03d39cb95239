"""Meal planning, shopping list and price baseline tables.

Revision ID: 7b1f0c2d9a41
Revises:
Create Date: 2026-10-18 09:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "7b1f0c2d9a41"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "user_accounts",
        sa.Column("user_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("tier", sa.String(length=32), nullable=False, server_default="basic"),
        *_timestamps(),
    )

    op.create_table(
        "ingredients",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("category", sa.String(length=32), nullable=False, server_default="other"),
        *_timestamps(),
    )

    op.create_table(
        "recipes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column(
            "meal_types",
            sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql"),
            nullable=False,
        ),
        sa.Column("servings_default", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("prep_time_minutes", sa.Integer(), nullable=True),
        sa.Column("cook_time_minutes", sa.Integer(), nullable=True),
        sa.Column("total_time_minutes", sa.Integer(), nullable=True),
        sa.Column("is_vegetarian", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_dairy_free", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "recipe_id",
            sa.String(length=36),
            sa.ForeignKey("recipes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "ingredient_id",
            sa.String(length=36),
            sa.ForeignKey("ingredients.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=32), nullable=False),
    )
    op.create_index("ix_recipe_ingredients_recipe_id", "recipe_ingredients", ["recipe_id"])

    op.create_table(
        "meal_plans",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_meal_plans_user_created", "meal_plans", ["user_id", "created_at"])

    op.create_table(
        "meal_plan_items",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "plan_id",
            sa.String(length=36),
            sa.ForeignKey("meal_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_index", sa.Integer(), nullable=False),
        sa.Column("meal_type", sa.String(length=16), nullable=False),
        sa.Column(
            "recipe_id",
            sa.String(length=36),
            sa.ForeignKey("recipes.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("servings", sa.Integer(), nullable=False),
        sa.UniqueConstraint("plan_id", "day_index", "meal_type", name="uq_meal_plan_item_slot"),
    )
    op.create_index("ix_meal_plan_items_plan_id", "meal_plan_items", ["plan_id"])

    op.create_table(
        "shopping_lists",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "plan_id",
            sa.String(length=36),
            sa.ForeignKey("meal_plans.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        *_timestamps(),
    )

    op.create_table(
        "shopping_list_items",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "shopping_list_id",
            sa.String(length=36),
            sa.ForeignKey("shopping_lists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "ingredient_id",
            sa.String(length=36),
            sa.ForeignKey("ingredients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(length=32), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=True),
        sa.Column("checked", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_shopping_list_items_shopping_list_id", "shopping_list_items", ["shopping_list_id"])
    op.create_index("ix_shopping_list_items_category", "shopping_list_items", ["shopping_list_id", "category"])

    op.create_table(
        "price_baselines",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("ingredient_category", sa.String(length=32), nullable=False),
        sa.Column("store", sa.String(length=64), nullable=False),
        sa.Column("unit", sa.String(length=16), nullable=False),
        sa.Column("price_per_unit", sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("ingredient_category", "store", "unit", name="uq_price_baseline"),
    )


def downgrade() -> None:
    op.drop_table("price_baselines")
    op.drop_index("ix_shopping_list_items_category", table_name="shopping_list_items")
    op.drop_index("ix_shopping_list_items_shopping_list_id", table_name="shopping_list_items")
    op.drop_table("shopping_list_items")
    op.drop_table("shopping_lists")
    op.drop_index("ix_meal_plan_items_plan_id", table_name="meal_plan_items")
    op.drop_table("meal_plan_items")
    op.drop_index("ix_meal_plans_user_created", table_name="meal_plans")
    op.drop_table("meal_plans")
    op.drop_index("ix_recipe_ingredients_recipe_id", table_name="recipe_ingredients")
    op.drop_table("recipe_ingredients")
    op.drop_table("recipes")
    op.drop_table("ingredients")
    op.drop_table("user_accounts")
