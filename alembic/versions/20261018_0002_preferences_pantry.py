"""Saved planning preferences and pantry stock.

Revision ID: 3c8e5a17f2b6
Revises: 7b1f0c2d9a41
Create Date: 2026-10-18 15:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3c8e5a17f2b6"
down_revision = "7b1f0c2d9a41"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_preferences",
        sa.Column("user_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("household_size", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("meals_per_day", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("days", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("is_vegetarian", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_dairy_free", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dislikes", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("weeknight_max_minutes", sa.Integer(), nullable=True),
        sa.Column("weekly_time_budget_minutes", sa.Integer(), nullable=True),
        sa.Column("prioritize_weeknights", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )

    op.create_table(
        "pantry_items",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column(
            "ingredient_id",
            sa.String(length=36),
            sa.ForeignKey("ingredients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("user_id", "ingredient_id", name="uq_pantry_item"),
    )
    op.create_index("ix_pantry_items_user_id", "pantry_items", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_pantry_items_user_id", table_name="pantry_items")
    op.drop_table("pantry_items")
    op.drop_table("user_preferences")
