from __future__ import annotations

from datetime import date, datetime
import uuid
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid_str() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    """Common created/updated timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class UserTier:
    BASIC = "basic"
    PREMIUM = "premium"


class UserAccount(Base, TimestampMixin):
    __tablename__ = "user_accounts"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(320))
    tier: Mapped[str] = mapped_column(String(32), nullable=False, default=UserTier.BASIC)


class Ingredient(Base, TimestampMixin):
    __tablename__ = "ingredients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="other")


class Recipe(Base, TimestampMixin):
    __tablename__ = "recipes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    json_type = JSON().with_variant(JSONB, "postgresql")
    meal_types: Mapped[list] = mapped_column(json_type, nullable=False, default=list)
    servings_default: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    prep_time_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    cook_time_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    total_time_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    is_vegetarian: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_dairy_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    ingredients: Mapped[List["RecipeIngredient"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan"
    )


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)

    recipe: Mapped[Recipe] = relationship(back_populates="ingredients")
    ingredient: Mapped[Ingredient] = relationship()


class MealPlan(Base, TimestampMixin):
    __tablename__ = "meal_plans"
    __table_args__ = (Index("ix_meal_plans_user_created", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[List["MealPlanItem"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="MealPlanItem.day_index",
    )
    shopping_list: Mapped[Optional["ShoppingList"]] = relationship(
        back_populates="plan", cascade="all, delete-orphan", uselist=False
    )

    def __repr__(self) -> str:
        return f"MealPlan(id={self.id}, user_id={self.user_id}, days={self.days})"


class MealPlanItem(Base):
    __tablename__ = "meal_plan_items"
    __table_args__ = (UniqueConstraint("plan_id", "day_index", "meal_type", name="uq_meal_plan_item_slot"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)
    meal_type: Mapped[str] = mapped_column(String(16), nullable=False)
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="RESTRICT"), nullable=False
    )
    servings: Mapped[int] = mapped_column(Integer, nullable=False)

    plan: Mapped[MealPlan] = relationship(back_populates="items")
    recipe: Mapped[Recipe] = relationship()


class ShoppingList(Base, TimestampMixin):
    __tablename__ = "shopping_lists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    plan: Mapped[MealPlan] = relationship(back_populates="shopping_list")
    items: Mapped[List["ShoppingListItem"]] = relationship(
        back_populates="shopping_list",
        cascade="all, delete-orphan",
        order_by="ShoppingListItem.name",
    )


class ShoppingListItem(Base):
    __tablename__ = "shopping_list_items"
    __table_args__ = (Index("ix_shopping_list_items_category", "shopping_list_id", "category"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    shopping_list_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("ingredients.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(32))
    checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    shopping_list: Mapped[ShoppingList] = relationship(back_populates="items")
    ingredient: Mapped[Optional[Ingredient]] = relationship()


class PriceBaseline(Base, TimestampMixin):
    __tablename__ = "price_baselines"
    __table_args__ = (
        UniqueConstraint("ingredient_category", "store", "unit", name="uq_price_baseline"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    ingredient_category: Mapped[str] = mapped_column(String(32), nullable=False)
    store: Mapped[str] = mapped_column(String(64), nullable=False)
    unit: Mapped[str] = mapped_column(String(16), nullable=False)
    price_per_unit: Mapped[float] = mapped_column(Float, nullable=False)


class UserPreferences(Base, TimestampMixin):
    __tablename__ = "user_preferences"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    household_size: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    meals_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    days: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    is_vegetarian: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_dairy_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dislikes: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    weeknight_max_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    weekly_time_budget_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    prioritize_weeknights: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PantryItem(Base, TimestampMixin):
    __tablename__ = "pantry_items"
    __table_args__ = (UniqueConstraint("user_id", "ingredient_id", name="uq_pantry_item"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    ingredient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
