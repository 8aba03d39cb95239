from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple

MEAL_TYPES: Tuple[str, ...] = ("breakfast", "lunch", "dinner")
UNCATEGORIZED = "other"
CATEGORY_ORDER: Tuple[str, ...] = (
    "vegetables",
    "fruits",
    "protein",
    "dairy",
    "grains",
    "pantry",
    UNCATEGORIZED,
)


@dataclass(frozen=True)
class RecipeIngredientLine:
    ingredient_id: str
    name: str
    quantity: float
    unit: str
    category: Optional[str] = None


@dataclass(frozen=True)
class Recipe:
    id: str
    title: str
    meal_types: frozenset[str]
    servings_default: int
    ingredients: Tuple[RecipeIngredientLine, ...] = ()
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    total_time_minutes: Optional[int] = None
    is_vegetarian: bool = False
    is_dairy_free: bool = False

    @property
    def effective_total_minutes(self) -> Optional[int]:
        if self.total_time_minutes is not None:
            return self.total_time_minutes
        if self.prep_time_minutes is not None or self.cook_time_minutes is not None:
            return (self.prep_time_minutes or 0) + (self.cook_time_minutes or 0)
        return None


@dataclass(frozen=True)
class RecipeFilter:
    is_vegetarian: bool = False
    is_dairy_free: bool = False


@dataclass(frozen=True)
class PlanItemDraft:
    day_index: int
    meal_type: str
    recipe_id: str
    servings: int


@dataclass(frozen=True)
class PlanItem:
    id: str
    day_index: int
    meal_type: str
    recipe_id: str
    servings: int
    recipe: Optional[Recipe] = None


@dataclass(frozen=True)
class MealPlan:
    id: str
    user_id: str
    start_date: date
    days: int
    items: Tuple[PlanItem, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ShoppingItemDraft:
    ingredient_id: Optional[str]
    name: str
    quantity: float
    unit: str
    category: Optional[str] = None


@dataclass(frozen=True)
class ShoppingItem:
    id: str
    ingredient_id: Optional[str]
    name: str
    quantity: float
    unit: str
    category: Optional[str]
    checked: bool

    @property
    def resolved_category(self) -> str:
        return self.category or UNCATEGORIZED


@dataclass(frozen=True)
class ShoppingListRecord:
    id: str
    plan_id: str
    items: Tuple[ShoppingItem, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class PriceBaseline:
    ingredient_category: str
    store: str
    unit: str
    price_per_unit: float


@dataclass(frozen=True)
class Entitlements:
    tier: str
    max_plan_days: int
    time_preferences: bool
    budget_estimates: bool


@dataclass(frozen=True)
class TimePreferences:
    weeknight_max_minutes: Optional[int] = None
    weekly_time_budget_minutes: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.weeknight_max_minutes is None and self.weekly_time_budget_minutes is None


@dataclass(frozen=True)
class PlanRequest:
    """Generation input. `None` falls back to saved preferences, then to defaults."""

    user_id: str
    start_date: Optional[date] = None
    days: Optional[int] = None
    meals_per_day: Optional[int] = None
    household_size: Optional[int] = None
    is_vegetarian: Optional[bool] = None
    is_dairy_free: Optional[bool] = None
    dislikes: Optional[str] = None
    time_preferences: TimePreferences = field(default_factory=TimePreferences)


@dataclass(frozen=True)
class PlanningPreferences:
    household_size: int
    meals_per_day: int
    days: int
    is_vegetarian: bool = False
    is_dairy_free: bool = False
    dislikes: str = ""
    weeknight_max_minutes: Optional[int] = None
    weekly_time_budget_minutes: Optional[int] = None
    prioritize_weeknights: bool = True

    @property
    def time_preferences(self) -> TimePreferences:
        return TimePreferences(
            weeknight_max_minutes=self.weeknight_max_minutes,
            weekly_time_budget_minutes=self.weekly_time_budget_minutes,
        )


@dataclass(frozen=True)
class PantryItem:
    ingredient_id: str
    quantity: float
    unit: str
