"""Storage capabilities consumed by the planning and shopping engines.

Engines only depend on these protocols; `mealmind.stores` provides the
SQLAlchemy implementations used by the API.
"""
from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol, Sequence

from .domain import (
    MealPlan,
    PantryItem,
    PlanItemDraft,
    PlanningPreferences,
    PriceBaseline,
    Recipe,
    RecipeFilter,
    ShoppingItem,
    ShoppingItemDraft,
    ShoppingListRecord,
)


class CatalogReader(Protocol):
    async def query_recipes(self, recipe_filter: RecipeFilter) -> List[Recipe]:
        ...


class UserDirectory(Protocol):
    async def get_tier(self, user_id: str) -> Optional[str]:
        ...


class PlanStore(Protocol):
    async def create_plan(
        self,
        *,
        user_id: str,
        start_date: date,
        days: int,
        items: Sequence[PlanItemDraft],
    ) -> MealPlan:
        """Persist the header and every item in one transaction."""
        ...

    async def get_plan_with_recipes(self, plan_id: str) -> Optional[MealPlan]:
        """Load a plan with each item's recipe and recipe ingredients.

        Raises TransientReadFailure when the read itself fails.
        """
        ...

    async def get_plan(self, plan_id: str) -> Optional[MealPlan]:
        ...

    async def get_latest_plan(self, user_id: str) -> Optional[MealPlan]:
        ...

    async def list_plans(self, user_id: str, limit: int) -> List[MealPlan]:
        ...

    async def delete_plan(self, plan_id: str) -> bool:
        ...


class ShoppingListStore(Protocol):
    async def find_by_plan(self, plan_id: str) -> Optional[ShoppingListRecord]:
        ...

    async def create_with_items(
        self, plan_id: str, items: Sequence[ShoppingItemDraft]
    ) -> ShoppingListRecord:
        """Persist list and items in one write.

        Raises ShoppingListConflict when a list already exists for the plan.
        """
        ...

    async def get_item(self, item_id: str) -> Optional[ShoppingItem]:
        ...

    async def get_item_owner(self, item_id: str) -> Optional[str]:
        ...

    async def get_list_owner(self, list_id: str) -> Optional[str]:
        ...

    async def toggle_item_checked(self, item_id: str) -> Optional[bool]:
        """Flip the flag in one statement; None when the item does not exist."""
        ...

    async def set_category_checked(
        self, list_id: str, category: str, checked: bool, *, include_uncategorized: bool
    ) -> int:
        ...


class PriceBaselineReader(Protocol):
    async def list_baselines(self) -> List[PriceBaseline]:
        ...


class PreferencesStore(Protocol):
    async def get_preferences(self, user_id: str) -> Optional[PlanningPreferences]:
        ...

    async def save_preferences(
        self, user_id: str, preferences: PlanningPreferences
    ) -> PlanningPreferences:
        """Insert or replace the user's saved planning preferences."""
        ...


class PantryReader(Protocol):
    async def list_pantry(self, user_id: str) -> List[PantryItem]:
        ...
