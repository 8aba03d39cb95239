"""In-memory capability implementations for engine and route tests."""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from mealmind.errors import ShoppingListConflict, TransientReadFailure
from mealmind.services.domain import (
    MealPlan,
    PantryItem,
    PlanItem,
    PlanItemDraft,
    PlanningPreferences,
    PriceBaseline,
    Recipe,
    RecipeFilter,
    RecipeIngredientLine,
    ShoppingItem,
    ShoppingItemDraft,
    ShoppingListRecord,
)

_ids = itertools.count(1)


def next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


def make_recipe(
    recipe_id: str,
    meal_types: Iterable[str] = ("dinner",),
    *,
    minutes: Optional[int] = 30,
    servings: int = 2,
    ingredients: Sequence[tuple] = (),
    vegetarian: bool = False,
    dairy_free: bool = False,
) -> Recipe:
    """`ingredients` holds (ingredient_id, name, quantity, unit[, category]) tuples."""
    lines = tuple(
        RecipeIngredientLine(
            ingredient_id=entry[0],
            name=entry[1],
            quantity=entry[2],
            unit=entry[3],
            category=entry[4] if len(entry) > 4 else None,
        )
        for entry in ingredients
    )
    return Recipe(
        id=recipe_id,
        title=recipe_id.replace("-", " ").title(),
        meal_types=frozenset(meal_types),
        servings_default=servings,
        ingredients=lines,
        total_time_minutes=minutes,
        is_vegetarian=vegetarian,
        is_dairy_free=dairy_free,
    )


class FakeCatalog:
    def __init__(self, recipes: Sequence[Recipe]) -> None:
        self.recipes = list(recipes)
        self.queries: List[RecipeFilter] = []

    async def query_recipes(self, recipe_filter: RecipeFilter) -> List[Recipe]:
        self.queries.append(recipe_filter)
        result = self.recipes
        if recipe_filter.is_vegetarian:
            result = [r for r in result if r.is_vegetarian]
        if recipe_filter.is_dairy_free:
            result = [r for r in result if r.is_dairy_free]
        return list(result)


class FakeUsers:
    def __init__(self, tiers: Dict[str, str]) -> None:
        self.tiers = tiers

    async def get_tier(self, user_id: str) -> Optional[str]:
        return self.tiers.get(user_id)


class FakePlanStore:
    def __init__(self, recipes: Sequence[Recipe] = ()) -> None:
        self.recipes = {recipe.id: recipe for recipe in recipes}
        self.plans: Dict[str, MealPlan] = {}
        self.writes = 0
        # Number of upcoming get_plan_with_recipes calls that miss or fail.
        self.missed_reads = 0
        self.failed_reads = 0
        self.read_attempts = 0

    def add_plan(self, plan: MealPlan) -> MealPlan:
        self.plans[plan.id] = plan
        return plan

    async def create_plan(
        self, *, user_id: str, start_date: date, days: int, items: Sequence[PlanItemDraft]
    ) -> MealPlan:
        self.writes += 1
        plan = MealPlan(
            id=next_id("plan"),
            user_id=user_id,
            start_date=start_date,
            days=days,
            items=tuple(
                PlanItem(
                    id=next_id("item"),
                    day_index=draft.day_index,
                    meal_type=draft.meal_type,
                    recipe_id=draft.recipe_id,
                    servings=draft.servings,
                )
                for draft in items
            ),
            created_at=datetime.now(timezone.utc),
        )
        self.plans[plan.id] = plan
        return plan

    async def get_plan_with_recipes(self, plan_id: str) -> Optional[MealPlan]:
        self.read_attempts += 1
        if self.failed_reads:
            self.failed_reads -= 1
            raise TransientReadFailure("connection reset")
        if self.missed_reads:
            self.missed_reads -= 1
            return None
        plan = self.plans.get(plan_id)
        if plan is None:
            return None
        items = tuple(
            item if item.recipe is not None else replace(item, recipe=self.recipes.get(item.recipe_id))
            for item in plan.items
        )
        return replace(plan, items=items)

    async def get_plan(self, plan_id: str) -> Optional[MealPlan]:
        plan = self.plans.get(plan_id)
        return replace(plan, items=()) if plan else None

    async def get_latest_plan(self, user_id: str) -> Optional[MealPlan]:
        owned = [plan for plan in self.plans.values() if plan.user_id == user_id]
        if not owned:
            return None
        return await self.get_plan_with_recipes(owned[-1].id)

    async def list_plans(self, user_id: str, limit: int) -> List[MealPlan]:
        owned = [plan for plan in self.plans.values() if plan.user_id == user_id]
        return [replace(plan, items=()) for plan in reversed(owned)][:limit]

    async def delete_plan(self, plan_id: str) -> bool:
        return self.plans.pop(plan_id, None) is not None


class FakeShoppingListStore:
    def __init__(self, plans: FakePlanStore) -> None:
        self._plans = plans
        self.lists: Dict[str, ShoppingListRecord] = {}
        self.create_calls = 0
        self.category_updates: List[tuple] = []

    async def find_by_plan(self, plan_id: str) -> Optional[ShoppingListRecord]:
        return self.lists.get(plan_id)

    async def create_with_items(
        self, plan_id: str, items: Sequence[ShoppingItemDraft]
    ) -> ShoppingListRecord:
        self.create_calls += 1
        # Yield so concurrent builders interleave between their read and this write.
        await asyncio.sleep(0)
        if plan_id in self.lists:
            raise ShoppingListConflict(plan_id)
        record = ShoppingListRecord(
            id=next_id("list"),
            plan_id=plan_id,
            items=tuple(
                ShoppingItem(
                    id=next_id("sli"),
                    ingredient_id=draft.ingredient_id,
                    name=draft.name,
                    quantity=draft.quantity,
                    unit=draft.unit,
                    category=draft.category,
                    checked=False,
                )
                for draft in sorted(items, key=lambda d: d.name)
            ),
            created_at=datetime.now(timezone.utc),
        )
        self.lists[plan_id] = record
        return record

    def _locate_item(self, item_id: str):
        for plan_id, record in self.lists.items():
            for item in record.items:
                if item.id == item_id:
                    return plan_id, item
        return None, None

    async def get_item(self, item_id: str) -> Optional[ShoppingItem]:
        return self._locate_item(item_id)[1]

    async def get_item_owner(self, item_id: str) -> Optional[str]:
        plan_id, _ = self._locate_item(item_id)
        if plan_id is None:
            return None
        return self._plans.plans[plan_id].user_id

    async def get_list_owner(self, list_id: str) -> Optional[str]:
        for plan_id, record in self.lists.items():
            if record.id == list_id:
                return self._plans.plans[plan_id].user_id
        return None

    def _replace_items(self, plan_id: str, items: Sequence[ShoppingItem]) -> None:
        self.lists[plan_id] = replace(self.lists[plan_id], items=tuple(items))

    async def toggle_item_checked(self, item_id: str) -> Optional[bool]:
        plan_id, current = self._locate_item(item_id)
        if current is None:
            return None
        record = self.lists[plan_id]
        self._replace_items(
            plan_id,
            [replace(item, checked=not item.checked) if item.id == item_id else item for item in record.items],
        )
        return not current.checked

    async def set_category_checked(
        self, list_id: str, category: str, checked: bool, *, include_uncategorized: bool
    ) -> int:
        self.category_updates.append((list_id, category, checked, include_uncategorized))
        for plan_id, record in self.lists.items():
            if record.id != list_id:
                continue
            updated = 0
            items = []
            for item in record.items:
                matches = item.category == category or (include_uncategorized and item.category is None)
                if matches:
                    updated += 1
                    item = replace(item, checked=checked)
                items.append(item)
            self._replace_items(plan_id, items)
            return updated
        return 0


class FakeBaselines:
    def __init__(self, baselines: Sequence[PriceBaseline]) -> None:
        self.baselines = list(baselines)

    async def list_baselines(self) -> List[PriceBaseline]:
        return list(self.baselines)


class FakePreferences:
    def __init__(self, saved: Optional[Dict[str, PlanningPreferences]] = None) -> None:
        self.saved: Dict[str, PlanningPreferences] = dict(saved or {})
        self.saves: List[tuple] = []

    async def get_preferences(self, user_id: str) -> Optional[PlanningPreferences]:
        return self.saved.get(user_id)

    async def save_preferences(
        self, user_id: str, preferences: PlanningPreferences
    ) -> PlanningPreferences:
        self.saves.append((user_id, preferences))
        self.saved[user_id] = preferences
        return preferences


class FakePantry:
    def __init__(self, items: Optional[Dict[str, Sequence[PantryItem]]] = None) -> None:
        self.items = {user_id: list(entries) for user_id, entries in (items or {}).items()}

    async def list_pantry(self, user_id: str) -> List[PantryItem]:
        return list(self.items.get(user_id, []))
