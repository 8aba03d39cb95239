from __future__ import annotations

import asyncio
import csv
import io
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import Settings, get_settings
from ..errors import (
    PlanNotFound,
    ShoppingListConflict,
    ShoppingListItemNotFound,
    ShoppingListNotFound,
    TransientReadFailure,
    Unauthorized,
)
from .budget import LOCKED_ESTIMATE, BudgetEstimate, BudgetItem, estimate_for_entitlements
from .capabilities import PantryReader, PlanStore, PriceBaselineReader, ShoppingListStore
from .domain import (
    UNCATEGORIZED,
    Entitlements,
    MealPlan,
    PantryItem,
    ShoppingItemDraft,
    ShoppingListRecord,
)
from .units import convert_to_normalized_unit, normalized_unit_for, round_half_up

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("Item", "Quantity", "Unit", "Category", "Checked")


@dataclass(frozen=True)
class IngredientQuantity:
    ingredient_id: str
    quantity: float
    unit: str


@dataclass(frozen=True)
class AggregatedIngredient:
    ingredient_id: str
    quantity: float
    unit: str


@dataclass(frozen=True)
class IngredientInfo:
    name: str
    category: Optional[str]


def _unit_class(unit: str) -> str:
    canonical = normalized_unit_for(unit)
    if canonical is not None:
        return canonical
    return f"raw:{unit}"


def aggregate_ingredients(lines: Iterable[IngredientQuantity]) -> List[AggregatedIngredient]:
    """Merge quantities per ingredient.

    Entries for one ingredient are bucketed by unit class (g, ml, pcs, or the
    raw unit string when it is not in the conversion table). A bucket whose
    entries all share one unit string keeps that unit; a mixed bucket is
    expressed in the canonical unit. Buckets of different classes stay as
    separate lines.
    """
    buckets: Dict[str, Dict[str, List[Tuple[str, float]]]] = defaultdict(lambda: defaultdict(list))
    for line in lines:
        buckets[line.ingredient_id][_unit_class(line.unit)].append((line.unit, float(line.quantity)))

    aggregated: List[AggregatedIngredient] = []
    for ingredient_id, by_class in buckets.items():
        if len(by_class) > 1:
            logger.info(
                "Ingredient %s kept as separate lines for incompatible units %s",
                ingredient_id,
                sorted(by_class),
            )
        for unit_class, entries in by_class.items():
            units = {unit for unit, _ in entries}
            if len(units) == 1:
                unit = next(iter(units))
                total = math.fsum(quantity for _, quantity in entries)
            else:
                unit = unit_class
                total = math.fsum(
                    convert_to_normalized_unit(quantity, entry_unit).quantity
                    for entry_unit, quantity in entries
                )
            aggregated.append(AggregatedIngredient(ingredient_id, total, unit))
    aggregated.sort(key=lambda item: (item.ingredient_id, item.unit))
    return aggregated


def expand_plan_ingredients(plan: MealPlan) -> Tuple[List[IngredientQuantity], Dict[str, IngredientInfo]]:
    """Scale every recipe ingredient in the plan by servings / default servings."""
    lines: List[IngredientQuantity] = []
    info: Dict[str, IngredientInfo] = {}
    for item in plan.items:
        recipe = item.recipe
        if recipe is None:
            raise ValueError(f"Plan item {item.id} has no recipe loaded")
        scale = item.servings / recipe.servings_default
        for ingredient in recipe.ingredients:
            lines.append(
                IngredientQuantity(
                    ingredient_id=ingredient.ingredient_id,
                    quantity=ingredient.quantity * scale,
                    unit=ingredient.unit,
                )
            )
            info.setdefault(
                ingredient.ingredient_id,
                IngredientInfo(name=ingredient.name, category=ingredient.category),
            )
    return lines, info


def build_item_drafts(plan: MealPlan) -> List[ShoppingItemDraft]:
    lines, info = expand_plan_ingredients(plan)
    drafts: List[ShoppingItemDraft] = []
    for entry in aggregate_ingredients(lines):
        details = info[entry.ingredient_id]
        drafts.append(
            ShoppingItemDraft(
                ingredient_id=entry.ingredient_id,
                name=details.name,
                quantity=round_half_up(entry.quantity, 1),
                unit=entry.unit,
                category=details.category,
            )
        )
    return drafts


def _pantry_quantity_in(entry: PantryItem, unit: str) -> Optional[float]:
    """Pantry stock expressed in `unit`, or None when the units are not comparable."""
    if entry.unit.strip().lower() == unit.strip().lower():
        return float(entry.quantity)
    canonical = normalized_unit_for(unit)
    if canonical is None or canonical != normalized_unit_for(entry.unit):
        return None
    stock = convert_to_normalized_unit(entry.quantity, entry.unit).quantity
    return stock / convert_to_normalized_unit(1, unit).quantity


def subtract_pantry(record: ShoppingListRecord, pantry: Iterable[PantryItem]) -> ShoppingListRecord:
    """Net list lines against what the user already has.

    Remaining quantities are clamped at zero and lines that reach zero are
    dropped. Lines whose unit cannot be compared with the pantry entry are
    left as they are.
    """
    on_hand = {entry.ingredient_id: entry for entry in pantry}
    items = []
    for item in record.items:
        entry = on_hand.get(item.ingredient_id) if item.ingredient_id else None
        stock = _pantry_quantity_in(entry, item.unit) if entry else None
        if stock is None:
            items.append(item)
            continue
        remaining = round_half_up(max(0.0, item.quantity - stock), 1)
        if remaining > 0:
            items.append(replace(item, quantity=remaining))
    return replace(record, items=tuple(items))


def render_csv(record: ShoppingListRecord) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for item in record.items:
        quantity = round_half_up(item.quantity, 2) if math.isfinite(item.quantity) else "N/A"
        writer.writerow(
            [item.name, quantity, item.unit, item.resolved_category, "yes" if item.checked else "no"]
        )
    return buffer.getvalue()


def csv_filename(plan: MealPlan) -> str:
    return f"shopping-list-{plan.start_date.isoformat()}-{plan.days}d.csv"


class ShoppingAggregationEngine:
    def __init__(
        self,
        *,
        plans: PlanStore,
        shopping_lists: ShoppingListStore,
        baselines: PriceBaselineReader | None = None,
        pantry: PantryReader | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._plans = plans
        self._lists = shopping_lists
        self._baselines = baselines
        self._pantry = pantry
        self._settings = settings or get_settings()

    async def build_and_store(self, plan_id: str) -> str:
        existing = await self._lists.find_by_plan(plan_id)
        if existing:
            return existing.id

        plan = await self._load_plan_with_retry(plan_id)
        drafts = build_item_drafts(plan)
        try:
            created = await self._lists.create_with_items(plan_id, drafts)
        except ShoppingListConflict:
            winner = await self._lists.find_by_plan(plan_id)
            if winner is None:
                raise
            logger.info("Shopping list for plan %s created concurrently; reusing %s", plan_id, winner.id)
            return winner.id
        logger.info("Shopping list %s created for plan %s items=%s", created.id, plan_id, len(drafts))
        return created.id

    async def _load_plan_with_retry(self, plan_id: str) -> MealPlan:
        attempts = self._settings.plan_read_max_attempts
        backoff = self._settings.plan_read_backoff_seconds
        last_error: TransientReadFailure | None = None
        for attempt in range(1, attempts + 1):
            try:
                plan = await self._plans.get_plan_with_recipes(plan_id)
            except TransientReadFailure as exc:
                last_error = exc
                logger.warning("Attempt %s to fetch plan %s failed: %s", attempt, plan_id, exc)
                plan = None
            if plan is not None:
                return plan
            if attempt < attempts:
                await asyncio.sleep(backoff * attempt)
        raise PlanNotFound(plan_id) from last_error

    async def _owned_plan(self, user_id: str, plan_id: str) -> MealPlan:
        plan = await self._plans.get_plan(plan_id)
        if plan is None:
            raise PlanNotFound(plan_id)
        if plan.user_id != user_id:
            raise Unauthorized()
        return plan

    async def _net_of_pantry(self, user_id: str, record: ShoppingListRecord) -> ShoppingListRecord:
        if self._pantry is None:
            return record
        pantry = await self._pantry.list_pantry(user_id)
        if not pantry:
            return record
        return subtract_pantry(record, pantry)

    async def get_for_plan(self, user_id: str, plan_id: str) -> ShoppingListRecord:
        await self._owned_plan(user_id, plan_id)
        record = await self._lists.find_by_plan(plan_id)
        if record is None:
            raise ShoppingListNotFound(plan_id)
        return await self._net_of_pantry(user_id, record)

    async def toggle_item_checked(self, user_id: str, item_id: str) -> bool:
        owner = await self._lists.get_item_owner(item_id)
        if owner is None:
            raise ShoppingListItemNotFound(item_id)
        if owner != user_id:
            raise Unauthorized()
        checked = await self._lists.toggle_item_checked(item_id)
        if checked is None:
            raise ShoppingListItemNotFound(item_id)
        return checked

    async def update_category_checked(
        self, user_id: str, list_id: str, category: str, checked: bool
    ) -> int:
        owner = await self._lists.get_list_owner(list_id)
        if owner is None:
            raise ShoppingListNotFound(list_id)
        if owner != user_id:
            raise Unauthorized()
        normalized = (category or UNCATEGORIZED).strip().lower()
        return await self._lists.set_category_checked(
            list_id,
            normalized,
            checked,
            include_uncategorized=normalized == UNCATEGORIZED,
        )

    async def export_csv(self, user_id: str, plan_id: str) -> Tuple[str, str]:
        plan = await self._owned_plan(user_id, plan_id)
        record = await self._lists.find_by_plan(plan_id)
        if record is None:
            raise ShoppingListNotFound(plan_id)
        return csv_filename(plan), render_csv(await self._net_of_pantry(user_id, record))

    async def estimate_for_plan(
        self, user_id: str, plan_id: str, entitlements: Entitlements
    ) -> BudgetEstimate:
        record = await self.get_for_plan(user_id, plan_id)
        if not entitlements.budget_estimates:
            return LOCKED_ESTIMATE
        baselines = await self._baselines.list_baselines() if self._baselines else []
        items = [
            BudgetItem(category=item.resolved_category, quantity=item.quantity, unit=item.unit)
            for item in record.items
        ]
        return estimate_for_entitlements(entitlements, items, baselines)

