from __future__ import annotations

import asyncio
from datetime import date
from unittest import IsolatedAsyncioTestCase

from mealmind.config import Settings
from mealmind.errors import (
    PlanNotFound,
    ShoppingListItemNotFound,
    ShoppingListNotFound,
    Unauthorized,
)
from mealmind.services.domain import Entitlements, MealPlan, PantryItem, PlanItem, PriceBaseline
from mealmind.services.shopping_list import ShoppingAggregationEngine

from fakes import FakeBaselines, FakePantry, FakePlanStore, FakeShoppingListStore, make_recipe

PREMIUM = Entitlements(tier="premium", max_plan_days=7, time_preferences=True, budget_estimates=True)
BASIC = Entitlements(tier="basic", max_plan_days=3, time_preferences=False, budget_estimates=False)

CURRY = make_recipe(
    "curry",
    servings=2,
    ingredients=[
        ("chickpea", "Chickpeas", 400, "g", "pantry"),
        ("onion", "Onion", 1, "pcs", "vegetables"),
        ("stock", "Vegetable stock", 0.5, "l", None),
    ],
)
SOUP = make_recipe(
    "soup",
    servings=4,
    ingredients=[
        ("onion", "Onion", 200, "g", "vegetables"),
        ("stock", "Vegetable stock", 250, "ml", None),
    ],
)


class ShoppingAggregationEngineTest(IsolatedAsyncioTestCase):
    def setUp(self):
        self.plans = FakePlanStore([CURRY, SOUP])
        self.lists = FakeShoppingListStore(self.plans)
        self.plans.add_plan(
            MealPlan(
                id="plan-1",
                user_id="owner",
                start_date=date(2026, 10, 19),
                days=2,
                items=(
                    PlanItem(id="i1", day_index=0, meal_type="dinner", recipe_id="curry", servings=2),
                    PlanItem(id="i2", day_index=1, meal_type="dinner", recipe_id="soup", servings=2),
                ),
            )
        )
        self.engine = ShoppingAggregationEngine(
            plans=self.plans,
            shopping_lists=self.lists,
            baselines=FakeBaselines(
                [
                    PriceBaseline("pantry", "Aldi", "g", 0.004),
                    PriceBaseline("vegetables", "Aldi", "g", 0.002),
                    PriceBaseline("vegetables", "Aldi", "pcs", 0.3),
                ]
            ),
            settings=Settings(_env_file=None, plan_read_backoff_seconds=0.0),
        )

    async def test_build_aggregates_plan_ingredients(self):
        list_id = await self.engine.build_and_store("plan-1")

        record = self.lists.lists["plan-1"]
        self.assertEqual(record.id, list_id)
        lines = {(item.ingredient_id, item.unit): item for item in record.items}
        self.assertEqual(lines[("chickpea", "g")].quantity, 400)
        self.assertEqual(lines[("onion", "g")].quantity, 100)
        self.assertEqual(lines[("onion", "pcs")].quantity, 1)
        # 0.5 l + 125 ml share the volume class.
        self.assertEqual(lines[("stock", "ml")].quantity, 625)
        self.assertIsNone(lines[("stock", "ml")].category)
        self.assertEqual(len(record.items), 4)

    async def test_build_is_idempotent(self):
        first = await self.engine.build_and_store("plan-1")
        second = await self.engine.build_and_store("plan-1")

        self.assertEqual(first, second)
        self.assertEqual(self.lists.create_calls, 1)

    async def test_concurrent_builds_persist_one_list(self):
        results = await asyncio.gather(
            self.engine.build_and_store("plan-1"),
            self.engine.build_and_store("plan-1"),
        )

        self.assertEqual(len(self.lists.lists), 1)
        self.assertEqual(self.lists.create_calls, 2)
        self.assertEqual(results[0], results[1])
        self.assertEqual(results[0], self.lists.lists["plan-1"].id)

    async def test_plan_read_is_retried(self):
        self.plans.missed_reads = 1
        self.plans.failed_reads = 1

        list_id = await self.engine.build_and_store("plan-1")

        self.assertEqual(self.plans.read_attempts, 3)
        self.assertEqual(self.lists.lists["plan-1"].id, list_id)

    async def test_missing_plan_fails_after_bounded_attempts(self):
        with self.assertRaises(PlanNotFound):
            await self.engine.build_and_store("no-such-plan")
        self.assertEqual(self.plans.read_attempts, 3)
        self.assertEqual(self.lists.create_calls, 0)

    async def test_get_for_plan_checks_owner(self):
        with self.assertRaises(ShoppingListNotFound):
            await self.engine.get_for_plan("owner", "plan-1")

        await self.engine.build_and_store("plan-1")
        record = await self.engine.get_for_plan("owner", "plan-1")
        self.assertEqual(record.plan_id, "plan-1")

        with self.assertRaises(Unauthorized):
            await self.engine.get_for_plan("intruder", "plan-1")
        with self.assertRaises(PlanNotFound):
            await self.engine.get_for_plan("owner", "missing")

    async def test_toggle_item_flips_checked_state(self):
        await self.engine.build_and_store("plan-1")
        item = self.lists.lists["plan-1"].items[0]

        self.assertTrue(await self.engine.toggle_item_checked("owner", item.id))
        self.assertTrue((await self.lists.get_item(item.id)).checked)
        self.assertFalse(await self.engine.toggle_item_checked("owner", item.id))

        with self.assertRaises(Unauthorized):
            await self.engine.toggle_item_checked("intruder", item.id)
        with self.assertRaises(ShoppingListItemNotFound):
            await self.engine.toggle_item_checked("owner", "missing")

    async def test_other_category_includes_uncategorized_items(self):
        await self.engine.build_and_store("plan-1")
        record = self.lists.lists["plan-1"]

        updated = await self.engine.update_category_checked("owner", record.id, " Other ", True)

        self.assertEqual(updated, 1)
        self.assertEqual(self.lists.category_updates, [(record.id, "other", True, True)])
        stock = next(item for item in self.lists.lists["plan-1"].items if item.ingredient_id == "stock")
        self.assertTrue(stock.checked)

        updated = await self.engine.update_category_checked("owner", record.id, "Vegetables", True)
        self.assertEqual(updated, 2)
        self.assertEqual(self.lists.category_updates[-1], (record.id, "vegetables", True, False))

        with self.assertRaises(Unauthorized):
            await self.engine.update_category_checked("intruder", record.id, "other", False)

    async def test_export_csv(self):
        await self.engine.build_and_store("plan-1")

        filename, body = await self.engine.export_csv("owner", "plan-1")

        self.assertEqual(filename, "shopping-list-2026-10-19-2d.csv")
        rows = body.splitlines()
        self.assertEqual(rows[0], "Item,Quantity,Unit,Category,Checked")
        self.assertIn("Chickpeas,400.0,g,pantry,no", rows)
        self.assertIn("Vegetable stock,625.0,ml,other,no", rows)

    async def test_estimate_is_locked_for_basic_callers(self):
        await self.engine.build_and_store("plan-1")

        locked = await self.engine.estimate_for_plan("owner", "plan-1", BASIC)
        self.assertTrue(locked.locked)
        self.assertIsNone(locked.totals)

        estimate = await self.engine.estimate_for_plan("owner", "plan-1", PREMIUM)
        self.assertFalse(estimate.locked)
        # 400 g chickpeas, 100 g onion, 1 onion; stock has no baseline.
        self.assertAlmostEqual(estimate.totals.standard, 1.6 + 0.2 + 0.3)
        self.assertEqual(estimate.missing_item_count, 1)
        self.assertEqual(estimate.confidence, "medium")

    async def test_concurrent_toggles_are_not_lost(self):
        await self.engine.build_and_store("plan-1")
        item = self.lists.lists["plan-1"].items[0]

        results = await asyncio.gather(
            self.engine.toggle_item_checked("owner", item.id),
            self.engine.toggle_item_checked("owner", item.id),
        )

        self.assertEqual(sorted(results), [False, True])
        self.assertFalse((await self.lists.get_item(item.id)).checked)

    async def test_pantry_stock_is_subtracted_on_read(self):
        engine = ShoppingAggregationEngine(
            plans=self.plans,
            shopping_lists=self.lists,
            pantry=FakePantry(
                {
                    "owner": [
                        PantryItem("chickpea", 150, "g"),
                        PantryItem("onion", 0.2, "kg"),
                        PantryItem("stock", 0.5, "l"),
                    ],
                    "someone-else": [PantryItem("chickpea", 1000, "g")],
                }
            ),
            settings=Settings(_env_file=None, plan_read_backoff_seconds=0.0),
        )
        await engine.build_and_store("plan-1")

        record = await engine.get_for_plan("owner", "plan-1")

        lines = {(item.ingredient_id, item.unit): item.quantity for item in record.items}
        # The 100 g onion line is covered and dropped; the pcs line is not comparable.
        self.assertEqual(lines, {("chickpea", "g"): 250, ("onion", "pcs"): 1, ("stock", "ml"): 125})
        stored = {(item.ingredient_id, item.unit): item.quantity for item in self.lists.lists["plan-1"].items}
        self.assertEqual(stored[("chickpea", "g")], 400)

        _, body = await engine.export_csv("owner", "plan-1")
        self.assertIn("Chickpeas,250.0,g,pantry,no", body.splitlines())

    async def test_estimate_ranks_store_totals(self):
        engine = ShoppingAggregationEngine(
            plans=self.plans,
            shopping_lists=self.lists,
            baselines=FakeBaselines(
                [
                    PriceBaseline("pantry", "Aldi", "g", 0.004),
                    PriceBaseline("pantry", "Lidl", "g", 0.005),
                    PriceBaseline("vegetables", "Aldi", "g", 0.002),
                    PriceBaseline("vegetables", "Aldi", "pcs", 0.3),
                ]
            ),
            settings=Settings(_env_file=None, plan_read_backoff_seconds=0.0),
        )
        await engine.build_and_store("plan-1")

        estimate = await engine.estimate_for_plan("owner", "plan-1", PREMIUM)

        self.assertEqual([price.store for price in estimate.store_prices], ["Lidl", "Aldi"])
        self.assertAlmostEqual(estimate.store_prices[0].total, 2.0)
        self.assertAlmostEqual(estimate.store_prices[1].total, 2.1)
        self.assertEqual(estimate.cheapest_store.store, "Lidl")
