from __future__ import annotations

import logging
import random
from dataclasses import replace
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from ..config import Settings, get_settings
from ..errors import (
    NoRecipesAvailable,
    NoRecipesMatchPreferences,
    PlanLimitExceeded,
    PlanNotFound,
    PlanValidationFailed,
    Unauthorized,
    UserNotFound,
)
from .capabilities import CatalogReader, PlanStore, PreferencesStore, UserDirectory
from .domain import (
    Entitlements,
    MealPlan,
    PlanItemDraft,
    PlanRequest,
    Recipe,
    RecipeFilter,
    TimePreferences,
)
from .entitlements import resolve_entitlements
from .filtering import (
    filter_recipes_by_dislikes,
    group_recipes_by_meal_type,
    meal_types_for_count,
    parse_dislikes,
)
from .preferences import apply_request, default_preferences
from .selection import SelectionPolicy, build_selection_policy
from .shopping_list import ShoppingAggregationEngine

logger = logging.getLogger(__name__)

DEFAULT_PLAN_LIST_LIMIT = 10


def next_monday(today: date | None = None) -> date:
    """The Monday strictly after `today` (tomorrow when today is Sunday)."""
    today = today or date.today()
    return today + timedelta(days=7 - today.weekday())


def allocate_recipes(
    *,
    days: int,
    start_date: date,
    meal_types: Sequence[str],
    candidates_by_meal_type: Dict[str, List[Recipe]],
    servings: int,
    policy: SelectionPolicy,
) -> List[PlanItemDraft]:
    drafts: List[PlanItemDraft] = []
    for day_index in range(days):
        day = start_date + timedelta(days=day_index)
        for meal_type in meal_types:
            recipe = policy(candidates_by_meal_type[meal_type], day, meal_type)
            drafts.append(
                PlanItemDraft(
                    day_index=day_index,
                    meal_type=meal_type,
                    recipe_id=recipe.id,
                    servings=servings,
                )
            )
    return drafts


def validate_allocation(
    drafts: Sequence[PlanItemDraft],
    *,
    days: int,
    meal_types: Sequence[str],
    recipes_by_id: Dict[str, Recipe],
) -> None:
    expected = days * len(meal_types)
    if len(drafts) != expected:
        raise PlanValidationFailed(f"Expected {expected} plan items, allocated {len(drafts)}")
    slots = {(draft.day_index, draft.meal_type) for draft in drafts}
    if len(slots) != expected:
        raise PlanValidationFailed("Plan contains duplicate day/meal slots")
    for draft in drafts:
        recipe = recipes_by_id.get(draft.recipe_id)
        if recipe is None or draft.meal_type not in recipe.meal_types:
            raise PlanValidationFailed(
                f"Recipe {draft.recipe_id} is not valid for {draft.meal_type} on day {draft.day_index}"
            )


class PlanAllocationEngine:
    def __init__(
        self,
        *,
        catalog: CatalogReader,
        plans: PlanStore,
        users: UserDirectory,
        shopping: ShoppingAggregationEngine | None = None,
        preferences: PreferencesStore | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._plans = plans
        self._users = users
        self._shopping = shopping
        self._preferences = preferences
        self._settings = settings or get_settings()
        self._rng = rng

    async def entitlements_for(self, user_id: str) -> Entitlements:
        tier = await self._users.get_tier(user_id)
        if tier is None:
            raise UserNotFound(user_id)
        return resolve_entitlements(tier, self._settings)

    async def generate(self, request: PlanRequest) -> MealPlan:
        entitlements = await self.entitlements_for(request.user_id)
        if request.days is not None and request.days > entitlements.max_plan_days:
            raise PlanLimitExceeded(request.days, entitlements.max_plan_days, entitlements.tier)

        saved = await self._preferences.get_preferences(request.user_id) if self._preferences else None
        preferences = apply_request(saved or default_preferences(self._settings), request)
        days = preferences.days
        if request.days is None:
            # Saved or default day counts are capped, never rejected.
            days = min(days, entitlements.max_plan_days)
        if days < 1:
            raise ValueError("days must be at least 1")

        meal_types = meal_types_for_count(preferences.meals_per_day)
        start_date = request.start_date or next_monday()
        servings = preferences.household_size

        recipes = await self._catalog.query_recipes(
            RecipeFilter(is_vegetarian=preferences.is_vegetarian, is_dairy_free=preferences.is_dairy_free)
        )
        if not recipes:
            raise NoRecipesAvailable()

        eligible = filter_recipes_by_dislikes(recipes, parse_dislikes(preferences.dislikes))
        if not eligible:
            raise NoRecipesMatchPreferences()

        candidates = group_recipes_by_meal_type(eligible, meal_types)
        policy = build_selection_policy(
            self._time_preferences(request.user_id, preferences.time_preferences, entitlements),
            self._rng,
        )
        drafts = allocate_recipes(
            days=days,
            start_date=start_date,
            meal_types=meal_types,
            candidates_by_meal_type=candidates,
            servings=servings,
            policy=policy,
        )
        recipes_by_id = {recipe.id: recipe for recipe in eligible}
        validate_allocation(drafts, days=days, meal_types=meal_types, recipes_by_id=recipes_by_id)

        plan = await self._plans.create_plan(
            user_id=request.user_id,
            start_date=start_date,
            days=days,
            items=drafts,
        )
        logger.info(
            "Meal plan %s generated user=%s days=%s items=%s",
            plan.id,
            request.user_id,
            days,
            len(drafts),
        )

        if self._preferences is not None and preferences != saved:
            try:
                await self._preferences.save_preferences(request.user_id, preferences)
            except Exception:
                logger.exception("Failed to save planning preferences for user=%s", request.user_id)

        if self._shopping is not None:
            try:
                await self._shopping.build_and_store(plan.id)
            except Exception:
                logger.exception("Failed to create shopping list for plan %s", plan.id)
        return replace(
            plan,
            items=tuple(replace(item, recipe=recipes_by_id.get(item.recipe_id)) for item in plan.items),
        )

    def _time_preferences(
        self, user_id: str, preferences: TimePreferences, entitlements: Entitlements
    ) -> Optional[TimePreferences]:
        if preferences.is_empty:
            return None
        if not entitlements.time_preferences:
            logger.info("Ignoring time preferences for user=%s tier=%s", user_id, entitlements.tier)
            return None
        return preferences

    async def get_plan(self, user_id: str, plan_id: str) -> MealPlan:
        plan = await self._plans.get_plan_with_recipes(plan_id)
        if plan is None:
            raise PlanNotFound(plan_id)
        if plan.user_id != user_id:
            raise Unauthorized()
        return plan

    async def get_latest_plan(self, user_id: str) -> Optional[MealPlan]:
        return await self._plans.get_latest_plan(user_id)

    async def list_plans(self, user_id: str, limit: int = DEFAULT_PLAN_LIST_LIMIT) -> List[MealPlan]:
        return await self._plans.list_plans(user_id, limit)

    async def delete_plan(self, user_id: str, plan_id: str) -> None:
        plan = await self._plans.get_plan(plan_id)
        if plan is None:
            raise PlanNotFound(plan_id)
        if plan.user_id != user_id:
            raise Unauthorized()
        await self._plans.delete_plan(plan_id)
        logger.info("Meal plan %s deleted user=%s", plan_id, user_id)
