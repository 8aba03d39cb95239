"""Recipe selection policies used by the plan allocator.

A policy is any callable ``(candidates, day, meal_type) -> Recipe``. The
allocator never branches on preferences itself; it asks
``build_selection_policy`` for the policy matching the request.
"""
from __future__ import annotations

import logging
import random
from datetime import date
from typing import Callable, List, Optional, Sequence

from .domain import Recipe, TimePreferences

logger = logging.getLogger(__name__)

SelectionPolicy = Callable[[Sequence[Recipe], date, str], Recipe]

# Monday..Friday
WEEKNIGHT_DAYS = frozenset(range(5))


def is_weeknight(day: date) -> bool:
    return day.weekday() in WEEKNIGHT_DAYS


def shuffle_recipes(recipes: Sequence[Recipe], rng: random.Random | None = None) -> List[Recipe]:
    """Fisher-Yates shuffle of a copy."""
    rng = rng or random
    result = list(recipes)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def _time_sort_key(recipe: Recipe) -> tuple:
    minutes = recipe.effective_total_minutes
    return (minutes is None, minutes if minutes is not None else 0, recipe.id)


def order_by_total_time(recipes: Sequence[Recipe]) -> List[Recipe]:
    return sorted(recipes, key=_time_sort_key)


def shortest_recipe(recipes: Sequence[Recipe]) -> Recipe:
    return min(recipes, key=_time_sort_key)


def random_policy(rng: random.Random | None = None) -> SelectionPolicy:
    def _select(candidates: Sequence[Recipe], day: date, meal_type: str) -> Recipe:
        return shuffle_recipes(candidates, rng)[0]

    return _select


def shortest_time_policy() -> SelectionPolicy:
    """Prefer the quickest recipe; repeats across days are expected."""

    def _select(candidates: Sequence[Recipe], day: date, meal_type: str) -> Recipe:
        return order_by_total_time(candidates)[0]

    return _select


def weeknight_cap_policy(max_minutes: int, base: SelectionPolicy) -> SelectionPolicy:
    def _select(candidates: Sequence[Recipe], day: date, meal_type: str) -> Recipe:
        if not is_weeknight(day):
            return base(candidates, day, meal_type)
        within_cap = [
            recipe
            for recipe in candidates
            if recipe.effective_total_minutes is not None
            and recipe.effective_total_minutes <= max_minutes
        ]
        if within_cap:
            return base(within_cap, day, meal_type)
        fallback = shortest_recipe(candidates)
        logger.info(
            "No %s recipe within %s minutes on %s; using shortest recipe %s",
            meal_type,
            max_minutes,
            day.isoformat(),
            fallback.id,
        )
        return fallback

    return _select


def build_selection_policy(
    preferences: Optional[TimePreferences],
    rng: random.Random | None = None,
) -> SelectionPolicy:
    if preferences is None or preferences.is_empty:
        return random_policy(rng)
    if preferences.weekly_time_budget_minutes is not None:
        policy = shortest_time_policy()
    else:
        policy = random_policy(rng)
    if preferences.weeknight_max_minutes is not None:
        policy = weeknight_cap_policy(preferences.weeknight_max_minutes, policy)
    return policy
