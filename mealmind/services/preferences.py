from __future__ import annotations

import logging
from dataclasses import replace

from ..config import Settings, get_settings
from .capabilities import PreferencesStore
from .domain import PlanningPreferences, PlanRequest

logger = logging.getLogger(__name__)


def default_preferences(settings: Settings) -> PlanningPreferences:
    return PlanningPreferences(
        household_size=settings.default_household_size,
        meals_per_day=settings.default_meals_per_day,
        days=settings.default_plan_days,
    )


def _pick(value, fallback):
    return fallback if value is None else value


def apply_request(base: PlanningPreferences, request: PlanRequest) -> PlanningPreferences:
    """Overlay every field the request sets explicitly onto `base`."""
    times = request.time_preferences
    return replace(
        base,
        household_size=_pick(request.household_size, base.household_size),
        meals_per_day=_pick(request.meals_per_day, base.meals_per_day),
        days=_pick(request.days, base.days),
        is_vegetarian=_pick(request.is_vegetarian, base.is_vegetarian),
        is_dairy_free=_pick(request.is_dairy_free, base.is_dairy_free),
        dislikes=_pick(request.dislikes, base.dislikes),
        weeknight_max_minutes=_pick(times.weeknight_max_minutes, base.weeknight_max_minutes),
        weekly_time_budget_minutes=_pick(
            times.weekly_time_budget_minutes, base.weekly_time_budget_minutes
        ),
    )


class PreferencesService:
    def __init__(self, *, store: PreferencesStore, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    async def get(self, user_id: str) -> PlanningPreferences:
        saved = await self._store.get_preferences(user_id)
        return saved or default_preferences(self._settings)

    async def update(self, user_id: str, preferences: PlanningPreferences) -> PlanningPreferences:
        stored = await self._store.save_preferences(user_id, preferences)
        logger.info(
            "Planning preferences saved user=%s days=%s meals_per_day=%s household=%s",
            user_id,
            stored.days,
            stored.meals_per_day,
            stored.household_size,
        )
        return stored
