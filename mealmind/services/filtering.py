from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from ..errors import NoRecipesForSlot
from .domain import MEAL_TYPES, Recipe

logger = logging.getLogger(__name__)

MEAL_TYPES_BY_COUNT: Dict[int, Tuple[str, ...]] = {
    1: ("dinner",),
    2: ("lunch", "dinner"),
    3: MEAL_TYPES,
}


def meal_types_for_count(meals_per_day: int) -> Tuple[str, ...]:
    """1 meal/day is dinner only, 2 adds lunch, 3 adds breakfast."""
    try:
        return MEAL_TYPES_BY_COUNT[meals_per_day]
    except KeyError:
        raise ValueError(f"meals_per_day must be 1, 2 or 3 (got {meals_per_day})") from None


def parse_dislikes(dislikes: str | None) -> List[str]:
    if not dislikes:
        return []
    return [term.strip().lower() for term in dislikes.split(",") if term.strip()]


def _ingredient_names(recipe: Recipe) -> List[str]:
    names = [(line.name or "").lower() for line in recipe.ingredients]
    return [name for name in names if name]


def recipe_has_disliked_ingredient(recipe: Recipe, dislike_terms: Iterable[str]) -> bool:
    names = _ingredient_names(recipe)
    if not names:
        return False
    return any(term in name for term in dislike_terms for name in names)


def filter_recipes_by_dislikes(recipes: Sequence[Recipe], dislike_terms: Sequence[str]) -> List[Recipe]:
    if not dislike_terms:
        return list(recipes)
    kept = [recipe for recipe in recipes if not recipe_has_disliked_ingredient(recipe, dislike_terms)]
    logger.debug(
        "Dislike filter kept %s of %s recipes terms=%s", len(kept), len(recipes), list(dislike_terms)
    )
    return kept


def group_recipes_by_meal_type(
    recipes: Sequence[Recipe], meal_types: Sequence[str]
) -> Dict[str, List[Recipe]]:
    """Bucket eligible recipes per slot, failing on the first slot with none."""
    grouped: Dict[str, List[Recipe]] = {}
    for meal_type in meal_types:
        candidates = [recipe for recipe in recipes if meal_type in recipe.meal_types]
        if not candidates:
            raise NoRecipesForSlot(meal_type)
        grouped[meal_type] = candidates
    return grouped
