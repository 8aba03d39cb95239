from __future__ import annotations

import random
from datetime import date

import pytest

from mealmind.errors import NoRecipesForSlot
from mealmind.services.domain import TimePreferences
from mealmind.services.filtering import (
    filter_recipes_by_dislikes,
    group_recipes_by_meal_type,
    meal_types_for_count,
    parse_dislikes,
)
from mealmind.services.selection import (
    build_selection_policy,
    order_by_total_time,
    shuffle_recipes,
    shortest_time_policy,
    weeknight_cap_policy,
)

from fakes import make_recipe

WEDNESDAY = date(2026, 10, 21)
SATURDAY = date(2026, 10, 24)

QUICK = make_recipe("quick", minutes=15)
MEDIUM = make_recipe("medium", minutes=35)
SLOW = make_recipe("slow", minutes=80)
UNKNOWN = make_recipe("unknown", minutes=None)


def test_unknown_times_sort_last():
    assert [r.id for r in order_by_total_time([UNKNOWN, SLOW, QUICK, MEDIUM])] == [
        "quick",
        "medium",
        "slow",
        "unknown",
    ]


def test_shuffle_keeps_every_recipe():
    shuffled = shuffle_recipes([QUICK, MEDIUM, SLOW, UNKNOWN], random.Random(5))
    assert sorted(r.id for r in shuffled) == ["medium", "quick", "slow", "unknown"]


def test_weeknight_cap_only_applies_monday_to_friday():
    policy = weeknight_cap_policy(20, shortest_time_policy())
    assert policy([SLOW, QUICK], WEDNESDAY, "dinner").id == "quick"

    slowest_first = lambda candidates, day, meal_type: candidates[-1]  # noqa: E731
    capped = weeknight_cap_policy(40, slowest_first)
    assert capped([QUICK, MEDIUM, SLOW], WEDNESDAY, "dinner").id == "medium"
    assert capped([QUICK, MEDIUM, SLOW], SATURDAY, "dinner").id == "slow"


def test_weeknight_cap_never_accepts_unknown_times():
    policy = weeknight_cap_policy(10, build_selection_policy(None, random.Random(1)))
    assert policy([UNKNOWN, SLOW, MEDIUM], WEDNESDAY, "dinner").id == "medium"


def test_policy_selection():
    candidates = [SLOW, MEDIUM, QUICK]
    budget = build_selection_policy(TimePreferences(weekly_time_budget_minutes=100))
    assert {budget(candidates, WEDNESDAY, "dinner").id for _ in range(5)} == {"quick"}

    rng = random.Random(2)
    plain = build_selection_policy(TimePreferences(), rng)
    picks = {plain(candidates, SATURDAY, "dinner").id for _ in range(50)}
    assert picks <= {"slow", "medium", "quick"}
    assert len(picks) > 1


def test_meal_types_for_count():
    assert meal_types_for_count(1) == ("dinner",)
    assert meal_types_for_count(2) == ("lunch", "dinner")
    assert meal_types_for_count(3) == ("breakfast", "lunch", "dinner")
    with pytest.raises(ValueError):
        meal_types_for_count(4)


def test_dislike_terms_match_ingredient_substrings():
    peanut = make_recipe("satay", ingredients=[("p", "Peanut Butter", 2, "tbsp")])
    plain = make_recipe("rice", ingredients=[("r", "Basmati rice", 100, "g")])
    bare = make_recipe("water")

    terms = parse_dislikes(" Peanut ,, olives ")
    assert terms == ["peanut", "olives"]
    assert [r.id for r in filter_recipes_by_dislikes([peanut, plain, bare], terms)] == ["rice", "water"]
    assert filter_recipes_by_dislikes([peanut], []) == [peanut]


def test_grouping_requires_every_slot():
    lunch = make_recipe("wrap", ("lunch",))
    grouped = group_recipes_by_meal_type([lunch, QUICK], ("lunch", "dinner"))
    assert [r.id for r in grouped["lunch"]] == ["wrap"]
    with pytest.raises(NoRecipesForSlot):
        group_recipes_by_meal_type([lunch], ("lunch", "dinner"))
