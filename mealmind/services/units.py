from __future__ import annotations

import math
from typing import Any, Dict, NamedTuple

from ..errors import UnknownUnitError

GRAMS = "g"
MILLILITERS = "ml"
PIECES = "pcs"
NORMALIZED_UNITS = (GRAMS, MILLILITERS, PIECES)

UNIT_DEFINITIONS: Dict[str, Dict[str, Any]] = {
    "g": {"unit_type": "weight", "unit_label": GRAMS, "multiplier": 1},
    "kg": {"unit_type": "weight", "unit_label": GRAMS, "multiplier": 1000},
    "oz": {"unit_type": "weight", "unit_label": GRAMS, "multiplier": 28.35},
    "lb": {"unit_type": "weight", "unit_label": GRAMS, "multiplier": 453.592},
    "ml": {"unit_type": "volume", "unit_label": MILLILITERS, "multiplier": 1},
    "l": {"unit_type": "volume", "unit_label": MILLILITERS, "multiplier": 1000},
    "tsp": {"unit_type": "volume", "unit_label": MILLILITERS, "multiplier": 5},
    "tbsp": {"unit_type": "volume", "unit_label": MILLILITERS, "multiplier": 15},
    "cup": {"unit_type": "volume", "unit_label": MILLILITERS, "multiplier": 240},
    "fl oz": {"unit_type": "volume", "unit_label": MILLILITERS, "multiplier": 29.5735},
    "pcs": {"unit_type": "count", "unit_label": PIECES, "multiplier": 1},
    "pieces": {"unit_type": "count", "unit_label": PIECES, "multiplier": 1},
    "count": {"unit_type": "count", "unit_label": PIECES, "multiplier": 1},
    "whole": {"unit_type": "count", "unit_label": PIECES, "multiplier": 1},
}


class NormalizedQuantity(NamedTuple):
    quantity: float
    unit: str


def _lookup_key(unit: str) -> str:
    return (unit or "").strip().lower()


def normalized_unit_for(unit: str) -> str | None:
    """Return the canonical unit for `unit`, or None when it is not in the table."""
    definition = UNIT_DEFINITIONS.get(_lookup_key(unit))
    if definition is None:
        return None
    return definition["unit_label"]


def convert_to_normalized_unit(quantity: float, unit: str) -> NormalizedQuantity:
    definition = UNIT_DEFINITIONS.get(_lookup_key(unit))
    if definition is None:
        raise UnknownUnitError(unit, list(UNIT_DEFINITIONS))
    return NormalizedQuantity(quantity * definition["multiplier"], definition["unit_label"])


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _trim_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_quantity(quantity: float, unit: str) -> str:
    """Render a normalized quantity for display, e.g. "500g", "1.5kg", "2 pcs"."""
    rounded = round_half_up(quantity, 1)

    if unit == PIECES:
        return f"{int(round_half_up(quantity))} pcs"

    if unit == GRAMS and quantity >= 1000:
        return f"{rounded / 1000:.1f}kg"

    if unit == MILLILITERS and quantity >= 1000:
        return f"{rounded / 1000:.1f}L"

    return f"{_trim_number(rounded)}{unit}"
