from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import UnknownUnitError
from .domain import Entitlements, PriceBaseline
from .units import NORMALIZED_UNITS, convert_to_normalized_unit, round_half_up

logger = logging.getLogger(__name__)

ESTIMATE_DISCLAIMER = "Estimates use ingredient category baselines; totals may vary."
MEDIUM_CONFIDENCE_MISSING_RATIO = 0.25


@dataclass(frozen=True)
class BudgetItem:
    category: str
    quantity: float
    unit: str


@dataclass(frozen=True)
class BudgetTotals:
    cheap: float
    standard: float
    premium: float


@dataclass(frozen=True)
class StorePrice:
    store: str
    total: float


@dataclass(frozen=True)
class BudgetEstimate:
    locked: bool
    totals: Optional[BudgetTotals] = None
    missing_item_count: Optional[int] = None
    confidence: Optional[str] = None
    store_prices: Tuple[StorePrice, ...] = ()

    @property
    def cheapest_store(self) -> Optional[StorePrice]:
        return self.store_prices[0] if self.store_prices else None


LOCKED_ESTIMATE = BudgetEstimate(locked=True)


def _build_baseline_lookup(
    baselines: Iterable[PriceBaseline],
) -> Dict[str, Dict[str, List[PriceBaseline]]]:
    lookup: Dict[str, Dict[str, List[PriceBaseline]]] = {}
    for baseline in baselines:
        if baseline.unit not in NORMALIZED_UNITS:
            continue
        by_unit = lookup.setdefault(baseline.ingredient_category, {})
        by_unit.setdefault(baseline.unit, []).append(baseline)
    return lookup


def confidence_label(missing_item_count: int, total_items: int) -> str:
    if total_items == 0:
        return "low"
    if missing_item_count == 0:
        return "high"
    if missing_item_count / total_items <= MEDIUM_CONFIDENCE_MISSING_RATIO:
        return "medium"
    return "low"


def rank_store_totals(totals: Dict[str, float]) -> Tuple[StorePrice, ...]:
    """Store totals rounded to cents, cheapest first (ties by store name)."""
    ranked = [StorePrice(store=store, total=round_half_up(total, 2)) for store, total in totals.items()]
    return tuple(sorted(ranked, key=lambda price: (price.total, price.store)))


def estimate_budget(
    items: Sequence[BudgetItem],
    baselines: Iterable[PriceBaseline],
) -> BudgetEstimate:
    """Price items against category baselines.

    Cheap, standard and premium totals use the lowest, median and highest
    per-unit price among baselines that share the item's normalized unit.
    Items that cannot be priced count toward ``missing_item_count``. Each
    store also gets the total of the items it has a baseline for.
    """
    lookup = _build_baseline_lookup(baselines)
    cheap = standard = premium = 0.0
    missing = 0
    by_store: Dict[str, float] = {}
    for item in items:
        try:
            normalized = convert_to_normalized_unit(item.quantity, item.unit)
        except UnknownUnitError:
            missing += 1
            continue
        matches = lookup.get(item.category, {}).get(normalized.unit)
        if not matches:
            missing += 1
            continue
        prices = [float(baseline.price_per_unit) for baseline in matches]
        cheap += normalized.quantity * min(prices)
        standard += normalized.quantity * statistics.median(prices)
        premium += normalized.quantity * max(prices)
        for baseline in matches:
            by_store[baseline.store] = by_store.get(baseline.store, 0.0) + (
                normalized.quantity * float(baseline.price_per_unit)
            )
    if missing:
        logger.info("Budget estimate missing prices for %s of %s items", missing, len(items))
    return BudgetEstimate(
        locked=False,
        totals=BudgetTotals(
            cheap=round_half_up(cheap, 2),
            standard=round_half_up(standard, 2),
            premium=round_half_up(premium, 2),
        ),
        missing_item_count=missing,
        confidence=confidence_label(missing, len(items)),
        store_prices=rank_store_totals(by_store),
    )


def estimate_for_entitlements(
    entitlements: Entitlements,
    items: Sequence[BudgetItem],
    baselines: Iterable[PriceBaseline],
) -> BudgetEstimate:
    if not entitlements.budget_estimates:
        return LOCKED_ESTIMATE
    return estimate_budget(items, baselines)
