from __future__ import annotations

from ..config import Settings, get_settings
from ..models import UserTier
from .domain import Entitlements


def resolve_entitlements(tier: str | None, settings: Settings | None = None) -> Entitlements:
    """Map a subscription tier onto the features it unlocks."""
    settings = settings or get_settings()
    normalized = (tier or UserTier.BASIC).strip().lower()
    premium_tiers = {t.lower() for t in settings.premium_tiers}
    if normalized in premium_tiers:
        return Entitlements(
            tier=normalized,
            max_plan_days=settings.premium_max_plan_days,
            time_preferences=True,
            budget_estimates=True,
        )
    return Entitlements(
        tier=normalized,
        max_plan_days=settings.basic_max_plan_days,
        time_preferences=False,
        budget_estimates=False,
    )
