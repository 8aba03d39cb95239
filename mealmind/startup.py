from __future__ import annotations

import logging
from typing import Iterable, Tuple

from .config import Settings

logger = logging.getLogger(__name__)


def _collect_missing(settings: Settings, pairs: Iterable[Tuple[str, str]]) -> list[str]:
    missing: list[str] = []
    for attr, label in pairs:
        value = getattr(settings, attr, None)
        if value in (None, "", [], {}):
            missing.append(label)
    return missing


def validate_settings(settings: Settings) -> None:
    """Fail fast when mandatory config values are missing for non-dev envs."""
    environment = (settings.environment or "dev").lower()

    required_pairs: list[Tuple[str, str]] = [("database_url", "DATABASE_URL")]
    if not settings.auth_disable_verification:
        required_pairs.append(("clerk_issuer", "CLERK_ISSUER"))

    missing = _collect_missing(settings, required_pairs)
    if environment == "dev":
        if missing:
            logger.warning(
                "Running in dev without recommended config; some routes will fail: %s",
                ", ".join(missing),
            )
        return

    if settings.premium_max_plan_days < settings.basic_max_plan_days:
        raise RuntimeError("PREMIUM_MAX_PLAN_DAYS must not be lower than BASIC_MAX_PLAN_DAYS")

    if missing:
        raise RuntimeError(
            f"Missing required configuration for environment '{environment}': {', '.join(sorted(missing))}"
        )
