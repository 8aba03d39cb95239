"""FastAPI dependencies that wire the engines to the SQL-backed stores."""
from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import get_settings
from .db import get_sessionmaker
from .services.planner import PlanAllocationEngine
from .services.preferences import PreferencesService
from .services.shopping_list import ShoppingAggregationEngine
from .stores import (
    SqlCatalogReader,
    SqlPantryReader,
    SqlPlanStore,
    SqlPreferencesStore,
    SqlPriceBaselineReader,
    SqlShoppingListStore,
    SqlUserDirectory,
)


def _session_factory() -> async_sessionmaker[AsyncSession]:
    try:
        return get_sessionmaker()
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database not configured")


def get_shopping_engine() -> ShoppingAggregationEngine:
    session_factory = _session_factory()
    return ShoppingAggregationEngine(
        plans=SqlPlanStore(session_factory),
        shopping_lists=SqlShoppingListStore(session_factory),
        baselines=SqlPriceBaselineReader(session_factory),
        pantry=SqlPantryReader(session_factory),
        settings=get_settings(),
    )


def get_plan_engine() -> PlanAllocationEngine:
    session_factory = _session_factory()
    return PlanAllocationEngine(
        catalog=SqlCatalogReader(session_factory),
        plans=SqlPlanStore(session_factory),
        users=SqlUserDirectory(session_factory),
        shopping=get_shopping_engine(),
        preferences=SqlPreferencesStore(session_factory),
        settings=get_settings(),
    )


def get_preferences_service() -> PreferencesService:
    return PreferencesService(store=SqlPreferencesStore(_session_factory()), settings=get_settings())
