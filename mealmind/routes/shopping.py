from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from ..auth import get_current_principal
from ..dependencies import get_plan_engine, get_shopping_engine
from ..schemas import (
    BudgetEstimateResponse,
    CategoryCheckRequest,
    CategoryCheckResponse,
    ShoppingListBuildResponse,
    ShoppingListResponse,
    ToggleItemResponse,
)
from ..services.planner import PlanAllocationEngine
from ..services.shopping_list import ShoppingAggregationEngine

router = APIRouter(tags=["shopping-list"])

logger = logging.getLogger(__name__)


@router.post(
    "/plans/{plan_id}/shopping-list",
    response_model=ShoppingListBuildResponse,
    status_code=status.HTTP_201_CREATED,
)
async def build_shopping_list(
    plan_id: str,
    principal=Depends(get_current_principal),
    plans: PlanAllocationEngine = Depends(get_plan_engine),
    engine: ShoppingAggregationEngine = Depends(get_shopping_engine),
) -> ShoppingListBuildResponse:
    # Ownership check before building.
    await plans.get_plan(principal.get("sub"), plan_id)
    list_id = await engine.build_and_store(plan_id)
    return ShoppingListBuildResponse(shoppingListId=list_id)


@router.get("/plans/{plan_id}/shopping-list", response_model=ShoppingListResponse)
async def get_shopping_list(
    plan_id: str,
    principal=Depends(get_current_principal),
    engine: ShoppingAggregationEngine = Depends(get_shopping_engine),
) -> ShoppingListResponse:
    record = await engine.get_for_plan(principal.get("sub"), plan_id)
    return ShoppingListResponse.from_domain(record)


@router.get("/plans/{plan_id}/shopping-list/export")
async def export_shopping_list(
    plan_id: str,
    principal=Depends(get_current_principal),
    engine: ShoppingAggregationEngine = Depends(get_shopping_engine),
) -> Response:
    filename, body = await engine.export_csv(principal.get("sub"), plan_id)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/plans/{plan_id}/shopping-list/estimate", response_model=BudgetEstimateResponse)
async def estimate_shopping_list(
    plan_id: str,
    principal=Depends(get_current_principal),
    plans: PlanAllocationEngine = Depends(get_plan_engine),
    engine: ShoppingAggregationEngine = Depends(get_shopping_engine),
) -> BudgetEstimateResponse:
    user_id = principal.get("sub")
    entitlements = await plans.entitlements_for(user_id)
    estimate = await engine.estimate_for_plan(user_id, plan_id, entitlements)
    return BudgetEstimateResponse.from_domain(estimate)


@router.post("/shopping-list/items/{item_id}/toggle", response_model=ToggleItemResponse)
async def toggle_item(
    item_id: str,
    principal=Depends(get_current_principal),
    engine: ShoppingAggregationEngine = Depends(get_shopping_engine),
) -> ToggleItemResponse:
    checked = await engine.toggle_item_checked(principal.get("sub"), item_id)
    return ToggleItemResponse(itemId=item_id, checked=checked)


@router.put("/shopping-list/{list_id}/categories/{category}", response_model=CategoryCheckResponse)
async def set_category_checked(
    list_id: str,
    category: str,
    payload: CategoryCheckRequest,
    principal=Depends(get_current_principal),
    engine: ShoppingAggregationEngine = Depends(get_shopping_engine),
) -> CategoryCheckResponse:
    user_id = principal.get("sub")
    updated = await engine.update_category_checked(user_id, list_id, category, payload.checked)
    logger.info(
        "Category %s on list %s set checked=%s user=%s updated=%s",
        category,
        list_id,
        payload.checked,
        user_id,
        updated,
    )
    return CategoryCheckResponse(
        listId=list_id,
        category=category.strip().lower(),
        checked=payload.checked,
        updated=updated,
    )
