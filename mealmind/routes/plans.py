import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..auth import get_current_principal
from ..config import get_settings
from ..dependencies import get_plan_engine
from ..ratelimit import limiter
from ..schemas import MealPlanListResponse, MealPlanResponse, PlanGenerateRequest
from ..services.planner import DEFAULT_PLAN_LIST_LIMIT, PlanAllocationEngine

router = APIRouter(prefix="/plans", tags=["plans"])

logger = logging.getLogger(__name__)


@router.post("", response_model=MealPlanResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_settings().plan_generation_rate_limit)
async def generate_plan(
    request: Request,
    payload: PlanGenerateRequest,
    principal=Depends(get_current_principal),
    engine: PlanAllocationEngine = Depends(get_plan_engine),
) -> MealPlanResponse:
    user_id = principal.get("sub")
    logger.info(
        "Plan generation requested user=%s days=%s meals_per_day=%s",
        user_id,
        payload.days,
        payload.mealsPerDay,
    )
    plan = await engine.generate(payload.to_plan_request(user_id))
    return MealPlanResponse.from_domain(plan)


@router.get("", response_model=MealPlanListResponse)
async def list_plans(
    limit: int = Query(default=DEFAULT_PLAN_LIST_LIMIT, ge=1, le=50),
    principal=Depends(get_current_principal),
    engine: PlanAllocationEngine = Depends(get_plan_engine),
) -> MealPlanListResponse:
    plans = await engine.list_plans(principal.get("sub"), limit)
    return MealPlanListResponse(plans=[MealPlanResponse.from_domain(plan) for plan in plans])


@router.get("/latest", response_model=MealPlanResponse)
async def latest_plan(
    principal=Depends(get_current_principal),
    engine: PlanAllocationEngine = Depends(get_plan_engine),
):
    plan = await engine.get_latest_plan(principal.get("sub"))
    if plan is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return MealPlanResponse.from_domain(plan)


@router.get("/{plan_id}", response_model=MealPlanResponse)
async def get_plan(
    plan_id: str,
    principal=Depends(get_current_principal),
    engine: PlanAllocationEngine = Depends(get_plan_engine),
) -> MealPlanResponse:
    plan = await engine.get_plan(principal.get("sub"), plan_id)
    return MealPlanResponse.from_domain(plan)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: str,
    principal=Depends(get_current_principal),
    engine: PlanAllocationEngine = Depends(get_plan_engine),
) -> Response:
    await engine.delete_plan(principal.get("sub"), plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
