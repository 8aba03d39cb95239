from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_current_principal
from ..dependencies import get_plan_engine
from ..schemas import EntitlementsResponse, MeResponse
from ..services.planner import PlanAllocationEngine

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def me(
    principal=Depends(get_current_principal),
    engine: PlanAllocationEngine = Depends(get_plan_engine),
) -> MeResponse:
    entitlements = await engine.entitlements_for(principal.get("sub"))
    return MeResponse(
        sub=principal.get("sub"),
        email=principal.get("email"),
        entitlements=EntitlementsResponse.from_domain(entitlements),
    )
