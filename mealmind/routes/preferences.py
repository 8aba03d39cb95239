from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..auth import get_current_principal
from ..dependencies import get_preferences_service
from ..schemas import PreferencesPayload
from ..services.preferences import PreferencesService

router = APIRouter(prefix="/preferences", tags=["preferences"])

logger = logging.getLogger(__name__)


@router.get("", response_model=PreferencesPayload)
async def get_preferences(
    principal=Depends(get_current_principal),
    service: PreferencesService = Depends(get_preferences_service),
) -> PreferencesPayload:
    preferences = await service.get(principal.get("sub"))
    return PreferencesPayload.from_domain(preferences)


@router.put("", response_model=PreferencesPayload)
async def update_preferences(
    payload: PreferencesPayload,
    principal=Depends(get_current_principal),
    service: PreferencesService = Depends(get_preferences_service),
) -> PreferencesPayload:
    preferences = await service.update(principal.get("sub"), payload.to_domain())
    return PreferencesPayload.from_domain(preferences)
