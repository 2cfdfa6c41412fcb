"""Identity settings API for the signed-in contributor."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from memorial.config.database import get_admin_db_client
from memorial.models.identity import IdentitySettingsOverview, IdentitySettingsUpdate
from memorial.models.user import UserContext
from memorial.services.auth_service import get_user_context
from memorial.services.identity_settings_service import IdentitySettingsService

router = APIRouter(prefix="/api/settings", tags=["Identity settings"])

DB_CLIENT_DEP = Depends(get_admin_db_client)
USER_CONTEXT_DEP = Depends(get_user_context)


@router.get("/identity", response_model=IdentitySettingsOverview)
async def get_identity_settings(
    user: UserContext = USER_CONTEXT_DEP,
    db_client=DB_CLIENT_DEP,
):
    svc = IdentitySettingsService(db_client)
    return svc.get_overview(user.contributor_id)


@router.post("/identity", response_model=dict[str, Any])
async def update_identity_settings(
    payload: IdentitySettingsUpdate,
    user: UserContext = USER_CONTEXT_DEP,
    db_client=DB_CLIENT_DEP,
):
    svc = IdentitySettingsService(db_client)
    svc.update(user.contributor_id, payload)
    return {"success": True}
