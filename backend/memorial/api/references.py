"""Note references API (redacted before serialization)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from memorial.config.database import get_admin_db_client
from memorial.identity.redaction import RedactedReference
from memorial.models.user import UserContext
from memorial.services.auth_service import get_optional_user_context
from memorial.services.visibility_service import VisibilityService

router = APIRouter(prefix="/api", tags=["References"])

DB_CLIENT_DEP = Depends(get_admin_db_client)
OPTIONAL_USER_DEP = Depends(get_optional_user_context)


class ReferencesResponse(BaseModel):
    references: list[RedactedReference]


@router.get("/references", response_model=ReferencesResponse)
async def list_references(
    event_id: str = Query(..., min_length=1),
    user: UserContext | None = OPTIONAL_USER_DEP,
    db_client=DB_CLIENT_DEP,
):
    """References on a note; the note's author also gets the author payload."""
    svc = VisibilityService(db_client)
    viewer = user.contributor_id if user else None
    return ReferencesResponse(references=svc.list_event_references(event_id, viewer_contributor_id=viewer))
