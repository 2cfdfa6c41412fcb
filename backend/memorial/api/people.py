"""Person lookup API; every person goes through payload shaping."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from memorial.config.database import get_admin_db_client
from memorial.identity.visibility import PersonPayload
from memorial.services.visibility_service import VisibilityService

router = APIRouter(prefix="/api", tags=["People"])

DB_CLIENT_DEP = Depends(get_admin_db_client)


class PersonResponse(BaseModel):
    person: PersonPayload | None = None


@router.get("/people/{person_id}", response_model=PersonResponse)
async def get_person(
    person_id: str,
    db_client=DB_CLIENT_DEP,
):
    """Resolve a person outside any note; author-scoped preferences never apply here."""
    svc = VisibilityService(db_client)
    return PersonResponse(person=svc.get_person_payload(person_id))
