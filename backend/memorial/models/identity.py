from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from memorial.identity.visibility import Visibility


class SettingsScope(str, Enum):
    """What an identity settings update writes to."""

    NOTE = "note"
    AUTHOR = "author"
    DEFAULT = "default"
    DISPLAY_NAME = "display_name"


class DefaultSource(str, Enum):
    PREFERENCE = "preference"
    PERSON = "person"
    UNKNOWN = "unknown"


class IdentitySettingsUpdate(BaseModel):
    scope: SettingsScope
    visibility: str | None = Field(None, description="Raw visibility; normalized server-side")
    reference_id: str | None = None
    contributor_id: str | None = Field(None, description="Author the preference applies to")
    display_name: str | None = Field(None, description="New name for the caller's person record")


class EventSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    year: int | None = None
    year_end: int | None = None
    contributor_id: str | None = None


class NoteVisibility(BaseModel):
    reference_id: str
    visibility_override: Visibility
    effective_visibility: Visibility
    base_visibility: Visibility
    relationship_to_subject: str | None = None
    role: str | None = None
    event: EventSummary


class AuthorPreference(BaseModel):
    contributor_id: str
    visibility: Visibility
    name: str | None = None
    relation: str | None = None


class ClaimedPerson(BaseModel):
    """The caller's own person record; they may always see their own name."""

    id: str
    name: str | None = None


class IdentitySettingsOverview(BaseModel):
    person: ClaimedPerson | None = None
    default_visibility: Visibility = Visibility.PENDING
    default_source: DefaultSource = DefaultSource.UNKNOWN
    contributor_name: str | None = None
    author_preferences: list[AuthorPreference] = Field(default_factory=list)
    notes: list[NoteVisibility] = Field(default_factory=list)
