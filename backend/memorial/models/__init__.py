from .identity import (
    AuthorPreference,
    ClaimedPerson,
    DefaultSource,
    EventSummary,
    IdentitySettingsOverview,
    IdentitySettingsUpdate,
    NoteVisibility,
    SettingsScope,
)
from .user import UserContext

__all__ = [
    "AuthorPreference",
    "ClaimedPerson",
    "DefaultSource",
    "EventSummary",
    "IdentitySettingsOverview",
    "IdentitySettingsUpdate",
    "NoteVisibility",
    "SettingsScope",
    "UserContext",
]
