from .redaction import (
    RELATIONSHIP_DISPLAY,
    AuthorPayload,
    MediaPresentation,
    RedactedReference,
    masked_display_name,
    redact_references,
)
from .visibility import (
    PRIVACY_RANK,
    ContributorScope,
    GlobalScope,
    PersonPayload,
    PreferenceScope,
    Visibility,
    VisibilitySignals,
    can_reveal_identity,
    is_more_private_or_equal,
    normalize_visibility,
    resolve_signals,
    resolve_visibility,
    scope_for_contributor,
    shape_person_payload,
)

__all__ = [
    "PRIVACY_RANK",
    "RELATIONSHIP_DISPLAY",
    "AuthorPayload",
    "ContributorScope",
    "GlobalScope",
    "MediaPresentation",
    "PersonPayload",
    "PreferenceScope",
    "RedactedReference",
    "Visibility",
    "VisibilitySignals",
    "can_reveal_identity",
    "is_more_private_or_equal",
    "masked_display_name",
    "normalize_visibility",
    "redact_references",
    "resolve_signals",
    "resolve_visibility",
    "scope_for_contributor",
    "shape_person_payload",
]
