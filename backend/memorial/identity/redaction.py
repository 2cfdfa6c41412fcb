"""Redact note references before they are sent to a client."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel

from memorial.identity.visibility import (
    PersonPayload,
    Visibility,
    can_reveal_identity,
    normalize_visibility,
    resolve_visibility,
    shape_person_payload,
)

RELATIONSHIP_DISPLAY: dict[str, str] = {
    "parent": "a parent",
    "child": "a child",
    "sibling": "a sibling",
    "cousin": "a cousin",
    "aunt_uncle": "an aunt or uncle",
    "niece_nephew": "a niece or nephew",
    "grandparent": "a grandparent",
    "grandchild": "a grandchild",
    "in_law": "an in-law",
    "spouse": "a spouse",
    "friend": "a friend",
    "neighbor": "a neighbor",
    "coworker": "a coworker",
    "classmate": "a classmate",
    "acquaintance": "an acquaintance",
    "other": "someone",
    "unknown": "someone",
}

FALLBACK_NAME = "Someone"
FALLBACK_LABEL = "someone"


class MediaPresentation(str, Enum):
    NORMAL = "normal"
    BLURRED = "blurred"
    HIDDEN = "hidden"


class AuthorPayload(BaseModel):
    """Extra fields for the note's author; capabilities stay off until the person grants them."""

    author_label: str
    render_label: str
    identity_state: Visibility
    media_presentation: MediaPresentation
    canApprove: bool = False
    canAnonymize: bool = False
    canRemove: bool = False
    canInvite: bool = False
    canEditDescriptor: bool = False


class RedactedReference(BaseModel):
    id: str
    type: str
    url: str | None = None
    display_name: str | None = None
    role: str | None = None
    note: str | None = None
    visibility: Visibility
    relationship_to_subject: str | None = None
    person_display_name: str | None = None
    identity_state: Visibility
    media_presentation: MediaPresentation
    render_label: str
    person: PersonPayload | None = None
    author_payload: AuthorPayload | None = None


def masked_display_name(name: str, visibility: Visibility, relationship: str | None) -> str:
    """Label shown in place of a name.

    approved shows the name, blurred shows initials, anything else falls back
    to the relationship ("a cousin") or "someone".
    """
    if visibility is Visibility.APPROVED:
        return name

    if visibility is Visibility.BLURRED:
        parts = [part for part in name.split(" ") if part]
        if len(parts) >= 2:
            return f"{parts[0][0]}.{parts[-1][0]}."
        return f"{name[0]}." if name else FALLBACK_LABEL

    if relationship and relationship in RELATIONSHIP_DISPLAY:
        return RELATIONSHIP_DISPLAY[relationship]
    return FALLBACK_LABEL


def media_presentation_for(visibility: Visibility) -> MediaPresentation:
    if visibility is Visibility.REMOVED:
        return MediaPresentation.HIDDEN
    if visibility is Visibility.BLURRED:
        return MediaPresentation.BLURRED
    return MediaPresentation.NORMAL


def _redact_link(ref: dict[str, Any], include_author_payload: bool) -> RedactedReference | None:
    visibility = normalize_visibility(ref.get("visibility"))
    if visibility is Visibility.REMOVED:
        return None

    label = ref.get("display_name") or ""
    author_payload = None
    if include_author_payload:
        author_payload = AuthorPayload(
            author_label=label,
            render_label=label,
            identity_state=visibility,
            media_presentation=MediaPresentation.NORMAL,
        )
    return RedactedReference(
        id=str(ref["id"]),
        type="link",
        url=ref.get("url"),
        display_name=ref.get("display_name"),
        role=ref.get("role"),
        note=ref.get("note"),
        visibility=visibility,
        identity_state=visibility,
        media_presentation=MediaPresentation.NORMAL,
        render_label=label,
        author_payload=author_payload,
    )


def _redact_person(ref: dict[str, Any], include_author_payload: bool) -> RedactedReference | None:
    person = ref.get("person") or {}
    contributor = ref.get("contributor") or {}
    preference = ref.get("visibility_preference") or {}

    effective = resolve_visibility(
        ref.get("visibility"),
        person.get("visibility"),
        preference.get("contributor_preference"),
        preference.get("global_preference"),
    )
    if effective is Visibility.REMOVED:
        return None

    relationship = ref.get("relationship_to_subject")
    media = media_presentation_for(effective)
    claim_exists = bool(ref.get("claim_exists"))

    shaped = None
    if person.get("id"):
        shaped = shape_person_payload(
            claim_exists=claim_exists,
            person_id=str(person["id"]),
            canonical_name=person.get("canonical_name"),
            resolved_visibility=effective,
        )

    # Names (or initials) only reach the label through the claim gate
    if shaped is not None and can_reveal_identity(claim_exists, effective):
        render_label = masked_display_name(person.get("canonical_name") or FALLBACK_NAME, effective, relationship)
    else:
        render_label = masked_display_name(FALLBACK_NAME, Visibility.ANONYMIZED, relationship)
    name_source = person.get("canonical_name") or contributor.get("name") or FALLBACK_NAME

    author_payload = None
    if include_author_payload:
        author_payload = AuthorPayload(
            author_label=name_source,
            render_label=render_label,
            identity_state=effective,
            media_presentation=media,
        )

    return RedactedReference(
        id=str(ref["id"]),
        type="person",
        role=ref.get("role"),
        note=ref.get("note"),
        visibility=effective,
        relationship_to_subject=relationship,
        person_display_name=render_label,
        identity_state=effective,
        media_presentation=media,
        render_label=render_label,
        person=shaped,
        author_payload=author_payload,
    )


def redact_references(
    references: list[dict[str, Any]] | None,
    *,
    include_author_payload: bool = False,
) -> list[RedactedReference]:
    """Resolve and mask every reference row; removed ones are dropped.

    Rows are ``event_references`` records joined with ``person``,
    ``contributor``, ``visibility_preference`` (``contributor_preference`` /
    ``global_preference``) and ``claim_exists``.
    """
    redacted: list[RedactedReference] = []
    for ref in references or []:
        if ref.get("type") == "link":
            item = _redact_link(ref, include_author_payload)
        else:
            item = _redact_person(ref, include_author_payload)
        if item is not None:
            redacted.append(item)
    return redacted
