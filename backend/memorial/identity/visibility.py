"""Visibility resolution for people mentioned in notes.

Every endpoint that exposes a person reference resolves its visibility here.

Precedence (highest to lowest):
  1. Per-note override (``event_references.visibility``)
  2. Per-author preference (``visibility_preferences`` row for the note's contributor)
  3. Global default (``visibility_preferences`` row with ``contributor_id IS NULL``)
  4. The person's base visibility (``people.visibility``)

``removed`` on the person, the per-author or the global layer wins over
everything, including the per-note override. ``pending`` means "no decision at
this level" and defers to the next layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from pydantic import BaseModel


class Visibility(str, Enum):
    """How much of a person's identity may be exposed.

    - approved: full name may be shown
    - blurred: partially obscured (initials)
    - anonymized: fully substituted (relationship label)
    - pending: no decision at this level
    - removed: never shown
    """

    APPROVED = "approved"
    BLURRED = "blurred"
    ANONYMIZED = "anonymized"
    PENDING = "pending"
    REMOVED = "removed"

    @property
    def rank(self) -> int:
        return PRIVACY_RANK[self]


# Higher rank = more private
PRIVACY_RANK: dict[Visibility, int] = {
    Visibility.APPROVED: 0,
    Visibility.BLURRED: 1,
    Visibility.ANONYMIZED: 1,
    Visibility.PENDING: 1,
    Visibility.REMOVED: 2,
}

_BY_VALUE: dict[str, Visibility] = {member.value: member for member in Visibility}

RawVisibility = Union[Visibility, str, None]


def normalize_visibility(value: RawVisibility) -> Visibility:
    """Map a stored value onto ``Visibility``.

    Missing, empty and unrecognized values all become ``pending``. Matching is
    exact: no case folding, no whitespace trimming.
    """
    if isinstance(value, Visibility):
        return value
    if not value or not isinstance(value, str):
        return Visibility.PENDING
    return _BY_VALUE.get(value, Visibility.PENDING)


def is_more_private_or_equal(candidate: RawVisibility, base: RawVisibility) -> bool:
    """True when ``candidate`` is at least as private as ``base``."""
    return normalize_visibility(candidate).rank >= normalize_visibility(base).rank


@dataclass(frozen=True)
class GlobalScope:
    """Preference applying to every contributor (stored as ``contributor_id IS NULL``)."""

    contributor_id: None = None


@dataclass(frozen=True)
class ContributorScope:
    """Preference applying to notes written by one contributor."""

    contributor_id: str


PreferenceScope = Union[GlobalScope, ContributorScope]


def scope_for_contributor(contributor_id: str | None) -> PreferenceScope:
    """Build the scope a ``visibility_preferences`` row belongs to."""
    if contributor_id:
        return ContributorScope(str(contributor_id))
    return GlobalScope()


@dataclass(frozen=True)
class VisibilitySignals:
    """The four raw layers for one person in one note, as fetched from storage."""

    reference: RawVisibility = None
    contributor: RawVisibility = None
    global_: RawVisibility = None
    person: RawVisibility = None


def _is_decided(value: Visibility) -> bool:
    return value is not Visibility.PENDING


def removed_dominates(person: Visibility, contributor: Visibility, global_: Visibility) -> bool:
    """The per-note layer is deliberately left out: a note cannot un-remove a person."""
    return Visibility.REMOVED in (person, contributor, global_)


def resolve_visibility(
    reference_visibility: RawVisibility,
    person_visibility: RawVisibility,
    contributor_preference: RawVisibility,
    global_preference: RawVisibility,
) -> Visibility:
    """Resolve the effective visibility for a person mentioned in a note.

    Args:
        reference_visibility: Per-note override
        person_visibility: The person's base visibility
        contributor_preference: Preference scoped to the note's author
        global_preference: Preference scoped to every author

    Returns:
        One of the five ``Visibility`` members; never raises.
    """
    reference = normalize_visibility(reference_visibility)
    person = normalize_visibility(person_visibility)
    contributor = normalize_visibility(contributor_preference)
    global_ = normalize_visibility(global_preference)

    if removed_dominates(person, contributor, global_):
        return Visibility.REMOVED

    chain: tuple[tuple[Visibility, Callable[[Visibility], bool]], ...] = (
        (reference, _is_decided),
        (contributor, _is_decided),
        (global_, _is_decided),
    )
    for value, applies in chain:
        if applies(value):
            return value
    return person


def resolve_signals(signals: VisibilitySignals) -> Visibility:
    return resolve_visibility(signals.reference, signals.person, signals.contributor, signals.global_)


def can_reveal_identity(claim_exists: bool, resolved_visibility: RawVisibility) -> bool:
    """Fail closed: no claim, ``removed`` and ``pending`` all hide the identity."""
    if not claim_exists:
        return False
    resolved = normalize_visibility(resolved_visibility)
    return resolved not in (Visibility.REMOVED, Visibility.PENDING)


class PersonPayload(BaseModel):
    """The only person shape allowed in API responses."""

    id: str
    name: str | None = None
    visibility: Visibility


def shape_person_payload(
    *,
    claim_exists: bool,
    person_id: str,
    canonical_name: str | None,
    resolved_visibility: RawVisibility,
) -> PersonPayload | None:
    """Shape a person for an API response.

    Returns ``None`` when there is no claim or the person is removed; callers
    must then omit the reference entirely. The canonical name is included only
    for ``approved``.
    """
    if not claim_exists:
        return None

    resolved = normalize_visibility(resolved_visibility)
    if resolved is Visibility.REMOVED:
        return None

    safe_name = canonical_name if resolved is Visibility.APPROVED else None
    return PersonPayload(id=str(person_id), name=safe_name, visibility=resolved)
