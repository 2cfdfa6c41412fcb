"""Fetches the visibility signals for people and feeds them to the resolver.

Signal fetches fail closed. A missing claim is treated as no claim. When the
note's author, the preferences or the person record cannot be read, every
layer of the affected references collapses to ``pending``: a restrictive layer
that could not be read must never let a looser one through.
"""

from __future__ import annotations

from typing import Any

from memorial.config.database import get_supabase_admin_client
from memorial.identity.redaction import RedactedReference, redact_references
from memorial.identity.visibility import (
    ContributorScope,
    GlobalScope,
    PersonPayload,
    VisibilitySignals,
    resolve_signals,
    scope_for_contributor,
    shape_person_payload,
)
from memorial.services.db_service import DbService
from memorial.utils.exceptions import DatabaseError
from memorial.utils.logging import get_logger
from supabase import Client

logger = get_logger(__name__)

REFERENCE_COLUMNS = (
    "id, event_id, type, url, display_name, role, note, visibility, "
    "relationship_to_subject, person_id, contributor_id"
)


def split_preferences(
    rows: list[dict[str, Any]], author_id: str | None
) -> dict[str, dict[str, str | None]]:
    """Group preference rows per person into ``contributor_preference`` / ``global_preference``.

    Rows scoped to a contributor other than ``author_id`` are ignored.
    """
    author_scope = scope_for_contributor(author_id) if author_id else None
    grouped: dict[str, dict[str, str | None]] = {}
    for row in rows:
        person_id = str(row.get("person_id") or "")
        if not person_id:
            continue
        entry = grouped.setdefault(person_id, {"contributor_preference": None, "global_preference": None})
        scope = scope_for_contributor(row.get("contributor_id"))
        if isinstance(scope, GlobalScope):
            entry["global_preference"] = row.get("visibility")
        elif isinstance(scope, ContributorScope) and scope == author_scope:
            entry["contributor_preference"] = row.get("visibility")
    return grouped


def _collapse_layers(row: dict[str, Any]) -> None:
    """Clear every visibility layer of a reference row so it resolves to pending."""
    row["visibility"] = None
    row["contributor"] = None
    row["visibility_preference"] = None
    if row.get("person"):
        row["person"] = {**row["person"], "visibility": None}


class VisibilityService:
    """Read side: resolve visibility for note references and person lookups."""

    def __init__(self, client: Client | None = None) -> None:
        self.db = client if client is not None else get_supabase_admin_client()
        self.crud = DbService(client=self.db)

    # ---------- signal fetches ----------

    def get_event_author(self, event_id: str) -> str | None:
        """Contributor who wrote the note; ``None`` when the note has no author.

        Raises ``DatabaseError`` when the note cannot be read.
        """
        row = self.crud.find_by_id("timeline_events", event_id, "id, contributor_id")
        if not row or not row.get("contributor_id"):
            return None
        return str(row["contributor_id"])

    def get_people(self, person_ids: list[str]) -> dict[str, dict[str, Any]]:
        if not person_ids:
            return {}
        try:
            res = (
                self.db.table("people")
                .select("id, canonical_name, visibility")
                .in_("id", person_ids)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("people fetch failed", person_count=len(person_ids), error=str(exc))
            return {}
        return {str(row["id"]): dict(row) for row in (res.data or [])}

    def get_preferences(
        self, person_ids: list[str], author_id: str | None
    ) -> dict[str, dict[str, str | None]]:
        """Per-person author and global preferences. Raises ``DatabaseError`` when unreadable."""
        if not person_ids:
            return {}
        try:
            res = (
                self.db.table("visibility_preferences")
                .select("person_id, contributor_id, visibility")
                .in_("person_id", person_ids)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("visibility preference fetch failed", person_count=len(person_ids), error=str(exc))
            raise DatabaseError("Failed to fetch visibility preferences") from exc
        return split_preferences(list(res.data or []), author_id)

    def get_claimed_person_ids(self, person_ids: list[str]) -> set[str]:
        if not person_ids:
            return set()
        try:
            res = (
                self.db.table("person_claims")
                .select("person_id")
                .in_("person_id", person_ids)
                .eq("status", "approved")
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("claim fetch failed", person_count=len(person_ids), error=str(exc))
            return set()
        return {str(row["person_id"]) for row in (res.data or [])}

    def claim_exists(self, person_id: str) -> bool:
        return person_id in self.get_claimed_person_ids([person_id])

    def get_contributor_names(self, contributor_ids: list[str]) -> dict[str, str | None]:
        if not contributor_ids:
            return {}
        try:
            res = self.db.table("contributors").select("id, name").in_("id", contributor_ids).execute()
        except Exception as exc:  # noqa: BLE001
            logger.error("contributor fetch failed", error=str(exc))
            return {}
        return {str(row["id"]): row.get("name") for row in (res.data or [])}

    # ---------- resolution ----------

    def list_event_references(
        self, event_id: str, *, viewer_contributor_id: str | None = None
    ) -> list[RedactedReference]:
        """All references on a note, resolved and redacted; removed ones are omitted.

        When the viewer wrote the note, each reference also carries the author payload.
        """
        try:
            res = self.db.table("event_references").select(REFERENCE_COLUMNS).eq("event_id", event_id).execute()
        except Exception as exc:  # noqa: BLE001
            logger.error("reference fetch failed", event_id=event_id, error=str(exc))
            raise DatabaseError("Failed to fetch references") from exc

        rows = [dict(row) for row in (res.data or [])]
        person_ids = sorted({str(r["person_id"]) for r in rows if r.get("person_id")})
        legacy_ids = sorted({str(r["contributor_id"]) for r in rows if r.get("contributor_id")})

        layers_readable = True
        try:
            author_id = self.get_event_author(event_id)
            preferences = self.get_preferences(person_ids, author_id)
        except DatabaseError:
            author_id, preferences = None, {}
            layers_readable = False

        people = self.get_people(person_ids)
        claimed = self.get_claimed_person_ids(person_ids)
        legacy_names = self.get_contributor_names(legacy_ids)

        for row in rows:
            person_id = str(row["person_id"]) if row.get("person_id") else None
            row["person"] = people.get(person_id) if person_id else None
            row["visibility_preference"] = preferences.get(person_id) if person_id else None
            row["claim_exists"] = bool(person_id and person_id in claimed)
            legacy_id = row.get("contributor_id")
            row["contributor"] = {"name": legacy_names.get(str(legacy_id))} if legacy_id else None
            if person_id and (row["person"] is None or not layers_readable):
                _collapse_layers(row)

        is_author = layers_readable and author_id is not None and viewer_contributor_id == author_id
        references = redact_references(rows, include_author_payload=is_author)
        logger.info(
            "References resolved",
            event_id=event_id,
            total=len(rows),
            returned=len(references),
            has_author=author_id is not None,
            layers_readable=layers_readable,
            author_view=is_author,
        )
        return references

    def signals_for_person(self, person_id: str) -> tuple[dict[str, Any] | None, VisibilitySignals]:
        """Signals for a person outside any note: no per-note or per-author layer."""
        person = self.get_people([person_id]).get(person_id)
        try:
            preference = self.get_preferences([person_id], None).get(person_id) or {}
        except DatabaseError:
            return person, VisibilitySignals()
        signals = VisibilitySignals(
            reference=None,
            contributor=None,
            global_=preference.get("global_preference"),
            person=person.get("visibility") if person else None,
        )
        return person, signals

    def get_person_payload(self, person_id: str) -> PersonPayload | None:
        """Shaped person outside any note; ``None`` hides the person."""
        person, signals = self.signals_for_person(person_id)
        if person is None:
            return None
        resolved = resolve_signals(signals)
        payload = shape_person_payload(
            claim_exists=self.claim_exists(person_id),
            person_id=person_id,
            canonical_name=person.get("canonical_name"),
            resolved_visibility=resolved,
        )
        logger.debug("Person payload shaped", person_id=person_id, visibility=resolved.value, hidden=payload is None)
        return payload
