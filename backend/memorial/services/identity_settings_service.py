"""Identity settings for a contributor's own person record.

A contributor who has claimed a person can see every note mentioning them and
choose how they appear: per note, per author, or as their default.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from memorial.config.database import get_supabase_admin_client
from memorial.identity.visibility import (
    Visibility,
    is_more_private_or_equal,
    normalize_visibility,
    resolve_visibility,
)
from memorial.models.identity import (
    AuthorPreference,
    ClaimedPerson,
    DefaultSource,
    EventSummary,
    IdentitySettingsOverview,
    IdentitySettingsUpdate,
    NoteVisibility,
    SettingsScope,
)
from memorial.services.db_service import DbService
from memorial.services.visibility_service import split_preferences
from memorial.utils.exceptions import DatabaseError, NotFoundError, ValidationError
from memorial.utils.logging import get_logger
from supabase import Client

logger = get_logger(__name__)


class IdentitySettingsService:
    def __init__(self, client: Client | None = None) -> None:
        self.db = client if client is not None else get_supabase_admin_client()
        self.crud = DbService(client=self.db)

    def _execute(self, query, action: str, **context: Any):
        try:
            return query.execute()
        except Exception as exc:  # noqa: BLE001
            logger.error(f"{action} failed", error=str(exc), **context)
            raise DatabaseError(f"Failed to {action}") from exc

    def get_person_id_for_contributor(self, contributor_id: str) -> str | None:
        """Approved claim first, otherwise any claim the contributor holds."""
        res = self._execute(
            self.db.table("person_claims").select("person_id, status").eq("contributor_id", contributor_id),
            "load claims",
            contributor_id=contributor_id,
        )
        claims = list(res.data or [])
        if not claims:
            return None
        approved = next((c for c in claims if c.get("status") == "approved"), None)
        return str((approved or claims[0])["person_id"])

    def _load_preferences(self, person_id: str) -> list[dict[str, Any]]:
        """Preference rows oldest first, so the newest row of a scope is the last one seen."""
        res = self._execute(
            self.db.table("visibility_preferences")
            .select("person_id, contributor_id, visibility, updated_at")
            .eq("person_id", person_id),
            "load visibility preferences",
            person_id=person_id,
        )
        return sorted(res.data or [], key=lambda p: str(p.get("updated_at") or ""))

    def _base_visibility(self, person_id: str, author_id: str | None) -> Visibility:
        """What the person would get on a note by ``author_id`` with no per-note override."""
        person = self.crud.find_by_id("people", person_id, "id, visibility") or {}
        prefs = split_preferences(self._load_preferences(person_id), author_id).get(person_id, {})
        return resolve_visibility(
            Visibility.PENDING,
            person.get("visibility"),
            prefs.get("contributor_preference"),
            prefs.get("global_preference"),
        )

    # ---------- read ----------

    def get_overview(self, contributor_id: str | None) -> IdentitySettingsOverview:
        if not contributor_id:
            return IdentitySettingsOverview()

        person_id = self.get_person_id_for_contributor(contributor_id)
        if not person_id:
            contributor = self.crud.find_by_id("contributors", contributor_id, "id, name") or {}
            return IdentitySettingsOverview(contributor_name=contributor.get("name"))

        person = self.crud.find_by_id("people", person_id, "id, canonical_name, visibility") or {}
        person_visibility = person.get("visibility")
        preferences = self._load_preferences(person_id)
        # Newest global row wins, matching the row the default update writes
        global_rows = [p for p in preferences if not p.get("contributor_id")]
        global_preference = global_rows[-1].get("visibility") if global_rows else None
        author_rows = [p for p in preferences if p.get("contributor_id")]
        author_lookup = self._contributor_lookup([str(p["contributor_id"]) for p in author_rows])
        author_map = {str(p["contributor_id"]): p.get("visibility") for p in author_rows}

        notes = self._note_visibilities(person_id, person_visibility, author_map, global_preference)

        default_visibility = normalize_visibility(global_preference or person_visibility)
        return IdentitySettingsOverview(
            person=ClaimedPerson(id=person_id, name=person.get("canonical_name")),
            default_visibility=default_visibility,
            default_source=DefaultSource.PREFERENCE if global_preference else DefaultSource.PERSON,
            author_preferences=[
                AuthorPreference(
                    contributor_id=str(p["contributor_id"]),
                    visibility=normalize_visibility(p.get("visibility")),
                    name=author_lookup.get(str(p["contributor_id"]), {}).get("name"),
                    relation=author_lookup.get(str(p["contributor_id"]), {}).get("relation"),
                )
                for p in author_rows
            ],
            notes=notes,
        )

    def _contributor_lookup(self, contributor_ids: list[str]) -> dict[str, dict[str, Any]]:
        if not contributor_ids:
            return {}
        res = self._execute(
            self.db.table("contributors").select("id, name, relation").in_("id", contributor_ids),
            "load contributors",
        )
        return {str(row["id"]): dict(row) for row in (res.data or [])}

    def _note_visibilities(
        self,
        person_id: str,
        person_visibility: str | None,
        author_map: dict[str, str | None],
        global_preference: str | None,
    ) -> list[NoteVisibility]:
        refs_res = self._execute(
            self.db.table("event_references")
            .select("id, event_id, visibility, relationship_to_subject, role")
            .eq("person_id", person_id)
            .eq("type", "person"),
            "load references",
            person_id=person_id,
        )
        refs = list(refs_res.data or [])
        event_ids = sorted({str(r["event_id"]) for r in refs if r.get("event_id")})
        events: dict[str, dict[str, Any]] = {}
        if event_ids:
            events_res = self._execute(
                self.db.table("timeline_events")
                .select("id, title, year, year_end, contributor_id")
                .in_("id", event_ids),
                "load notes",
            )
            events = {str(e["id"]): dict(e) for e in (events_res.data or [])}

        notes: list[NoteVisibility] = []
        for ref in refs:
            event = events.get(str(ref.get("event_id")))
            if not event:
                continue
            author_id = event.get("contributor_id")
            contributor_pref = author_map.get(str(author_id)) if author_id else None
            notes.append(
                NoteVisibility(
                    reference_id=str(ref["id"]),
                    visibility_override=normalize_visibility(ref.get("visibility")),
                    base_visibility=resolve_visibility(
                        Visibility.PENDING, person_visibility, contributor_pref, global_preference
                    ),
                    effective_visibility=resolve_visibility(
                        ref.get("visibility"), person_visibility, contributor_pref, global_preference
                    ),
                    relationship_to_subject=ref.get("relationship_to_subject"),
                    role=ref.get("role"),
                    event=EventSummary.model_validate(event),
                )
            )

        notes.sort(key=lambda n: n.event.title)
        notes.sort(key=lambda n: n.event.year or 0, reverse=True)
        return notes

    # ---------- write ----------

    def update(self, contributor_id: str | None, payload: IdentitySettingsUpdate) -> None:
        if not contributor_id:
            raise ValidationError("No contributor linked")

        visibility = normalize_visibility(payload.visibility)
        person_id = self.get_person_id_for_contributor(contributor_id)
        if not person_id:
            raise ValidationError("No identity claim found")

        if payload.scope is SettingsScope.DISPLAY_NAME:
            self._update_display_name(person_id, payload.display_name)
        elif payload.scope is SettingsScope.NOTE:
            self._update_note(person_id, payload.reference_id, visibility)
        elif payload.scope is SettingsScope.AUTHOR:
            self._update_author(person_id, payload.contributor_id, visibility)
        else:
            self._update_default(person_id, visibility)

        logger.info(
            "Identity settings updated",
            contributor_id=contributor_id,
            person_id=person_id,
            scope=payload.scope.value,
            visibility=visibility.value,
        )

    def _update_display_name(self, person_id: str, display_name: str | None) -> None:
        name = (display_name or "").strip()
        if not name:
            raise ValidationError("Display name is required")
        self.crud.update_by_id("people", person_id, {"canonical_name": name})

    def _update_note(self, person_id: str, reference_id: str | None, visibility: Visibility) -> None:
        if not reference_id:
            raise ValidationError("reference_id is required")

        res = self._execute(
            self.db.table("event_references")
            .select("id, event_id")
            .eq("id", reference_id)
            .eq("person_id", person_id)
            .limit(1),
            "load reference",
            reference_id=reference_id,
        )
        if not res.data:
            raise NotFoundError("Reference not found")
        reference = res.data[0]

        if visibility is not Visibility.PENDING:
            event = self.crud.find_by_id("timeline_events", str(reference.get("event_id") or ""), "id, contributor_id")
            author_id = (event or {}).get("contributor_id")
            base = self._base_visibility(person_id, str(author_id) if author_id else None)
            if not is_more_private_or_equal(visibility, base):
                raise ValidationError(
                    "Per-note visibility can only be more private than your default.",
                    details={"visibility": visibility.value, "base_visibility": base.value},
                )

        self._execute(
            self.db.table("event_references").update({"visibility": visibility.value}).eq("id", reference_id),
            "update reference visibility",
            reference_id=reference_id,
        )

    def _update_author(self, person_id: str, author_id: str | None, visibility: Visibility) -> None:
        if not author_id:
            raise ValidationError("contributor_id is required")

        if visibility is Visibility.PENDING:
            self._execute(
                self.db.table("visibility_preferences")
                .delete()
                .eq("person_id", person_id)
                .eq("contributor_id", author_id),
                "clear author preference",
                person_id=person_id,
            )
            return

        self._execute(
            self.db.table("visibility_preferences").upsert(
                {
                    "person_id": person_id,
                    "contributor_id": author_id,
                    "visibility": visibility.value,
                    "updated_at": datetime.utcnow().isoformat(),
                },
                on_conflict="person_id,contributor_id",
            ),
            "update author preference",
            person_id=person_id,
        )

    def _update_default(self, person_id: str, visibility: Visibility) -> None:
        if visibility is Visibility.PENDING:
            raise ValidationError("Default visibility cannot be pending")

        self.crud.update_by_id("people", person_id, {"visibility": visibility.value})

        # NULL contributor_id never conflicts, so the global row is found and updated by id
        now = datetime.utcnow().isoformat()
        res = self._execute(
            self.db.table("visibility_preferences")
            .select("id")
            .eq("person_id", person_id)
            .is_("contributor_id", "null")
            .order("updated_at", desc=True)
            .limit(1),
            "load default preference",
            person_id=person_id,
        )
        existing = (res.data or [None])[0]
        if existing and existing.get("id"):
            self.crud.update_by_id(
                "visibility_preferences", str(existing["id"]), {"visibility": visibility.value, "updated_at": now}
            )
        else:
            self.crud.create(
                "visibility_preferences",
                {
                    "person_id": person_id,
                    "contributor_id": None,
                    "visibility": visibility.value,
                    "created_at": now,
                    "updated_at": now,
                },
            )
