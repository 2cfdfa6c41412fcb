from __future__ import annotations

import pytest

from memorial.identity.visibility import Visibility
from memorial.models.identity import DefaultSource, IdentitySettingsUpdate, SettingsScope
from memorial.services.identity_settings_service import IdentitySettingsService
from memorial.utils.exceptions import DatabaseError, NotFoundError, ValidationError


def note_update(reference_id: str | None, visibility: str | None) -> IdentitySettingsUpdate:
    return IdentitySettingsUpdate(scope=SettingsScope.NOTE, reference_id=reference_id, visibility=visibility)


class TestOverview:
    def test_no_contributor(self, memorial_db):
        overview = IdentitySettingsService(memorial_db).get_overview(None)
        assert overview.person is None
        assert overview.default_visibility is Visibility.PENDING
        assert overview.default_source is DefaultSource.UNKNOWN

    def test_contributor_without_claim(self, memorial_db):
        overview = IdentitySettingsService(memorial_db).get_overview("c-julie")
        assert overview.person is None
        assert overview.contributor_name == "Julie"
        assert overview.notes == []

    def test_claimed_person(self, memorial_db):
        overview = IdentitySettingsService(memorial_db).get_overview("c-sam")

        assert overview.person.model_dump() == {"id": "p-sam", "name": "Sam Miller"}
        assert overview.default_visibility is Visibility.PENDING
        assert overview.default_source is DefaultSource.PERSON
        assert [p.model_dump(mode="json") for p in overview.author_preferences] == [
            {"contributor_id": "c-julie", "visibility": "blurred", "name": "Julie", "relation": "sister"}
        ]

        # newest year first
        assert [n.reference_id for n in overview.notes] == ["r-sam-2", "r-sam"]
        graduation, lake = overview.notes
        assert graduation.visibility_override is Visibility.BLURRED
        assert graduation.base_visibility is Visibility.PENDING
        assert graduation.effective_visibility is Visibility.BLURRED
        assert lake.visibility_override is Visibility.PENDING
        assert lake.base_visibility is Visibility.BLURRED
        assert lake.effective_visibility is Visibility.BLURRED
        assert lake.event.title == "Lake house"

    def test_global_preference_is_the_default_source(self, memorial_db):
        memorial_db.tables["visibility_preferences"].append(
            {"id": "vp-g", "person_id": "p-sam", "contributor_id": None, "visibility": "anonymized"}
        )
        overview = IdentitySettingsService(memorial_db).get_overview("c-sam")
        assert overview.default_visibility is Visibility.ANONYMIZED
        assert overview.default_source is DefaultSource.PREFERENCE
        assert len(overview.author_preferences) == 1

    def test_newest_global_row_is_the_default(self, memorial_db):
        memorial_db.tables["visibility_preferences"] += [
            {"id": "vp-new", "person_id": "p-sam", "contributor_id": None, "visibility": "blurred",
             "updated_at": "2024-05-01T00:00:00"},
            {"id": "vp-old", "person_id": "p-sam", "contributor_id": None, "visibility": "removed",
             "updated_at": "2023-01-01T00:00:00"},
        ]
        svc = IdentitySettingsService(memorial_db)
        assert svc.get_overview("c-sam").default_visibility is Visibility.BLURRED

        svc.update("c-sam", IdentitySettingsUpdate(scope=SettingsScope.DEFAULT, visibility="anonymized"))
        assert svc.get_overview("c-sam").default_visibility is Visibility.ANONYMIZED
        old = next(r for r in memorial_db.rows("visibility_preferences") if r["id"] == "vp-old")
        assert old["visibility"] == "removed"

    def test_storage_failure_raises(self, memorial_db):
        memorial_db.failing_tables.add("person_claims")
        with pytest.raises(DatabaseError):
            IdentitySettingsService(memorial_db).get_overview("c-sam")


class TestUpdate:
    def test_requires_contributor_and_claim(self, memorial_db):
        svc = IdentitySettingsService(memorial_db)
        with pytest.raises(ValidationError):
            svc.update(None, note_update("r-sam", "removed"))
        with pytest.raises(ValidationError):
            svc.update("c-julie", note_update("r-sam", "removed"))

    def test_note_override_may_tighten(self, memorial_db):
        IdentitySettingsService(memorial_db).update("c-sam", note_update("r-sam", "anonymized"))
        ref = next(r for r in memorial_db.rows("event_references") if r["id"] == "r-sam")
        assert ref["visibility"] == "anonymized"

    def test_note_override_may_not_loosen(self, memorial_db):
        # Julie's notes default to blurred for Sam; approving one note would loosen it
        with pytest.raises(ValidationError) as exc_info:
            IdentitySettingsService(memorial_db).update("c-sam", note_update("r-sam", "approved"))
        assert exc_info.value.details["base_visibility"] == "blurred"
        ref = next(r for r in memorial_db.rows("event_references") if r["id"] == "r-sam")
        assert ref["visibility"] == "pending"

    def test_note_override_can_be_cleared(self, memorial_db):
        IdentitySettingsService(memorial_db).update("c-sam", note_update("r-sam-2", "bogus"))
        ref = next(r for r in memorial_db.rows("event_references") if r["id"] == "r-sam-2")
        assert ref["visibility"] == "pending"

    def test_note_must_mention_caller(self, memorial_db):
        svc = IdentitySettingsService(memorial_db)
        with pytest.raises(NotFoundError):
            svc.update("c-sam", note_update("r-rita", "removed"))
        with pytest.raises(ValidationError):
            svc.update("c-sam", note_update(None, "removed"))

    def test_author_preference_upsert_and_clear(self, memorial_db):
        svc = IdentitySettingsService(memorial_db)
        svc.update(
            "c-sam",
            IdentitySettingsUpdate(scope=SettingsScope.AUTHOR, contributor_id="c-amy", visibility="approved"),
        )
        svc.update(
            "c-sam",
            IdentitySettingsUpdate(scope=SettingsScope.AUTHOR, contributor_id="c-amy", visibility="anonymized"),
        )
        amy_rows = [r for r in memorial_db.rows("visibility_preferences") if r["contributor_id"] == "c-amy"]
        assert [r["visibility"] for r in amy_rows] == ["anonymized"]

        svc.update(
            "c-sam",
            IdentitySettingsUpdate(scope=SettingsScope.AUTHOR, contributor_id="c-julie", visibility="pending"),
        )
        assert all(r["contributor_id"] != "c-julie" for r in memorial_db.rows("visibility_preferences"))

    def test_author_scope_requires_contributor(self, memorial_db):
        with pytest.raises(ValidationError):
            IdentitySettingsService(memorial_db).update(
                "c-sam", IdentitySettingsUpdate(scope=SettingsScope.AUTHOR, visibility="approved")
            )

    def test_default_writes_person_and_single_global_row(self, memorial_db):
        svc = IdentitySettingsService(memorial_db)
        svc.update("c-sam", IdentitySettingsUpdate(scope=SettingsScope.DEFAULT, visibility="approved"))
        svc.update("c-sam", IdentitySettingsUpdate(scope=SettingsScope.DEFAULT, visibility="blurred"))

        person = next(p for p in memorial_db.rows("people") if p["id"] == "p-sam")
        assert person["visibility"] == "blurred"
        global_rows = [
            r for r in memorial_db.rows("visibility_preferences")
            if r["person_id"] == "p-sam" and r["contributor_id"] is None
        ]
        assert [r["visibility"] for r in global_rows] == ["blurred"]

    def test_default_cannot_be_pending(self, memorial_db):
        with pytest.raises(ValidationError):
            IdentitySettingsService(memorial_db).update(
                "c-sam", IdentitySettingsUpdate(scope=SettingsScope.DEFAULT, visibility=None)
            )

    def test_display_name_renames_claimed_person(self, memorial_db):
        IdentitySettingsService(memorial_db).update(
            "c-sam", IdentitySettingsUpdate(scope=SettingsScope.DISPLAY_NAME, display_name="  Samuel Miller ")
        )
        person = next(p for p in memorial_db.rows("people") if p["id"] == "p-sam")
        assert person["canonical_name"] == "Samuel Miller"

    def test_display_name_rules(self, memorial_db):
        svc = IdentitySettingsService(memorial_db)
        with pytest.raises(ValidationError):
            svc.update("c-sam", IdentitySettingsUpdate(scope=SettingsScope.DISPLAY_NAME, display_name="   "))
        with pytest.raises(ValidationError):
            svc.update("c-julie", IdentitySettingsUpdate(scope=SettingsScope.DISPLAY_NAME, display_name="Julie S"))
        person = next(p for p in memorial_db.rows("people") if p["id"] == "p-sam")
        assert person["canonical_name"] == "Sam Miller"
