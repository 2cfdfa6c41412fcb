import os
import sys
import uuid
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

# Ensure backend/ is on sys.path for absolute imports like `from memorial...`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Minimal env so settings never reach for a real project
os.environ.setdefault("SUPABASE_URL", "http://localhost")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key")


class FakeQuery:
    """Enough of the PostgREST builder chain for the services under test."""

    def __init__(self, store: "FakeSupabase", table_name: str) -> None:
        self.store = store
        self.table_name = table_name
        self.action = "select"
        self.payload: Any = None
        self.on_conflict: str | None = None
        self.filters: list = []
        self._order: tuple[str, bool] | None = None
        self._limit: int | None = None

    def select(self, _columns: str = "*"):  # noqa: ARG002
        return self

    def insert(self, data):
        self.action, self.payload = "insert", data
        return self

    def update(self, data):
        self.action, self.payload = "update", data
        return self

    def upsert(self, data, on_conflict: str | None = None):
        self.action, self.payload, self.on_conflict = "upsert", data, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, field: str, value):
        self.filters.append(lambda row: row.get(field) is not None and str(row.get(field)) == str(value))
        return self

    def in_(self, field: str, values):
        wanted = {str(v) for v in values}
        self.filters.append(lambda row: row.get(field) is not None and str(row.get(field)) in wanted)
        return self

    def is_(self, field: str, value: str):
        assert value == "null"
        self.filters.append(lambda row: row.get(field) is None)
        return self

    def order(self, field: str, desc: bool = False):
        self._order = (field, desc)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self.filters)

    def execute(self):
        if self.table_name in self.store.failing_tables:
            raise RuntimeError(f"{self.table_name} unavailable")
        self.store.calls.append((self.table_name, self.action, self.payload))
        rows = self.store.tables.setdefault(self.table_name, [])

        if self.action == "select":
            matched = [dict(r) for r in rows if self._matches(r)]
            if self._order:
                field, desc = self._order
                matched.sort(key=lambda r: str(r.get(field) or ""), reverse=desc)
            if self._limit is not None:
                matched = matched[: self._limit]
            return SimpleNamespace(data=matched)

        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for item in items:
                row = {"id": str(uuid.uuid4()), **item}
                rows.append(row)
                created.append(dict(row))
            return SimpleNamespace(data=created)

        if self.action == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated)

        if self.action == "upsert":
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            for row in rows:
                if all(row.get(k) == self.payload.get(k) for k in keys):
                    row.update(self.payload)
                    return SimpleNamespace(data=[dict(row)])
            row = {"id": str(uuid.uuid4()), **self.payload}
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        # delete
        removed = [dict(r) for r in rows if self._matches(r)]
        self.store.tables[self.table_name] = [r for r in rows if not self._matches(r)]
        return SimpleNamespace(data=removed)


class FakeSupabase:
    """In-memory stand-in for a supabase ``Client``."""

    def __init__(self, tables: dict[str, list[dict]] | None = None) -> None:
        self.tables: dict[str, list[dict]] = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.failing_tables: set[str] = set()
        self.calls: list[tuple[str, str, Any]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> list[dict]:
        return self.tables.get(name, [])


@pytest.fixture
def memorial_db() -> FakeSupabase:
    """A small memorial: one note by Julie mentioning three people and a link."""
    return FakeSupabase(
        {
            "contributors": [
                {"id": "c-julie", "name": "Julie", "relation": "sister"},
                {"id": "c-sam", "name": "Sam Miller", "relation": "cousin"},
                {"id": "c-amy", "name": "Amy", "relation": "friend"},
            ],
            "profiles": [{"id": "user-sam", "contributor_id": "c-sam"}],
            "people": [
                {"id": "p-sam", "canonical_name": "Sam Miller", "visibility": "pending"},
                {"id": "p-rita", "canonical_name": "Rita Jones", "visibility": "approved"},
                {"id": "p-leo", "canonical_name": "Leo Park", "visibility": "removed"},
            ],
            "person_claims": [
                {"id": "cl-1", "person_id": "p-sam", "contributor_id": "c-sam", "status": "approved"},
                {"id": "cl-2", "person_id": "p-rita", "contributor_id": "c-amy", "status": "approved"},
            ],
            "timeline_events": [
                {"id": "e-1", "title": "Lake house", "year": 1998, "contributor_id": "c-julie"},
                {"id": "e-2", "title": "Graduation", "year": 2004, "contributor_id": "c-amy"},
            ],
            "event_references": [
                {
                    "id": "r-sam",
                    "event_id": "e-1",
                    "type": "person",
                    "person_id": "p-sam",
                    "visibility": "pending",
                    "role": "witness",
                    "relationship_to_subject": "cousin",
                },
                {
                    "id": "r-rita",
                    "event_id": "e-1",
                    "type": "person",
                    "person_id": "p-rita",
                    "visibility": "pending",
                    "role": "heard_from",
                    "relationship_to_subject": "friend",
                },
                {
                    "id": "r-leo",
                    "event_id": "e-1",
                    "type": "person",
                    "person_id": "p-leo",
                    "visibility": "approved",
                    "role": "witness",
                },
                {
                    "id": "r-link",
                    "event_id": "e-1",
                    "type": "link",
                    "url": "https://example.org/lake",
                    "display_name": "Lake history",
                    "role": "related",
                    "visibility": None,
                },
                {
                    "id": "r-sam-2",
                    "event_id": "e-2",
                    "type": "person",
                    "person_id": "p-sam",
                    "visibility": "blurred",
                    "role": "witness",
                },
            ],
            "visibility_preferences": [
                {"id": "vp-1", "person_id": "p-sam", "contributor_id": "c-julie", "visibility": "blurred"},
            ],
        }
    )


@pytest.fixture
def make_db():
    return FakeSupabase
