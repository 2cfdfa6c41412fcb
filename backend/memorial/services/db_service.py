from __future__ import annotations

from typing import Any

from memorial.config.database import get_supabase_admin_client
from memorial.utils.exceptions import DatabaseError, NotFoundError
from memorial.utils.logging import get_logger
from supabase import Client


class DbService:
    """Minimal shared CRUD helpers over the service-role client."""

    def __init__(self, *, client: Client | None = None) -> None:
        self.logger = get_logger(self.__class__.__name__)
        self.db = client if client is not None else get_supabase_admin_client()

    def get_by_id(self, table: str, resource_id: str, columns: str = "*") -> dict[str, Any]:
        try:
            result = self.db.table(table).select(columns).eq("id", resource_id).limit(1).execute()
        except Exception as exc:  # noqa: BLE001
            self.logger.error("get_by_id failed", table=table, id=resource_id, error=str(exc))
            raise DatabaseError(f"Failed to fetch from {table}") from exc
        if not result.data:
            raise NotFoundError(f"{table} not found", details={"id": resource_id})
        return dict(result.data[0])

    def find_by_id(self, table: str, resource_id: str, columns: str = "*") -> dict[str, Any] | None:
        try:
            return self.get_by_id(table, resource_id, columns)
        except NotFoundError:
            return None

    def create(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        try:
            result = self.db.table(table).insert(data).execute()
        except Exception as exc:  # noqa: BLE001
            self.logger.error("create failed", table=table, error=str(exc))
            raise DatabaseError(f"Failed to create in {table}") from exc
        if not result.data:
            raise DatabaseError(f"Failed to create in {table}")
        return dict(result.data[0])

    def update_by_id(self, table: str, resource_id: str, data: dict[str, Any]) -> None:
        try:
            self.db.table(table).update(data).eq("id", resource_id).execute()
        except Exception as exc:  # noqa: BLE001
            self.logger.error("update failed", table=table, id=resource_id, error=str(exc))
            raise DatabaseError(f"Failed to update {table}") from exc
