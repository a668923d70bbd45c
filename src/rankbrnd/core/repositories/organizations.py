"""Organization and team-member repositories."""

from __future__ import annotations

from typing import Any

from rankbrnd.core.repository import BaseRepository


class OrganizationRepository(BaseRepository):
    """CRUD for the ``organizations`` table."""

    TABLE = "organizations"
    json_columns = ("settings",)

    def get(self, org_id: str) -> dict[str, Any] | None:
        return self.query_one(f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}", (org_id,))

    def get_by_slug(self, slug: str) -> dict[str, Any] | None:
        return self.query_one(f"SELECT * FROM {self.TABLE} WHERE slug = {self.ph(1)}", (slug,))

    def create(self, data: dict[str, Any]) -> None:
        self.insert(self.TABLE, data)

    def update(self, org_id: str, data: dict[str, Any]) -> int:
        return self.update_by_id(self.TABLE, org_id, data)

    def list_active(self) -> list[dict[str, Any]]:
        return self.query(f"SELECT * FROM {self.TABLE} WHERE active = 1 ORDER BY created_at")

    def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        """Organizations *user_id* belongs to, with the member's role."""
        return self.query(
            f"SELECT o.*, m.role AS role FROM {self.TABLE} o "
            f"JOIN team_members m ON m.organization_id = o.id "
            f"WHERE m.user_id = {self.ph(1)} ORDER BY o.created_at",
            (user_id,),
        )

    def get_domain(self, org_id: str | None) -> str | None:
        if not org_id:
            return None
        return self.scalar(f"SELECT domain FROM {self.TABLE} WHERE id = {self.ph(1)}", (org_id,))


class TeamMemberRepository(BaseRepository):
    """CRUD for the ``team_members`` table."""

    TABLE = "team_members"

    def get(self, org_id: str, user_id: str) -> dict[str, Any] | None:
        return self.query_one(
            f"SELECT * FROM {self.TABLE} WHERE organization_id = {self.ph(1)} AND user_id = {self.ph(1)}",
            (org_id, user_id),
        )

    def get_role(self, org_id: str, user_id: str) -> str | None:
        return self.scalar(
            f"SELECT role FROM {self.TABLE} WHERE organization_id = {self.ph(1)} AND user_id = {self.ph(1)}",
            (org_id, user_id),
        )

    def create(self, data: dict[str, Any]) -> None:
        self.insert(self.TABLE, data)

    def list_members(self, org_id: str) -> list[dict[str, Any]]:
        return self.query(
            f"SELECT * FROM {self.TABLE} WHERE organization_id = {self.ph(1)} ORDER BY created_at",
            (org_id,),
        )

    def set_role(self, org_id: str, user_id: str, role: str, updated_at: str) -> int:
        cursor = self.execute(
            f"UPDATE {self.TABLE} SET role = {self.ph(1)}, updated_at = {self.ph(1)} "
            f"WHERE organization_id = {self.ph(1)} AND user_id = {self.ph(1)}",
            (role, updated_at, org_id, user_id),
        )
        return cursor.rowcount

    def remove(self, org_id: str, user_id: str) -> int:
        cursor = self.execute(
            f"DELETE FROM {self.TABLE} WHERE organization_id = {self.ph(1)} AND user_id = {self.ph(1)}",
            (org_id, user_id),
        )
        return cursor.rowcount
