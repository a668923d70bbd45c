"""Persistence for setup wizard and onboarding progress."""

from __future__ import annotations

from typing import Any

from rankbrnd.core.repository import BaseRepository


class FlowProgressRepository(BaseRepository):
    """One row per ``(user_id, flow)`` holding a JSON state blob."""

    TABLE = "flow_progress"
    json_columns = ("state",)

    def load(self, user_id: str, flow: str) -> dict[str, Any] | None:
        return self.query_one(
            f"SELECT * FROM {self.TABLE} WHERE user_id = {self.ph(1)} AND flow = {self.ph(1)}",
            (user_id, flow),
        )

    def save(self, user_id: str, flow: str, version: int, state: dict[str, Any], updated_at: str) -> None:
        sql = self.dialect.upsert(self.TABLE, ["user_id", "flow", "version", "state", "updated_at"], ["user_id", "flow"])
        encoded = self._encode({"state": state})
        self.execute(sql, (user_id, flow, version, encoded["state"], updated_at))

    def delete(self, user_id: str, flow: str) -> int:
        cursor = self.execute(
            f"DELETE FROM {self.TABLE} WHERE user_id = {self.ph(1)} AND flow = {self.ph(1)}",
            (user_id, flow),
        )
        return cursor.rowcount
