"""Rank tracking repository.

Tags:
    rankbrnd, repository, rank-tracking
"""

from __future__ import annotations

from typing import Any

from rankbrnd.core.repository import BaseRepository

from ._helpers import _and, _build_where

_UPSERT_COLUMNS = [
    "id", "organization_id", "product_id", "keyword_id", "position", "url",
    "device", "location", "date", "search_volume", "metadata", "created_at", "updated_at",
]
_KEY_COLUMNS = ["keyword_id", "device", "location", "date"]


class RankTrackingRepository(BaseRepository):
    """CRUD for the ``rank_tracking`` table."""

    TABLE = "rank_tracking"
    json_columns = ("metadata",)

    def get(self, record_id: str) -> dict[str, Any] | None:
        return self.query_one(f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}", (record_id,))

    def upsert(self, record: dict[str, Any]) -> None:
        """Insert or replace the row for (keyword_id, device, location, date).

        The existing row keeps its ``id`` and ``created_at``.
        """
        sql = self.dialect.upsert(
            self.TABLE,
            _UPSERT_COLUMNS,
            _KEY_COLUMNS,
            update_columns=[c for c in _UPSERT_COLUMNS if c not in ("id", "created_at", *_KEY_COLUMNS)],
        )
        encoded = self._encode(record)
        self.execute(sql, tuple(encoded.get(c) for c in _UPSERT_COLUMNS))

    def upsert_many(self, records: list[dict[str, Any]]) -> int:
        for record in records:
            self.upsert(record)
        return len(records)

    def delete(self, record_id: str) -> int:
        cursor = self.execute(f"DELETE FROM {self.TABLE} WHERE id = {self.ph(1)}", (record_id,))
        return cursor.rowcount

    def list_records(
        self,
        *,
        organization_id: str | None = None,
        product_id: str | None = None,
        keyword_id: str | None = None,
        device: str | None = None,
        location: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """List records, newest date first.  Returns ``(rows, total)``."""
        where, params = _build_where(
            {
                "organization_id": organization_id,
                "product_id": product_id,
                "keyword_id": keyword_id,
                "device": device,
                "location": location,
            },
        )
        if date_from:
            where = _and(where, f"date >= {self.ph(1)}")
            params = (*params, date_from)
        if date_to:
            where = _and(where, f"date <= {self.ph(1)}")
            params = (*params, date_to)

        total = self.scalar(f"SELECT COUNT(*) FROM {self.TABLE} WHERE {where}", params) or 0
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY date DESC, created_at DESC LIMIT {self.ph(1)} OFFSET {self.ph(1)}",
            (*params, limit, offset),
        )
        return rows, total

    def history(
        self,
        keyword_id: str,
        *,
        device: str | None = None,
        location: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[dict[str, Any]]:
        """All records for a keyword in date order."""
        where, params = _build_where({"keyword_id": keyword_id, "device": device, "location": location})
        if date_from:
            where = _and(where, f"date >= {self.ph(1)}")
            params = (*params, date_from)
        if date_to:
            where = _and(where, f"date <= {self.ph(1)}")
            params = (*params, date_to)
        return self.query(f"SELECT * FROM {self.TABLE} WHERE {where} ORDER BY date ASC", params)

    def count_all(self) -> int:
        return self.scalar(f"SELECT COUNT(*) FROM {self.TABLE}") or 0

    def count_for_date(self, date: str) -> int:
        return self.scalar(f"SELECT COUNT(*) FROM {self.TABLE} WHERE date = {self.ph(1)}", (date,)) or 0
