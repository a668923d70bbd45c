"""Publishing queue repository.

Every read excludes soft-deleted rows (``deleted_at IS NOT NULL``).
Status transitions go through :meth:`PublishingQueueRepository.transition`
with an allowed-status guard so two workers can never both claim a row.

Tags:
    rankbrnd, repository, publishing, queue
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from rankbrnd.core.repository import BaseRepository

from ._helpers import _and, _build_where

SORTABLE_COLUMNS = frozenset(
    {"created_at", "updated_at", "status", "platform", "priority", "scheduled_for", "completed_at"}
)


class PublishingQueueRepository(BaseRepository):
    """CRUD and worker selection for ``publishing_queue``."""

    TABLE = "publishing_queue"
    json_columns = ("published_data", "metadata")

    def get(self, item_id: str, *, include_deleted: bool = False) -> dict[str, Any] | None:
        sql = f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}"
        if not include_deleted:
            sql += " AND deleted_at IS NULL"
        return self.query_one(sql, (item_id,))

    def create(self, data: dict[str, Any]) -> None:
        self.insert(self.TABLE, data)

    def list_items(
        self,
        *,
        organization_id: str | None = None,
        product_id: str | None = None,
        article_id: str | None = None,
        status: str | None = None,
        platform: str | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """List queue rows with filters.  Returns ``(rows, total)``."""
        if sort_by not in SORTABLE_COLUMNS:
            raise ValueError(f"cannot sort by {sort_by!r}")
        direction = "ASC" if sort_order.lower() == "asc" else "DESC"

        where, params = _build_where(
            {
                "organization_id": organization_id,
                "product_id": product_id,
                "article_id": article_id,
                "status": status,
                "platform": platform,
            },
            extra_clauses=["deleted_at IS NULL"],
        )
        if search:
            where = _and(where, f"(last_error LIKE {self.ph(1)} OR published_url LIKE {self.ph(1)})")
            params = (*params, f"%{search}%", f"%{search}%")

        total = self.scalar(f"SELECT COUNT(*) FROM {self.TABLE} WHERE {where}", params) or 0
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY {sort_by} {direction}, id {direction} "
            f"LIMIT {self.ph(1)} OFFSET {self.ph(1)}",
            (*params, limit, offset),
        )
        return rows, total

    def transition(
        self,
        item_id: str,
        data: dict[str, Any],
        *,
        from_statuses: Sequence[str] | None = None,
    ) -> int:
        """Update a live row, optionally only while it is in *from_statuses*.

        Returns the number of rows changed (0 when the guard did not match).
        """
        extra = "deleted_at IS NULL"
        extra_params: tuple = ()
        if from_statuses:
            extra += f" AND status IN ({self.ph(len(from_statuses))})"
            extra_params = tuple(from_statuses)
        return self.update_by_id(self.TABLE, item_id, data, extra_where=extra, extra_params=extra_params)

    def soft_delete(self, item_id: str, deleted_at: str) -> int:
        return self.transition(item_id, {"deleted_at": deleted_at, "updated_at": deleted_at})

    def hard_delete(self, item_id: str) -> int:
        cursor = self.execute(f"DELETE FROM {self.TABLE} WHERE id = {self.ph(1)}", (item_id,))
        return cursor.rowcount

    def count_by_status(self, organization_id: str | None = None) -> dict[str, int]:
        where, params = _build_where(
            {"organization_id": organization_id}, extra_clauses=["deleted_at IS NULL"]
        )
        rows = self.query(
            f"SELECT status, COUNT(*) AS cnt FROM {self.TABLE} WHERE {where} GROUP BY status",
            params,
        )
        return {r["status"]: r["cnt"] for r in rows}

    # -- Worker selection --------------------------------------------------

    def due_scheduled(
        self,
        now: str,
        *,
        platform: str | None = None,
        organization_id: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Pending rows whose ``scheduled_for`` has arrived, oldest first."""
        where, params = _build_where(
            {"platform": platform, "organization_id": organization_id},
            extra_clauses=["status = 'pending'", "deleted_at IS NULL", "scheduled_for IS NOT NULL"],
        )
        where = _and(where, f"scheduled_for <= {self.ph(1)}")
        return self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} ORDER BY scheduled_for ASC LIMIT {self.ph(1)}",
            (*params, now, limit),
        )

    def ready_to_publish(
        self,
        *,
        platform: str | None = None,
        organization_id: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Queued rows plus unscheduled pending rows, by priority then age."""
        where, params = _build_where(
            {"platform": platform, "organization_id": organization_id},
            extra_clauses=[
                "deleted_at IS NULL",
                "(status = 'queued' OR (status = 'pending' AND scheduled_for IS NULL AND retry_after IS NULL))",
            ],
        )
        return self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY priority DESC, created_at ASC LIMIT {self.ph(1)}",
            (*params, limit),
        )

    def ready_for_retry(
        self,
        now: str,
        *,
        platform: str | None = None,
        organization_id: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Pending rows whose ``retry_after`` has passed, oldest first."""
        where, params = _build_where(
            {"platform": platform, "organization_id": organization_id},
            extra_clauses=["status = 'pending'", "deleted_at IS NULL", "retry_after IS NOT NULL"],
        )
        where = _and(where, f"retry_after <= {self.ph(1)}")
        return self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} ORDER BY retry_after ASC LIMIT {self.ph(1)}",
            (*params, now, limit),
        )

    def scheduled_pending(
        self,
        now: str,
        *,
        organization_id: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Pending rows scheduled in the future, soonest first."""
        where, params = _build_where(
            {"organization_id": organization_id},
            extra_clauses=["status = 'pending'", "deleted_at IS NULL", "scheduled_for IS NOT NULL"],
        )
        where = _and(where, f"scheduled_for > {self.ph(1)}")
        return self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} ORDER BY scheduled_for ASC LIMIT {self.ph(1)}",
            (*params, now, limit),
        )

    def phase_counts(
        self, now: str, *, platform: str | None = None, organization_id: str | None = None
    ) -> dict[str, int]:
        """Row counts for each worker phase, using the same filters as selection."""
        where, params = _build_where(
            {"platform": platform, "organization_id": organization_id}, extra_clauses=["deleted_at IS NULL"]
        )
        scheduled = self.scalar(
            f"SELECT COUNT(*) FROM {self.TABLE} WHERE {where} AND status = 'pending' "
            f"AND scheduled_for IS NOT NULL AND scheduled_for <= {self.ph(1)}",
            (*params, now),
        )
        queued = self.scalar(
            f"SELECT COUNT(*) FROM {self.TABLE} WHERE {where} AND (status = 'queued' OR "
            "(status = 'pending' AND scheduled_for IS NULL AND retry_after IS NULL))",
            params,
        )
        retry = self.scalar(
            f"SELECT COUNT(*) FROM {self.TABLE} WHERE {where} AND status = 'pending' "
            f"AND retry_after IS NOT NULL AND retry_after <= {self.ph(1)}",
            (*params, now),
        )
        return {"scheduled": scheduled or 0, "queued": queued or 0, "retry": retry or 0}
