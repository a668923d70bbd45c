"""Keyword, article and integration repositories.

Tags:
    rankbrnd, repository, keywords, articles, integrations
"""

from __future__ import annotations

from typing import Any

from rankbrnd.core.repository import BaseRepository

from ._helpers import _and, _build_where


class KeywordRepository(BaseRepository):
    """CRUD for the ``keywords`` table."""

    TABLE = "keywords"

    def get(self, keyword_id: str) -> dict[str, Any] | None:
        return self.query_one(f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}", (keyword_id,))

    def create(self, data: dict[str, Any]) -> None:
        self.insert(self.TABLE, data)

    def update(self, keyword_id: str, data: dict[str, Any]) -> int:
        return self.update_by_id(self.TABLE, keyword_id, data)

    def list_keywords(
        self,
        *,
        organization_id: str | None = None,
        product_id: str | None = None,
        active: bool | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """List keywords.  Returns ``(rows, total)``."""
        where, params = _build_where(
            {
                "organization_id": organization_id,
                "product_id": product_id,
                "active": None if active is None else int(active),
            },
        )
        if search:
            where = _and(where, f"LOWER(keyword) LIKE {self.ph(1)}")
            params = (*params, f"%{search.lower()}%")

        total = self.scalar(f"SELECT COUNT(*) FROM {self.TABLE} WHERE {where}", params) or 0
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY created_at DESC LIMIT {self.ph(1)} OFFSET {self.ph(1)}",
            (*params, limit, offset),
        )
        return rows, total

    def list_to_track(
        self,
        *,
        organization_id: str | None = None,
        product_id: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Active keywords, least recently updated first."""
        where, params = _build_where(
            {"organization_id": organization_id, "product_id": product_id},
            extra_clauses=["active = 1"],
        )
        return self.query(
            f"SELECT id, keyword, product_id, organization_id FROM {self.TABLE} WHERE {where} "
            f"ORDER BY updated_at ASC LIMIT {self.ph(1)}",
            (*params, limit),
        )

    def count_active(self) -> int:
        return self.scalar(f"SELECT COUNT(*) FROM {self.TABLE} WHERE active = 1") or 0


class ArticleRepository(BaseRepository):
    """CRUD for the ``articles`` table."""

    TABLE = "articles"
    json_columns = ("tags",)

    def get(self, article_id: str) -> dict[str, Any] | None:
        return self.query_one(f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}", (article_id,))

    def create(self, data: dict[str, Any]) -> None:
        self.insert(self.TABLE, data)

    def list_articles(
        self,
        *,
        organization_id: str | None = None,
        product_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """List articles.  Returns ``(rows, total)``."""
        where, params = _build_where(
            {"organization_id": organization_id, "product_id": product_id, "status": status},
        )
        total = self.scalar(f"SELECT COUNT(*) FROM {self.TABLE} WHERE {where}", params) or 0
        rows = self.query(
            f"SELECT * FROM {self.TABLE} WHERE {where} "
            f"ORDER BY created_at DESC LIMIT {self.ph(1)} OFFSET {self.ph(1)}",
            (*params, limit, offset),
        )
        return rows, total

    def set_status(self, article_id: str, status: str, updated_at: str) -> int:
        return self.update_by_id(self.TABLE, article_id, {"status": status, "updated_at": updated_at})


class IntegrationRepository(BaseRepository):
    """CRUD for the ``integrations`` table."""

    TABLE = "integrations"
    json_columns = ("config",)

    def get(self, integration_id: str) -> dict[str, Any] | None:
        return self.query_one(f"SELECT * FROM {self.TABLE} WHERE id = {self.ph(1)}", (integration_id,))

    def create(self, data: dict[str, Any]) -> None:
        self.insert(self.TABLE, data)

    def list_integrations(
        self,
        *,
        organization_id: str | None = None,
        platform: str | None = None,
    ) -> list[dict[str, Any]]:
        where, params = _build_where({"organization_id": organization_id, "platform": platform})
        return self.query(f"SELECT * FROM {self.TABLE} WHERE {where} ORDER BY created_at", params)

    def find_active(self, organization_id: str, platform: str) -> dict[str, Any] | None:
        """Most recent active integration for a platform."""
        return self.query_one(
            f"SELECT * FROM {self.TABLE} WHERE organization_id = {self.ph(1)} "
            f"AND platform = {self.ph(1)} AND active = 1 ORDER BY created_at DESC LIMIT 1",
            (organization_id, platform),
        )
