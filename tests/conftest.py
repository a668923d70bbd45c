"""
Shared pytest fixtures for rankbrnd tests.

This module provides:
- An in-memory SQLite connection with every schema applied
- A pinned clock so retry and schedule timestamps are deterministic
- OperationContext fixtures for system callers and signed-in users
- Row factories for organizations, keywords, articles, integrations and
  publishing queue items
- A fake DataForSEO endpoint served through httpx.MockTransport

Usage:
    def test_something(ctx, make_org, make_queue_item):
        org = make_org()
        item = make_queue_item(org["id"], platform="wordpress")
"""

from __future__ import annotations

import itertools
import json
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
import pytest

from rankbrnd.core.repositories import (
    ArticleRepository,
    IntegrationRepository,
    KeywordRepository,
    OrganizationRepository,
    PublishingQueueRepository,
    TeamMemberRepository,
)
from rankbrnd.core.schema_loader import apply_all_schemas
from rankbrnd.core.settings import clear_settings_cache
from rankbrnd.core.timestamps import to_iso8601
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.sqlite_conn import SqliteConnection
from rankbrnd.rank_tracking.client import DataForSEOClient

#: Fixed "now" used by every clock-aware fixture.
NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=UTC)
NOW_ISO = to_iso8601(NOW)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark API and CLI tests as integration, everything else as unit."""
    root = Path(__file__).parent
    for item in items:
        parts = Path(item.fspath).relative_to(root).parts
        if parts and parts[0] in ("api", "cli"):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop RANKBRND_* variables from the host and reset the settings cache."""
    import os

    for key in list(os.environ):
        if key.startswith("RANKBRND_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Connection and context
# =============================================================================


@pytest.fixture()
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with all schemas applied."""
    connection = SqliteConnection(":memory:")
    apply_all_schemas(connection)
    yield connection
    connection.close()


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture()
def ctx(conn: SqliteConnection, clock: Callable[[], datetime]) -> OperationContext:
    """System caller: no user, so role checks are skipped."""
    return OperationContext(conn=conn, caller="test", clock=clock)


@pytest.fixture()
def dry_ctx(conn: SqliteConnection, clock: Callable[[], datetime]) -> OperationContext:
    return OperationContext(conn=conn, caller="test", dry_run=True, clock=clock)


@pytest.fixture()
def user_ctx(conn: SqliteConnection, clock: Callable[[], datetime]) -> Callable[[str], OperationContext]:
    """Factory for contexts acting as a specific user."""

    def _make(user: str) -> OperationContext:
        return OperationContext(conn=conn, caller="test", user=user, clock=clock)

    return _make


# =============================================================================
# Row factories
# =============================================================================

_ids = itertools.count(1)


def _next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids):04d}"


@pytest.fixture()
def make_org(conn: SqliteConnection) -> Callable[..., dict[str, Any]]:
    """Insert an organization; *members* maps user id to role."""

    def _make(
        name: str = "Acme",
        *,
        domain: str | None = "acme.example",
        owner: str | None = "user-owner",
        members: dict[str, str] | None = None,
        active: bool = True,
    ) -> dict[str, Any]:
        org_id = _next_id("org")
        orgs = OrganizationRepository(conn)
        orgs.create(
            {
                "id": org_id,
                "name": name,
                "slug": org_id,
                "domain": domain,
                "tier": "free",
                "settings": {},
                "active": 1 if active else 0,
                "created_at": NOW_ISO,
                "updated_at": NOW_ISO,
            }
        )
        team = TeamMemberRepository(conn)
        roster = dict(members or {})
        if owner:
            roster.setdefault(owner, "owner")
        for user_id, role in roster.items():
            team.create(
                {
                    "id": _next_id("tm"),
                    "organization_id": org_id,
                    "user_id": user_id,
                    "role": role,
                    "created_at": NOW_ISO,
                    "updated_at": NOW_ISO,
                }
            )
        conn.commit()
        return orgs.get(org_id)

    return _make


@pytest.fixture()
def make_keyword(conn: SqliteConnection) -> Callable[..., dict[str, Any]]:
    def _make(
        organization_id: str,
        keyword: str = "best running shoes",
        *,
        active: bool = True,
        product_id: str | None = None,
        updated_at: str = NOW_ISO,
    ) -> dict[str, Any]:
        repo = KeywordRepository(conn)
        keyword_id = _next_id("kw")
        repo.create(
            {
                "id": keyword_id,
                "organization_id": organization_id,
                "product_id": product_id,
                "keyword": keyword,
                "search_volume": 1200,
                "difficulty": 40,
                "intent": "commercial",
                "active": 1 if active else 0,
                "created_at": NOW_ISO,
                "updated_at": updated_at,
            }
        )
        conn.commit()
        return repo.get(keyword_id)

    return _make


@pytest.fixture()
def make_article(conn: SqliteConnection) -> Callable[..., dict[str, Any]]:
    def _make(
        organization_id: str,
        title: str = "How to choose running shoes",
        *,
        content: str = "Body text",
        tags: list[str] | None = None,
        status: str = "ready",
    ) -> dict[str, Any]:
        repo = ArticleRepository(conn)
        article_id = _next_id("art")
        repo.create(
            {
                "id": article_id,
                "organization_id": organization_id,
                "title": title,
                "content": content,
                "content_html": f"<p>{content}</p>",
                "tags": tags or [],
                "status": status,
                "created_at": NOW_ISO,
                "updated_at": NOW_ISO,
            }
        )
        conn.commit()
        return repo.get(article_id)

    return _make


@pytest.fixture()
def make_integration(conn: SqliteConnection) -> Callable[..., dict[str, Any]]:
    def _make(
        organization_id: str,
        platform: str = "wordpress",
        config: dict[str, Any] | None = None,
        *,
        active: bool = True,
    ) -> dict[str, Any]:
        repo = IntegrationRepository(conn)
        integration_id = _next_id("int")
        default_config = {
            "url": "https://blog.acme.example",
            "username": "editor",
            "password": "abcd efgh ijkl",
        }
        repo.create(
            {
                "id": integration_id,
                "organization_id": organization_id,
                "platform": platform,
                "name": platform.title(),
                "config": default_config if config is None else config,
                "active": 1 if active else 0,
                "created_at": NOW_ISO,
                "updated_at": NOW_ISO,
            }
        )
        conn.commit()
        return repo.get(integration_id)

    return _make


@pytest.fixture()
def make_queue_item(conn: SqliteConnection) -> Callable[..., dict[str, Any]]:
    """Insert a publishing_queue row; keyword overrides win over defaults."""

    def _make(organization_id: str, **overrides: Any) -> dict[str, Any]:
        repo = PublishingQueueRepository(conn)
        item_id = overrides.pop("id", None) or _next_id("pq")
        row = {
            "id": item_id,
            "organization_id": organization_id,
            "platform": "wordpress",
            "status": "pending",
            "priority": 0,
            "retry_count": 0,
            "max_retries": 3,
            "published_data": {},
            "metadata": {},
            "created_at": NOW_ISO,
            "updated_at": NOW_ISO,
        }
        row.update(overrides)
        repo.create(row)
        conn.commit()
        return repo.get(item_id)

    return _make


# =============================================================================
# Fake DataForSEO endpoint
# =============================================================================


def serp_task(keyword: str, rank: int | None, domain: str = "acme.example", *, cost: float = 0.003) -> dict[str, Any]:
    """A successful task; *rank* ``None`` means the domain is not in the results."""
    items: list[dict[str, Any]] = [
        {"type": "featured_snippet", "domain": domain, "rank_absolute": 1, "url": f"https://{domain}/snippet"},
        {"type": "organic", "domain": "competitor.example", "rank_absolute": 2, "url": "https://competitor.example/"},
    ]
    if rank is not None:
        items.append(
            {
                "type": "organic",
                "domain": f"www.{domain}",
                "rank_absolute": rank,
                "url": f"https://www.{domain}/{keyword.replace(' ', '-')}",
                "title": keyword.title(),
            }
        )
    return {
        "status_code": 20000,
        "status_message": "Ok.",
        "cost": cost,
        "result": [{"keyword": keyword, "total_results_count": 1000, "items": items}],
    }


class FakeSerp:
    """Answers each posted task from *ranks* (keyword -> position or None).

    Keywords missing from *ranks* get a failed task (status 40501).
    """

    def __init__(self, ranks: dict[str, int | None] | None = None, *, status_code: int = 200):
        self.ranks = dict(ranks or {})
        self.status_code = status_code
        self.requests: list[list[dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        tasks = json.loads(request.content)
        self.requests.append(tasks)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"status_message": "Quota exceeded"})
        out = []
        for task in tasks:
            keyword = task["keyword"]
            if keyword in self.ranks:
                out.append(serp_task(keyword, self.ranks[keyword]))
            else:
                out.append({"status_code": 40501, "status_message": "Invalid Field: 'keyword'.", "cost": 0})
        return httpx.Response(200, json={"status_code": 20000, "tasks": out})


@pytest.fixture()
def fake_serp() -> FakeSerp:
    return FakeSerp()


@pytest.fixture()
def dataforseo(fake_serp: FakeSerp) -> DataForSEOClient:
    return DataForSEOClient("login", "secret", client=httpx.Client(transport=httpx.MockTransport(fake_serp)))
