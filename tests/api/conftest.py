"""
Fixtures for API tests.

Every test gets its own SQLite file under ``tmp_path``; the app's
lifespan applies the schema when the client starts.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from rankbrnd.api.app import create_app
from rankbrnd.api.deps import get_worker_settings
from rankbrnd.api.settings import RankBrndAPISettings
from rankbrnd.core.settings import RankBrndSettings

OWNER = {"X-User-ID": "user-owner"}


@pytest.fixture()
def api_settings(tmp_path) -> RankBrndAPISettings:
    return RankBrndAPISettings(database_url=f"sqlite:///{tmp_path}/api.db")


@pytest.fixture()
def worker_settings() -> RankBrndSettings:
    return RankBrndSettings(cron_secret="cron-s3cret", rank_tracking_cron_secret="rank-s3cret")


@pytest.fixture()
def client(api_settings, worker_settings) -> Generator[TestClient, None, None]:
    app = create_app(settings=api_settings)
    app.dependency_overrides[get_worker_settings] = lambda: worker_settings
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def org(client) -> dict[str, Any]:
    """Organization owned by ``user-owner`` with an editor and a viewer."""
    resp = client.post("/api/v1/organizations", json={"name": "Acme Shoes", "domain": "acme.example"}, headers=OWNER)
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    for user_id, role in (("user-editor", "editor"), ("user-viewer", "viewer")):
        added = client.post(
            f"/api/v1/organizations/{data['id']}/members", json={"user_id": user_id, "role": role}, headers=OWNER
        )
        assert added.status_code == 201, added.text
    return data


@pytest.fixture()
def make_article(client, org) -> Callable[..., dict[str, Any]]:
    def _make(title: str = "Best running shoes") -> dict[str, Any]:
        resp = client.post(
            "/api/v1/articles", json={"organization_id": org["id"], "title": title, "content": "# Shoes"}, headers=OWNER
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make


@pytest.fixture()
def queue_item(client, org, make_article) -> dict[str, Any]:
    article = make_article()
    resp = client.post(
        "/api/v1/queue",
        json={"organization_id": org["id"], "article_id": article["id"], "platform": "wordpress"},
        headers=OWNER,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
