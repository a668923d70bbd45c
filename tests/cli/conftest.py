"""
Fixtures for CLI tests.

Commands run through ``typer.testing.CliRunner`` against a SQLite file
under ``tmp_path``. The CLI's logging setup is swapped for an
error-only, non-caching configuration: cached loggers would keep a
handle on the runner's closed stdout.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import Any

import pytest
import structlog

from rankbrnd.core.connection import create_connection
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.organizations import create_organization
from rankbrnd.ops.publishing_queue import create_queue_item
from rankbrnd.ops.requests import CreateOrganizationRequest, CreateQueueItemRequest


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    def _configure(level: str = "INFO", json_format: bool | None = None, **kwargs: Any) -> None:
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(logging.ERROR),
            cache_logger_on_first_use=False,
        )

    monkeypatch.setattr("rankbrnd.core.logging.configure_logging", _configure)
    yield
    structlog.reset_defaults()


@pytest.fixture()
def db_url(tmp_path) -> str:
    """URL of a SQLite file with the schema applied."""
    url = f"sqlite:///{tmp_path}/cli.db"
    conn, _info = create_connection(url, init_schema=True)
    conn.close()
    return url


@pytest.fixture()
def seeded(db_url) -> dict[str, Any]:
    """One organization with two queue items: wordpress pending, shopify cancelled."""
    conn, _info = create_connection(db_url)
    try:
        ctx = OperationContext(conn=conn, caller="test")
        org = create_organization(ctx, CreateOrganizationRequest(name="Acme", owner_user_id="user-owner")).data
        pending = create_queue_item(ctx, CreateQueueItemRequest(organization_id=org.id, platform="wordpress")).data
        cancelled = create_queue_item(ctx, CreateQueueItemRequest(organization_id=org.id, platform="shopify")).data
        conn.execute("UPDATE publishing_queue SET status = 'cancelled' WHERE id = ?", (cancelled.id,))
        conn.commit()
        return {"org_id": org.id, "pending_id": pending.id, "cancelled_id": cancelled.id}
    finally:
        conn.close()
