"""
FastAPI dependency injection: shared singletons and per-request factories.

Usage in routers::

    from rankbrnd.api.deps import OpContext

    @router.get("/things")
    def list_things(ctx: OpContext):
        ...

The caller's identity arrives in the ``X-User-ID`` header, set by the
upstream identity provider, and becomes ``OperationContext.user``.
Requests without it run as system callers.
"""

from __future__ import annotations

import hmac
import uuid
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, Request

from rankbrnd.api.settings import RankBrndAPISettings
from rankbrnd.core.connection import create_connection
from rankbrnd.core.settings import RankBrndSettings
from rankbrnd.core.settings import get_settings as get_core_settings
from rankbrnd.ops.context import OperationContext

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> RankBrndAPISettings:
    """Cached API settings, loaded once per process."""
    return RankBrndAPISettings()


def get_worker_settings() -> RankBrndSettings:
    return get_core_settings()


# ── Database connection (per-request) ────────────────────────────────────


def get_connection(
    settings: Annotated[RankBrndAPISettings, Depends(get_settings)],
) -> Generator[Any, None, None]:
    """Yield a database connection for the request lifespan."""
    conn, _info = create_connection(settings.database_url, data_dir=settings.data_dir)
    try:
        yield conn
    finally:
        if hasattr(conn, "close"):
            conn.close()


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(
    request: Request,
    conn: Annotated[Any, Depends(get_connection)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> OperationContext:
    """Build an :class:`OperationContext` from the current request."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return OperationContext(
        conn=conn,
        request_id=request_id,
        caller="api",
        user=x_user_id or None,
    )


# ── Cron secret guard ────────────────────────────────────────────────────


def check_cron_secret(expected: str | None, provided: str | None, user: str | None) -> None:
    """Reject a worker call that is not cron-authenticated.

    With a configured secret the ``x-cron-secret`` header must match it,
    whoever is calling. Without one, only user calls are accepted; the
    worker ops then check the user's role in the target organization.
    """
    if expected:
        if provided and hmac.compare_digest(expected, provided):
            return
        raise HTTPException(status_code=401, detail="Unauthorized")
    if user:
        return
    raise HTTPException(status_code=401, detail="Unauthorized")


def require_publishing_cron(
    worker_settings: Annotated[RankBrndSettings, Depends(get_worker_settings)],
    x_cron_secret: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> None:
    check_cron_secret(worker_settings.cron_secret, x_cron_secret, x_user_id)


def require_rank_tracking_cron(
    worker_settings: Annotated[RankBrndSettings, Depends(get_worker_settings)],
    x_cron_secret: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> None:
    check_cron_secret(worker_settings.rank_tracking_cron_secret, x_cron_secret, x_user_id)


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[RankBrndAPISettings, Depends(get_settings)]
WorkerSettings = Annotated[RankBrndSettings, Depends(get_worker_settings)]
Conn = Annotated[Any, Depends(get_connection)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
PublishingCron = Depends(require_publishing_cron)
RankTrackingCron = Depends(require_rank_tracking_cron)
