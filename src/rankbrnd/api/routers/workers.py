"""
Worker router: cron entry points for the batch jobs.

Endpoints:
    POST /workers/publishing            Run the publishing worker once
    GET  /workers/publishing            Items waiting in each phase
    POST /workers/rank-tracking         Run the rank tracking worker once
    GET  /workers/rank-tracking         Keyword/record counts and worker config

When ``RANKBRND_CRON_SECRET`` (or ``RANKBRND_RANK_TRACKING_CRON_SECRET``)
is set, every endpoint requires it in ``x-cron-secret``. Otherwise an
``X-User-ID`` caller is accepted for a single ``organization_id`` they
administer; see :mod:`rankbrnd.ops.workers`.
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from rankbrnd.api.deps import OpContext, PublishingCron, RankTrackingCron, WorkerSettings
from rankbrnd.api.schemas.common import SuccessResponse
from rankbrnd.api.schemas.domains import RunPublishWorkerBody, RunRankWorkerBody
from rankbrnd.api.utils import _handle_error

router = APIRouter(prefix="/workers")


@router.post("/publishing", response_model=SuccessResponse[dict], dependencies=[PublishingCron])
def run_publishing_worker(ctx: OpContext, settings: WorkerSettings, body: RunPublishWorkerBody | None = None):
    """Run the scheduled, queued and retry phases once.

    Example:
        POST /api/v1/workers/publishing
        x-cron-secret: ...

        Response:
        {"data": {"phases": [{"name": "scheduled", "processed": 2, ...}, ...],
                  "total_processed": 5, "total_succeeded": 4, "total_failed": 1}}
    """
    from rankbrnd.ops.requests import RunPublishWorkerRequest
    from rankbrnd.ops.workers import run_publishing_worker as _run

    body = body or RunPublishWorkerBody()
    result = _run(ctx, RunPublishWorkerRequest(**body.model_dump()), settings=settings)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data.to_dict(), elapsed_ms=result.elapsed_ms, warnings=result.warnings)


@router.get("/publishing", response_model=SuccessResponse[dict], dependencies=[PublishingCron])
def publishing_worker_status(
    ctx: OpContext,
    settings: WorkerSettings,
    platform: str | None = Query(None),
    organization_id: str | None = Query(None),
):
    from rankbrnd.ops.requests import RunPublishWorkerRequest
    from rankbrnd.ops.workers import publishing_worker_status as _status

    request = RunPublishWorkerRequest(platform=platform, organization_id=organization_id)
    result = _status(ctx, request, settings=settings)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)


@router.post("/rank-tracking", response_model=SuccessResponse[dict], dependencies=[RankTrackingCron])
def run_rank_tracking_worker(ctx: OpContext, settings: WorkerSettings, body: RunRankWorkerBody | None = None):
    """Track rankings for one organization, or all active ones within the time budget.

    Answers 503 when DataForSEO credentials are not configured.
    """
    from rankbrnd.ops.requests import RunRankWorkerRequest
    from rankbrnd.ops.workers import run_rank_tracking_worker as _run

    body = body or RunRankWorkerBody()
    result = _run(ctx, RunRankWorkerRequest(**body.model_dump()), settings=settings)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data.to_dict(), elapsed_ms=result.elapsed_ms, warnings=result.warnings)


@router.get("/rank-tracking", response_model=SuccessResponse[dict], dependencies=[RankTrackingCron])
def rank_tracking_worker_stats(ctx: OpContext, settings: WorkerSettings):
    from rankbrnd.ops.workers import rank_tracking_worker_stats as _stats

    result = _stats(ctx, settings=settings)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)
