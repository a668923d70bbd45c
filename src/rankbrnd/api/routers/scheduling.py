"""
Scheduling router: publish articles at a chosen local time.

Endpoints:
    POST /schedule                    Schedule an article (local time + timezone)
    GET  /schedule                    Upcoming scheduled items in a viewer's timezone
    POST /schedule/{id}/reschedule    Move an item to a new time
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext
from rankbrnd.api.schemas.common import SuccessResponse
from rankbrnd.api.schemas.domains import QueueItemSchema, RescheduleBody, ScheduleArticleBody, ScheduledItemSchema
from rankbrnd.api.utils import _dc, _handle_error

router = APIRouter(prefix="/schedule")


@router.post("", response_model=SuccessResponse[QueueItemSchema], status_code=201)
def schedule_article(ctx: OpContext, body: ScheduleArticleBody):
    """Schedule an article for publishing.

    ``scheduled_for`` without an offset is read as wall-clock time in
    ``timezone``; the stored ``scheduled_for`` is UTC and must be in the
    future.

    Example:
        POST /api/v1/schedule
        {"organization_id": "org_1", "article_id": "art_1", "platform": "wordpress",
         "scheduled_for": "2026-11-02T09:00:00", "timezone": "America/New_York"}
    """
    from rankbrnd.ops.requests import ScheduleArticleRequest
    from rankbrnd.ops.scheduling import schedule_article as _schedule

    result = _schedule(ctx, ScheduleArticleRequest(**body.model_dump()))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=QueueItemSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)


@router.get("", response_model=SuccessResponse[list[ScheduledItemSchema]])
def list_scheduled(
    ctx: OpContext,
    organization_id: str | None = Query(None),
    timezone: str = Query("UTC", description="IANA timezone for display"),
    limit: int = Query(50, ge=1, le=100),
):
    from rankbrnd.ops.requests import ListScheduledRequest
    from rankbrnd.ops.scheduling import list_scheduled as _list

    result = _list(ctx, ListScheduledRequest(organization_id=organization_id, timezone=timezone, limit=limit))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=[ScheduledItemSchema(**_dc(i)) for i in (result.data or [])],
        elapsed_ms=result.elapsed_ms,
    )


@router.post("/{item_id}/reschedule", response_model=SuccessResponse[QueueItemSchema])
def reschedule_queue_item(ctx: OpContext, body: RescheduleBody, item_id: str = Path(...)):
    """Move a pending, queued, failed or cancelled item to a new time; it becomes pending."""
    from rankbrnd.ops.requests import RescheduleRequest
    from rankbrnd.ops.scheduling import reschedule_queue_item as _reschedule

    result = _reschedule(ctx, RescheduleRequest(item_id=item_id, **body.model_dump()))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=QueueItemSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)
