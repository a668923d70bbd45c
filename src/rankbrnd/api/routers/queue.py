"""
Publishing queue router: inspect and manage items waiting to be published.

Endpoints:
    GET    /queue                      List queue items (filters, sort, paging)
    POST   /queue                      Queue one article
    POST   /queue/bulk                 Queue up to 50 articles at once
    GET    /queue/stats                Count per status
    GET    /queue/ready-for-retry      Pending items whose retry window has opened
    GET    /queue/{id}                 One queue item
    PATCH  /queue/{id}                 Change priority, schedule, retries, metadata
    DELETE /queue/{id}                 Soft delete (``?hard=true`` removes the row)
    POST   /queue/{id}/cancel          pending/queued → cancelled
    POST   /queue/{id}/retry           failed/cancelled → pending
    POST   /queue/{id}/start           pending/queued → publishing
    POST   /queue/{id}/complete        → published
    POST   /queue/{id}/fail            Record a failure (auto-retry if retriable)
    GET    /queue/{id}/retry-state     Retry counters and next retry window
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext
from rankbrnd.api.schemas.common import PagedResponse, SuccessResponse
from rankbrnd.api.schemas.domains import (
    BulkQueueBody,
    BulkQueueResultSchema,
    CreateQueueItemBody,
    MarkCompletedBody,
    MarkFailedBody,
    QueueItemSchema,
    QueueStatsSchema,
    RetryStateSchema,
    UpdateQueueItemBody,
)
from rankbrnd.api.utils import _dc, _handle_error, _page

router = APIRouter(prefix="/queue")


def _item_response(result):
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=QueueItemSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("", response_model=PagedResponse[QueueItemSchema])
def list_queue_items(
    ctx: OpContext,
    organization_id: str | None = Query(None, description="Filter by organization"),
    product_id: str | None = Query(None),
    article_id: str | None = Query(None),
    status: str | None = Query(None, description="pending, queued, publishing, published, failed, cancelled"),
    platform: str | None = Query(None),
    search: str | None = Query(None, description="Substring of last_error or published_url"),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    limit: int = Query(50, description="Items per page (1-100)"),
    offset: int = Query(0),
):
    """List queue items. Soft-deleted items are never returned.

    Example:
        GET /api/v1/queue?organization_id=org_1&status=failed&sort_by=priority

        Response:
        {
            "data": [{"id": "01J...", "status": "failed", "platform": "wordpress", ...}],
            "page": {"total": 3, "limit": 50, "offset": 0, "has_more": false}
        }
    """
    from rankbrnd.ops.publishing_queue import list_queue_items as _list
    from rankbrnd.ops.requests import ListQueueItemsRequest

    request = ListQueueItemsRequest(
        organization_id=organization_id,
        product_id=product_id,
        article_id=article_id,
        status=status,
        platform=platform,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    result = _list(ctx, request)
    if not result.success:
        return _handle_error(result)
    return PagedResponse(
        data=[QueueItemSchema(**_dc(i)) for i in (result.data or [])],
        page=_page(result),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.post("", response_model=SuccessResponse[QueueItemSchema], status_code=201)
def create_queue_item(ctx: OpContext, body: CreateQueueItemBody):
    """Queue an article for publishing.

    Without ``scheduled_for`` the item goes out on the next worker run,
    highest ``priority`` first.
    """
    from rankbrnd.ops.publishing_queue import create_queue_item as _create
    from rankbrnd.ops.requests import CreateQueueItemRequest

    return _item_response(_create(ctx, CreateQueueItemRequest(**body.model_dump())))


@router.post("/bulk", response_model=SuccessResponse[BulkQueueResultSchema], status_code=201)
def bulk_queue_articles(ctx: OpContext, body: BulkQueueBody):
    """Queue several articles with shared settings.

    Articles that are missing or belong to another organization are
    reported in ``errors``; the rest are created.
    """
    from rankbrnd.ops.publishing_queue import bulk_queue_articles as _bulk
    from rankbrnd.ops.requests import BulkQueueRequest

    result = _bulk(ctx, BulkQueueRequest(**body.model_dump()))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=BulkQueueResultSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/stats", response_model=SuccessResponse[QueueStatsSchema])
def get_queue_stats(ctx: OpContext, organization_id: str | None = Query(None)):
    """Count of non-deleted items per status, plus the total."""
    from rankbrnd.ops.publishing_queue import get_queue_stats as _stats
    from rankbrnd.ops.requests import QueueStatsRequest

    result = _stats(ctx, QueueStatsRequest(organization_id=organization_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=QueueStatsSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)


@router.get("/ready-for-retry", response_model=SuccessResponse[list[QueueItemSchema]])
def get_items_ready_for_retry(
    ctx: OpContext,
    platform: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
):
    """Pending items whose ``retry_after`` has passed. System callers only."""
    from rankbrnd.ops.publishing_queue import get_items_ready_for_retry as _ready
    from rankbrnd.ops.requests import ReadyForRetryRequest

    result = _ready(ctx, ReadyForRetryRequest(platform=platform, limit=limit))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=[QueueItemSchema(**_dc(i)) for i in (result.data or [])],
        elapsed_ms=result.elapsed_ms,
    )


@router.get("/{item_id}", response_model=SuccessResponse[QueueItemSchema])
def get_queue_item(ctx: OpContext, item_id: str = Path(..., description="Queue item ID")):
    from rankbrnd.ops.publishing_queue import get_queue_item as _get
    from rankbrnd.ops.requests import QueueItemRequest

    return _item_response(_get(ctx, QueueItemRequest(item_id=item_id)))


@router.patch("/{item_id}", response_model=SuccessResponse[QueueItemSchema])
def update_queue_item(ctx: OpContext, body: UpdateQueueItemBody, item_id: str = Path(...)):
    """Edit an item that has not started publishing.

    Only pending, queued and failed items can be edited; ``metadata`` is
    merged into the stored metadata.
    """
    from rankbrnd.ops.publishing_queue import update_queue_item as _update
    from rankbrnd.ops.requests import UpdateQueueItemRequest

    return _item_response(_update(ctx, UpdateQueueItemRequest(item_id=item_id, **body.model_dump())))


@router.delete("/{item_id}", response_model=SuccessResponse[dict])
def delete_queue_item(
    ctx: OpContext,
    item_id: str = Path(...),
    hard: bool = Query(False, description="Remove the row instead of setting deleted_at"),
):
    from rankbrnd.ops.publishing_queue import delete_queue_item as _delete
    from rankbrnd.ops.requests import DeleteQueueItemRequest

    result = _delete(ctx, DeleteQueueItemRequest(item_id=item_id, hard=hard))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)


@router.post("/{item_id}/cancel", response_model=SuccessResponse[QueueItemSchema])
def cancel_queue_item(ctx: OpContext, item_id: str = Path(...)):
    """Cancel a pending or queued item (409 ``NOT_CANCELLABLE`` otherwise)."""
    from rankbrnd.ops.publishing_queue import cancel_queue_item as _cancel
    from rankbrnd.ops.requests import QueueItemRequest

    return _item_response(_cancel(ctx, QueueItemRequest(item_id=item_id)))


@router.post("/{item_id}/retry", response_model=SuccessResponse[QueueItemSchema])
def retry_queue_item(ctx: OpContext, item_id: str = Path(...)):
    """Send a failed or cancelled item back to pending with a fresh retry budget."""
    from rankbrnd.ops.publishing_queue import retry_queue_item as _retry
    from rankbrnd.ops.requests import QueueItemRequest

    return _item_response(_retry(ctx, QueueItemRequest(item_id=item_id)))


@router.post("/{item_id}/start", response_model=SuccessResponse[QueueItemSchema])
def mark_started(ctx: OpContext, item_id: str = Path(...)):
    from rankbrnd.ops.publishing_queue import mark_started as _start
    from rankbrnd.ops.requests import QueueItemRequest

    return _item_response(_start(ctx, QueueItemRequest(item_id=item_id)))


@router.post("/{item_id}/complete", response_model=SuccessResponse[QueueItemSchema])
def mark_completed(ctx: OpContext, body: MarkCompletedBody, item_id: str = Path(...)):
    from rankbrnd.ops.publishing_queue import mark_completed as _complete
    from rankbrnd.ops.requests import MarkCompletedRequest

    return _item_response(_complete(ctx, MarkCompletedRequest(item_id=item_id, **body.model_dump())))


@router.post("/{item_id}/fail", response_model=SuccessResponse[QueueItemSchema])
def mark_failed(ctx: OpContext, body: MarkFailedBody, item_id: str = Path(...)):
    """Record a publish failure.

    Retriable errors with budget left go back to pending with a backoff
    ``retry_after``; anything else ends in ``failed``.
    """
    from rankbrnd.ops.publishing_queue import mark_failed as _fail
    from rankbrnd.ops.requests import MarkFailedRequest

    return _item_response(_fail(ctx, MarkFailedRequest(item_id=item_id, **body.model_dump())))


@router.get("/{item_id}/retry-state", response_model=SuccessResponse[RetryStateSchema])
def get_retry_state(ctx: OpContext, item_id: str = Path(...)):
    from rankbrnd.ops.publishing_queue import get_retry_state as _state
    from rankbrnd.ops.requests import QueueItemRequest

    result = _state(ctx, QueueItemRequest(item_id=item_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=RetryStateSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)
