"""
Publishing queue operations.

CRUD and lifecycle transitions for ``publishing_queue`` rows. Status
changes go through :class:`~rankbrnd.publishing.queue.PublishingQueue`,
whose guarded updates keep concurrent workers from double-claiming.
"""

from __future__ import annotations

from typing import Any

from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import ArticleRepository, PublishingQueueRepository
from rankbrnd.core.repositories.publishing_queue import SORTABLE_COLUMNS
from rankbrnd.core.timestamps import generate_ulid, to_iso8601
from rankbrnd.ops.authz import require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import (
    BulkQueueRequest,
    CreateQueueItemRequest,
    DeleteQueueItemRequest,
    ListQueueItemsRequest,
    MarkCompletedRequest,
    MarkFailedRequest,
    QueueItemRequest,
    QueueStatsRequest,
    ReadyForRetryRequest,
    UpdateQueueItemRequest,
)
from rankbrnd.ops.responses import BulkQueueError, BulkQueueResult, QueueItem, QueueStats
from rankbrnd.ops.result import OperationResult, PagedResult, start_timer
from rankbrnd.publishing.queue import (
    CANCELLABLE_STATUSES,
    EDITABLE_STATUSES,
    IN_FLIGHT_STATUSES,
    PLATFORMS,
    RETRYABLE_STATUSES,
    STARTABLE_STATUSES,
    STATUSES,
    PublishingQueue,
)
from rankbrnd.publishing.retry import PublishingErrorType, RetryState, retry_state_for
from rankbrnd.publishing.timezone import to_utc
from rankbrnd.rbac import PermissionCategory, Resource

logger = get_logger(__name__)

MAX_BULK_ARTICLES = 50


def _repo(ctx: OperationContext) -> PublishingQueueRepository:
    return PublishingQueueRepository(ctx.conn)


def _queue(ctx: OperationContext) -> PublishingQueue:
    return PublishingQueue(ctx.conn, clock=ctx.clock)


def _normalize_timestamp(value: str | None) -> str | None:
    """Parse an ISO timestamp and re-render it in storage form (UTC, ms)."""
    if value is None:
        return None
    return to_iso8601(to_utc(value, "UTC"))


def _validate_item_fields(
    *,
    platform: str | None = None,
    priority: int | None = None,
    max_retries: int | None = None,
) -> str | None:
    if platform is not None and platform not in PLATFORMS:
        return f"Unsupported platform '{platform}'. Expected one of: {', '.join(PLATFORMS)}"
    if priority is not None and not 0 <= priority <= 100:
        return "priority must be between 0 and 100"
    if max_retries is not None and max_retries < 0:
        return "max_retries must be >= 0"
    return None


def _authorize_item(
    ctx: OperationContext,
    request_item_id: str,
    category: PermissionCategory,
    timer: Any,
) -> tuple[dict[str, Any] | None, OperationResult | None]:
    """Load a live item and check the caller's permission on it."""
    if not request_item_id:
        return None, OperationResult.fail("VALIDATION_FAILED", "item_id is required", elapsed_ms=timer.elapsed_ms)
    row = _repo(ctx).get(request_item_id)
    if row is None:
        return None, OperationResult.fail(
            "NOT_FOUND", f"Queue item '{request_item_id}' not found", elapsed_ms=timer.elapsed_ms
        )
    denied = require_permission(ctx, row["organization_id"], Resource.PUBLISHING, category)
    if denied:
        return None, OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
    return row, None


def _new_item(ctx: OperationContext, request: CreateQueueItemRequest, scheduled_for: str | None) -> dict[str, Any]:
    now = to_iso8601(ctx.now())
    return {
        "id": generate_ulid(),
        "organization_id": request.organization_id,
        "product_id": request.product_id,
        "article_id": request.article_id,
        "integration_id": request.integration_id,
        "platform": request.platform,
        "status": "pending",
        "priority": request.priority,
        "retry_count": 0,
        "max_retries": request.max_retries,
        "scheduled_for": scheduled_for,
        "published_data": {},
        "metadata": dict(request.metadata),
        "created_at": now,
        "updated_at": now,
    }


# ------------------------------------------------------------------ #
# CRUD
# ------------------------------------------------------------------ #


def create_queue_item(ctx: OperationContext, request: CreateQueueItemRequest) -> OperationResult[QueueItem]:
    """Add an article to the publishing queue in ``pending`` status."""
    timer = start_timer()

    if not request.organization_id:
        return OperationResult.fail("VALIDATION_FAILED", "organization_id is required", elapsed_ms=timer.elapsed_ms)
    problem = _validate_item_fields(
        platform=request.platform, priority=request.priority, max_retries=request.max_retries
    )
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
    try:
        scheduled_for = _normalize_timestamp(request.scheduled_for)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)

    denied = require_permission(ctx, request.organization_id, Resource.PUBLISHING, PermissionCategory.CREATE)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    row = _new_item(ctx, request, scheduled_for)
    if ctx.dry_run:
        return OperationResult.ok(QueueItem.from_row(row), elapsed_ms=timer.elapsed_ms)

    try:
        repo = _repo(ctx)
        repo.create(row)
        ctx.conn.commit()
        logger.info("queue_item_created", item_id=row["id"], platform=row["platform"])
        return OperationResult.ok(QueueItem.from_row(repo.get(row["id"])), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create queue item: {exc}", elapsed_ms=timer.elapsed_ms)


def get_queue_item(ctx: OperationContext, request: QueueItemRequest) -> OperationResult[QueueItem]:
    timer = start_timer()
    try:
        row, failure = _authorize_item(ctx, request.item_id, PermissionCategory.READ, timer)
        if failure:
            return failure
        return OperationResult.ok(QueueItem.from_row(row), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to get queue item: {exc}", elapsed_ms=timer.elapsed_ms)


def list_queue_items(ctx: OperationContext, request: ListQueueItemsRequest) -> PagedResult[QueueItem]:
    """List live queue items with filters, search and sorting."""
    timer = start_timer()

    if request.sort_by not in SORTABLE_COLUMNS:
        return PagedResult.fail(
            "VALIDATION_FAILED",
            f"sort_by must be one of: {', '.join(sorted(SORTABLE_COLUMNS))}",
            elapsed_ms=timer.elapsed_ms,
        )
    if request.sort_order.lower() not in ("asc", "desc"):
        return PagedResult.fail("VALIDATION_FAILED", "sort_order must be 'asc' or 'desc'", elapsed_ms=timer.elapsed_ms)
    if not 1 <= request.limit <= 100 or request.offset < 0:
        return PagedResult.fail(
            "VALIDATION_FAILED", "limit must be 1-100 and offset >= 0", elapsed_ms=timer.elapsed_ms
        )
    if request.status is not None and request.status not in STATUSES:
        return PagedResult.fail("VALIDATION_FAILED", f"Unknown status '{request.status}'", elapsed_ms=timer.elapsed_ms)

    denied = require_permission(ctx, request.organization_id, Resource.PUBLISHING, PermissionCategory.READ)
    if denied:
        return PagedResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        rows, total = _repo(ctx).list_items(
            organization_id=request.organization_id,
            product_id=request.product_id,
            article_id=request.article_id,
            status=request.status,
            platform=request.platform,
            search=request.search,
            sort_by=request.sort_by,
            sort_order=request.sort_order,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            [QueueItem.from_row(r) for r in rows],
            total=total,
            limit=request.limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return PagedResult.fail("INTERNAL", f"Failed to list queue items: {exc}", elapsed_ms=timer.elapsed_ms)


def update_queue_item(ctx: OperationContext, request: UpdateQueueItemRequest) -> OperationResult[QueueItem]:
    """Edit a queue item that has not started publishing."""
    timer = start_timer()

    problem = _validate_item_fields(priority=request.priority, max_retries=request.max_retries)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
    try:
        scheduled_for = _normalize_timestamp(request.scheduled_for)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)

    try:
        row, failure = _authorize_item(ctx, request.item_id, PermissionCategory.UPDATE, timer)
        if failure:
            return failure
        if row["status"] not in EDITABLE_STATUSES:
            return OperationResult.fail(
                "CONFLICT",
                f"Cannot update item in status '{row['status']}'",
                details={"status": row["status"]},
                elapsed_ms=timer.elapsed_ms,
            )

        changes: dict[str, Any] = {}
        if request.priority is not None:
            changes["priority"] = request.priority
        if scheduled_for is not None:
            changes["scheduled_for"] = scheduled_for
        if request.max_retries is not None:
            changes["max_retries"] = request.max_retries
        if request.metadata is not None:
            changes["metadata"] = {**(row.get("metadata") or {}), **request.metadata}
        if request.integration_id is not None:
            changes["integration_id"] = request.integration_id
        if not changes:
            return OperationResult.fail("VALIDATION_FAILED", "No fields to update", elapsed_ms=timer.elapsed_ms)

        if ctx.dry_run:
            return OperationResult.ok(QueueItem.from_row({**row, **changes}), elapsed_ms=timer.elapsed_ms)

        changes["updated_at"] = to_iso8601(ctx.now())
        repo = _repo(ctx)
        if not repo.transition(request.item_id, changes, from_statuses=EDITABLE_STATUSES):
            return OperationResult.fail("CONFLICT", "Queue item changed concurrently", elapsed_ms=timer.elapsed_ms)
        ctx.conn.commit()
        return OperationResult.ok(QueueItem.from_row(repo.get(request.item_id)), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to update queue item: {exc}", elapsed_ms=timer.elapsed_ms)


def delete_queue_item(ctx: OperationContext, request: DeleteQueueItemRequest) -> OperationResult[dict]:
    """Soft-delete (default) or permanently remove a queue item."""
    timer = start_timer()
    try:
        row, failure = _authorize_item(ctx, request.item_id, PermissionCategory.DELETE, timer)
        if failure:
            return failure
        if ctx.dry_run:
            return OperationResult.ok({"id": request.item_id, "deleted": False, "hard": request.hard}, elapsed_ms=timer.elapsed_ms)
        repo = _repo(ctx)
        if request.hard:
            repo.hard_delete(request.item_id)
        else:
            repo.soft_delete(request.item_id, to_iso8601(ctx.now()))
        ctx.conn.commit()
        logger.info("queue_item_deleted", item_id=request.item_id, hard=request.hard)
        return OperationResult.ok({"id": request.item_id, "deleted": True, "hard": request.hard}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to delete queue item: {exc}", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Lifecycle
# ------------------------------------------------------------------ #


def _transition(
    ctx: OperationContext,
    item_id: str,
    *,
    category: PermissionCategory,
    allowed: tuple[str, ...],
    refusal_code: str,
    verb: str,
    apply: Any,
) -> OperationResult[QueueItem]:
    timer = start_timer()
    try:
        row, failure = _authorize_item(ctx, item_id, category, timer)
        if failure:
            return failure
        if row["status"] not in allowed:
            return OperationResult.fail(
                refusal_code,
                f"Cannot {verb} item in status '{row['status']}' (allowed: {', '.join(allowed)})",
                details={"status": row["status"]},
                elapsed_ms=timer.elapsed_ms,
            )
        if ctx.dry_run:
            return OperationResult.ok(QueueItem.from_row(row), elapsed_ms=timer.elapsed_ms)
        updated = apply(_queue(ctx))
        if updated is None:
            return OperationResult.fail("CONFLICT", "Queue item changed concurrently", elapsed_ms=timer.elapsed_ms)
        return OperationResult.ok(QueueItem.from_row(updated), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc), item_id=item_id)
        return OperationResult.fail("INTERNAL", f"Failed to {verb} queue item: {exc}", elapsed_ms=timer.elapsed_ms)


def cancel_queue_item(ctx: OperationContext, request: QueueItemRequest) -> OperationResult[QueueItem]:
    """Cancel a pending or queued item."""
    return _transition(
        ctx,
        request.item_id,
        category=PermissionCategory.PUBLISH,
        allowed=CANCELLABLE_STATUSES,
        refusal_code="NOT_CANCELLABLE",
        verb="cancel",
        apply=lambda q: q.cancel(request.item_id),
    )


def retry_queue_item(ctx: OperationContext, request: QueueItemRequest) -> OperationResult[QueueItem]:
    """Send a failed or cancelled item back to ``pending`` with a fresh retry budget."""
    return _transition(
        ctx,
        request.item_id,
        category=PermissionCategory.PUBLISH,
        allowed=RETRYABLE_STATUSES,
        refusal_code="NOT_RETRYABLE",
        verb="retry",
        apply=lambda q: q.retry(request.item_id),
    )


def mark_started(ctx: OperationContext, request: QueueItemRequest) -> OperationResult[QueueItem]:
    return _transition(
        ctx,
        request.item_id,
        category=PermissionCategory.PUBLISH,
        allowed=STARTABLE_STATUSES,
        refusal_code="CONFLICT",
        verb="start",
        apply=lambda q: q.mark_started(request.item_id),
    )


def mark_completed(ctx: OperationContext, request: MarkCompletedRequest) -> OperationResult[QueueItem]:
    return _transition(
        ctx,
        request.item_id,
        category=PermissionCategory.PUBLISH,
        allowed=IN_FLIGHT_STATUSES,
        refusal_code="CONFLICT",
        verb="complete",
        apply=lambda q: q.mark_completed(
            request.item_id,
            published_url=request.published_url,
            published_post_id=request.published_post_id,
            published_data=request.published_data,
        ),
    )


def mark_failed(ctx: OperationContext, request: MarkFailedRequest) -> OperationResult[QueueItem]:
    """Record a failed attempt; retriable errors are rescheduled with backoff."""
    if not request.error_message:
        return OperationResult.fail("VALIDATION_FAILED", "error_message is required")
    if request.error_type is not None and request.error_type not in {t.value for t in PublishingErrorType}:
        return OperationResult.fail("VALIDATION_FAILED", f"Unknown error_type '{request.error_type}'")
    return _transition(
        ctx,
        request.item_id,
        category=PermissionCategory.PUBLISH,
        allowed=IN_FLIGHT_STATUSES,
        refusal_code="CONFLICT",
        verb="fail",
        apply=lambda q: q.mark_failed(request.item_id, request.error_message, request.error_type),
    )


# ------------------------------------------------------------------ #
# Bulk, stats, retry state
# ------------------------------------------------------------------ #


def bulk_queue_articles(ctx: OperationContext, request: BulkQueueRequest) -> OperationResult[BulkQueueResult]:
    """Queue several articles at once; per-article problems are reported, not fatal."""
    timer = start_timer()

    if not request.organization_id:
        return OperationResult.fail("VALIDATION_FAILED", "organization_id is required", elapsed_ms=timer.elapsed_ms)
    if not 1 <= len(request.article_ids) <= MAX_BULK_ARTICLES:
        return OperationResult.fail(
            "VALIDATION_FAILED",
            f"article_ids must contain 1-{MAX_BULK_ARTICLES} ids",
            elapsed_ms=timer.elapsed_ms,
        )
    problem = _validate_item_fields(platform=request.platform, priority=request.priority)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
    try:
        scheduled_for = _normalize_timestamp(request.scheduled_for)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)

    denied = require_permission(ctx, request.organization_id, Resource.PUBLISHING, PermissionCategory.CREATE)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        repo = _repo(ctx)
        articles = ArticleRepository(ctx.conn)
        result = BulkQueueResult()
        for article_id in dict.fromkeys(request.article_ids):
            article = articles.get(article_id)
            if article is None or article["organization_id"] != request.organization_id:
                result.errors.append(BulkQueueError(article_id=article_id, error="Article not found"))
                continue
            row = _new_item(
                ctx,
                CreateQueueItemRequest(
                    organization_id=request.organization_id,
                    platform=request.platform,
                    article_id=article_id,
                    product_id=request.product_id,
                    integration_id=request.integration_id,
                    priority=request.priority,
                ),
                scheduled_for,
            )
            if not ctx.dry_run:
                repo.create(row)
            result.created.append(QueueItem.from_row(row))
        if not ctx.dry_run:
            ctx.conn.commit()
        logger.info("queue_bulk_created", created=len(result.created), errors=len(result.errors))
        return OperationResult.ok(result, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to queue articles: {exc}", elapsed_ms=timer.elapsed_ms)


def get_queue_stats(ctx: OperationContext, request: QueueStatsRequest) -> OperationResult[QueueStats]:
    timer = start_timer()
    denied = require_permission(ctx, request.organization_id, Resource.PUBLISHING, PermissionCategory.READ)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
    try:
        counts = _repo(ctx).count_by_status(request.organization_id)
        stats = QueueStats(
            **{status: counts.get(status, 0) for status in STATUSES},
            total=sum(counts.values()),
        )
        return OperationResult.ok(stats, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to get queue stats: {exc}", elapsed_ms=timer.elapsed_ms)


def get_retry_state(ctx: OperationContext, request: QueueItemRequest) -> OperationResult[RetryState]:
    timer = start_timer()
    try:
        row, failure = _authorize_item(ctx, request.item_id, PermissionCategory.READ, timer)
        if failure:
            return failure
        return OperationResult.ok(retry_state_for(row, ctx.now()), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to get retry state: {exc}", elapsed_ms=timer.elapsed_ms)


def get_items_ready_for_retry(ctx: OperationContext, request: ReadyForRetryRequest) -> OperationResult[list[QueueItem]]:
    """Pending items whose backoff has elapsed (system callers only)."""
    timer = start_timer()
    if ctx.user is not None:
        return OperationResult.fail(
            "FORBIDDEN", "Retry selection is limited to system callers", elapsed_ms=timer.elapsed_ms
        )
    try:
        rows = _repo(ctx).ready_for_retry(to_iso8601(ctx.now()), platform=request.platform, limit=request.limit)
        return OperationResult.ok([QueueItem.from_row(r) for r in rows], elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to select retry items: {exc}", elapsed_ms=timer.elapsed_ms)
