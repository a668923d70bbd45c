"""
Scheduling operations.

Users pick a wall-clock time in their own timezone; it is stored as UTC in
``scheduled_for`` with the original input kept in the item's metadata.
"""

from __future__ import annotations

from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import ArticleRepository
from rankbrnd.core.timestamps import to_iso8601
from rankbrnd.ops.authz import require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.publishing_queue import _authorize_item, _new_item, _repo, _validate_item_fields
from rankbrnd.ops.requests import (
    CreateQueueItemRequest,
    ListScheduledRequest,
    RescheduleRequest,
    ScheduleArticleRequest,
)
from rankbrnd.ops.responses import QueueItem, ScheduledItem
from rankbrnd.ops.result import OperationResult, start_timer
from rankbrnd.publishing.timezone import format_in_timezone, format_relative_time, is_valid_timezone, to_utc
from rankbrnd.rbac import PermissionCategory, Resource

logger = get_logger(__name__)

RESCHEDULABLE_STATUSES = ("pending", "queued", "failed", "cancelled")


def _future_utc(ctx: OperationContext, scheduled_for: str, timezone: str) -> tuple[str | None, str | None]:
    """Return ``(utc_iso, error)`` for a user-entered time."""
    if not scheduled_for:
        return None, "scheduled_for is required"
    if not is_valid_timezone(timezone):
        return None, f"Invalid timezone: {timezone}"
    try:
        when = to_utc(scheduled_for, timezone)
    except ValueError as exc:
        return None, str(exc)
    if when <= ctx.now():
        return None, "Scheduled time must be in the future"
    return to_iso8601(when), None


def schedule_article(ctx: OperationContext, request: ScheduleArticleRequest) -> OperationResult[QueueItem]:
    """Queue an article for publishing at a future time."""
    timer = start_timer()

    if not request.organization_id or not request.article_id:
        return OperationResult.fail(
            "VALIDATION_FAILED", "organization_id and article_id are required", elapsed_ms=timer.elapsed_ms
        )
    problem = _validate_item_fields(platform=request.platform, priority=request.priority)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
    scheduled_for, problem = _future_utc(ctx, request.scheduled_for, request.timezone)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)

    denied = require_permission(ctx, request.organization_id, Resource.SCHEDULE, PermissionCategory.CREATE)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        article = ArticleRepository(ctx.conn).get(request.article_id)
        if article is None or article["organization_id"] != request.organization_id:
            return OperationResult.fail(
                "NOT_FOUND", f"Article '{request.article_id}' not found", elapsed_ms=timer.elapsed_ms
            )

        row = _new_item(
            ctx,
            CreateQueueItemRequest(
                organization_id=request.organization_id,
                platform=request.platform,
                article_id=request.article_id,
                product_id=request.product_id,
                integration_id=request.integration_id,
                priority=request.priority,
                metadata={
                    "timezone": request.timezone,
                    "scheduled_for_local": request.scheduled_for,
                    "scheduled_by": ctx.user,
                },
            ),
            scheduled_for,
        )
        if ctx.dry_run:
            return OperationResult.ok(QueueItem.from_row(row), elapsed_ms=timer.elapsed_ms)

        repo = _repo(ctx)
        repo.create(row)
        ctx.conn.commit()
        logger.info("article_scheduled", item_id=row["id"], scheduled_for=scheduled_for, timezone=request.timezone)
        return OperationResult.ok(QueueItem.from_row(repo.get(row["id"])), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to schedule article: {exc}", elapsed_ms=timer.elapsed_ms)


def reschedule_queue_item(ctx: OperationContext, request: RescheduleRequest) -> OperationResult[QueueItem]:
    """Move an item to a new future time and put it back in ``pending``."""
    timer = start_timer()

    scheduled_for, problem = _future_utc(ctx, request.scheduled_for, request.timezone)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)

    try:
        row, failure = _authorize_item(ctx, request.item_id, PermissionCategory.READ, timer)
        if failure:
            return failure
        denied = require_permission(ctx, row["organization_id"], Resource.SCHEDULE, PermissionCategory.UPDATE)
        if denied:
            return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
        if row["status"] not in RESCHEDULABLE_STATUSES:
            return OperationResult.fail(
                "CONFLICT",
                f"Cannot reschedule item in status '{row['status']}'",
                details={"status": row["status"]},
                elapsed_ms=timer.elapsed_ms,
            )

        now = to_iso8601(ctx.now())
        changes = {
            "status": "pending",
            "scheduled_for": scheduled_for,
            # A new time starts a new attempt; the retry budget resets as on manual retry.
            "retry_count": 0,
            "retry_after": None,
            "last_error": None,
            "error_type": None,
            "failed_at": None,
            "metadata": {
                **(row.get("metadata") or {}),
                "timezone": request.timezone,
                "scheduled_for_local": request.scheduled_for,
                "rescheduled_at": now,
                "rescheduled_by": ctx.user,
            },
            "updated_at": now,
        }
        if ctx.dry_run:
            return OperationResult.ok(QueueItem.from_row({**row, **changes}), elapsed_ms=timer.elapsed_ms)

        repo = _repo(ctx)
        if not repo.transition(request.item_id, changes, from_statuses=RESCHEDULABLE_STATUSES):
            return OperationResult.fail("CONFLICT", "Queue item changed concurrently", elapsed_ms=timer.elapsed_ms)
        ctx.conn.commit()
        logger.info("queue_item_rescheduled", item_id=request.item_id, scheduled_for=scheduled_for)
        return OperationResult.ok(QueueItem.from_row(repo.get(request.item_id)), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to reschedule: {exc}", elapsed_ms=timer.elapsed_ms)


def list_scheduled(ctx: OperationContext, request: ListScheduledRequest) -> OperationResult[list[ScheduledItem]]:
    """Upcoming scheduled items, soonest first, shown in *timezone*."""
    timer = start_timer()

    if not is_valid_timezone(request.timezone):
        return OperationResult.fail(
            "VALIDATION_FAILED", f"Invalid timezone: {request.timezone}", elapsed_ms=timer.elapsed_ms
        )
    denied = require_permission(ctx, request.organization_id, Resource.SCHEDULE, PermissionCategory.READ)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        now = ctx.now()
        rows = _repo(ctx).scheduled_pending(
            to_iso8601(now), organization_id=request.organization_id, limit=request.limit
        )
        items = [
            ScheduledItem(
                item=QueueItem.from_row(row),
                timezone=request.timezone,
                scheduled_for_local=format_in_timezone(row["scheduled_for"], request.timezone),
                relative_time=format_relative_time(to_utc(row["scheduled_for"]), now),
            )
            for row in rows
        ]
        return OperationResult.ok(items, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to list scheduled items: {exc}", elapsed_ms=timer.elapsed_ms)
