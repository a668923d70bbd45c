"""
Rank tracking record operations.

Listing, manual entry and deletion of ``rank_tracking`` rows, plus
per-keyword history, summary stats and an on-demand check.
"""

from __future__ import annotations

from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import KeywordRepository, OrganizationRepository, RankTrackingRepository
from rankbrnd.core.settings import RankBrndSettings, get_settings
from rankbrnd.core.timestamps import generate_ulid, parse_date, to_iso8601, today_iso
from rankbrnd.ops.authz import require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import (
    CreateRankRecordRequest,
    ListRankRecordsRequest,
    RankHistoryRequest,
    RankRecordRequest,
    TrackKeywordNowRequest,
)
from rankbrnd.ops.responses import RankRecord
from rankbrnd.ops.result import OperationResult, PagedResult, start_timer
from rankbrnd.rank_tracking.client import DataForSEOClient
from rankbrnd.rank_tracking.service import DEFAULT_DOMAIN, RankTrackerService
from rankbrnd.rbac import PermissionCategory, Resource

logger = get_logger(__name__)

DEVICES = ("desktop", "mobile")


def _repo(ctx: OperationContext) -> RankTrackingRepository:
    return RankTrackingRepository(ctx.conn)


def _check_dates(*values: str | None) -> str | None:
    for value in values:
        try:
            parse_date(value)
        except ValueError:
            return f"Invalid date '{value}', expected YYYY-MM-DD"
    return None


def list_rank_records(ctx: OperationContext, request: ListRankRecordsRequest) -> PagedResult[RankRecord]:
    timer = start_timer()
    if not 1 <= request.limit <= 100 or request.offset < 0:
        return PagedResult.fail("VALIDATION_FAILED", "limit must be 1-100 and offset >= 0", elapsed_ms=timer.elapsed_ms)
    problem = _check_dates(request.date_from, request.date_to)
    if problem:
        return PagedResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
    denied = require_permission(ctx, request.organization_id, Resource.RANK_TRACKING, PermissionCategory.READ)
    if denied:
        return PagedResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        rows, total = _repo(ctx).list_records(
            organization_id=request.organization_id,
            product_id=request.product_id,
            keyword_id=request.keyword_id,
            device=request.device,
            location=request.location,
            date_from=request.date_from,
            date_to=request.date_to,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            [RankRecord.from_row(r) for r in rows],
            total=total,
            limit=request.limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return PagedResult.fail("INTERNAL", f"Failed to list rank records: {exc}", elapsed_ms=timer.elapsed_ms)


def create_rank_record(ctx: OperationContext, request: CreateRankRecordRequest) -> OperationResult[RankRecord]:
    """Store a position by hand; replaces the same keyword/device/location/day."""
    timer = start_timer()

    if not request.organization_id or not request.keyword_id:
        return OperationResult.fail(
            "VALIDATION_FAILED", "organization_id and keyword_id are required", elapsed_ms=timer.elapsed_ms
        )
    if request.position < 1:
        return OperationResult.fail("VALIDATION_FAILED", "position must be >= 1", elapsed_ms=timer.elapsed_ms)
    if request.device not in DEVICES:
        return OperationResult.fail(
            "VALIDATION_FAILED", f"device must be one of: {', '.join(DEVICES)}", elapsed_ms=timer.elapsed_ms
        )
    problem = _check_dates(request.date)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)

    denied = require_permission(ctx, request.organization_id, Resource.RANK_TRACKING, PermissionCategory.CREATE)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    now = ctx.now()
    stamp = to_iso8601(now)
    record = {
        "id": generate_ulid(),
        "organization_id": request.organization_id,
        "product_id": request.product_id,
        "keyword_id": request.keyword_id,
        "position": request.position,
        "url": request.url,
        "device": request.device,
        "location": request.location,
        "date": request.date or today_iso(now),
        "search_volume": request.search_volume,
        "metadata": dict(request.metadata),
        "created_at": stamp,
        "updated_at": stamp,
    }
    if ctx.dry_run:
        return OperationResult.ok(RankRecord.from_row(record), elapsed_ms=timer.elapsed_ms)

    try:
        repo = _repo(ctx)
        repo.upsert(record)
        ctx.conn.commit()
        stored = repo.history(
            request.keyword_id,
            device=request.device,
            location=request.location,
            date_from=record["date"],
            date_to=record["date"],
        )
        return OperationResult.ok(RankRecord.from_row(stored[0]), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create rank record: {exc}", elapsed_ms=timer.elapsed_ms)


def delete_rank_record(ctx: OperationContext, request: RankRecordRequest) -> OperationResult[dict]:
    timer = start_timer()
    try:
        repo = _repo(ctx)
        row = repo.get(request.record_id)
        if row is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Rank record '{request.record_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        denied = require_permission(ctx, row["organization_id"], Resource.RANK_TRACKING, PermissionCategory.DELETE)
        if denied:
            return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
        if not ctx.dry_run:
            repo.delete(request.record_id)
            ctx.conn.commit()
        return OperationResult.ok({"id": request.record_id, "deleted": not ctx.dry_run}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to delete rank record: {exc}", elapsed_ms=timer.elapsed_ms)


def _keyword_for(ctx: OperationContext, keyword_id: str, organization_id: str | None, category: PermissionCategory):
    keyword = KeywordRepository(ctx.conn).get(keyword_id) if keyword_id else None
    if keyword is None or (organization_id and keyword["organization_id"] != organization_id):
        return None, OperationResult.fail("NOT_FOUND", f"Keyword '{keyword_id}' not found")
    denied = require_permission(ctx, keyword["organization_id"], Resource.RANK_TRACKING, category)
    if denied:
        return None, OperationResult.from_error(denied)
    return keyword, None


def get_rank_history(ctx: OperationContext, request: RankHistoryRequest) -> OperationResult[list[RankRecord]]:
    timer = start_timer()
    problem = _check_dates(request.date_from, request.date_to)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
    try:
        _, failure = _keyword_for(ctx, request.keyword_id, request.organization_id, PermissionCategory.READ)
        if failure:
            return failure
        rows = RankTrackerService(ctx.conn).get_rank_history(
            request.keyword_id,
            device=request.device,
            location=request.location,
            date_from=request.date_from,
            date_to=request.date_to,
        )
        return OperationResult.ok([RankRecord.from_row(r) for r in rows], elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to load rank history: {exc}", elapsed_ms=timer.elapsed_ms)


def get_rank_stats(ctx: OperationContext, request: RankHistoryRequest) -> OperationResult[dict]:
    """Average, best, worst and current position plus movement over the range."""
    timer = start_timer()
    problem = _check_dates(request.date_from, request.date_to)
    if problem:
        return OperationResult.fail("VALIDATION_FAILED", problem, elapsed_ms=timer.elapsed_ms)
    try:
        _, failure = _keyword_for(ctx, request.keyword_id, request.organization_id, PermissionCategory.ANALYTICS)
        if failure:
            return failure
        stats = RankTrackerService(ctx.conn).get_rank_stats(
            request.keyword_id,
            device=request.device,
            location=request.location,
            date_from=request.date_from,
            date_to=request.date_to,
        )
        if stats is None:
            return OperationResult.fail(
                "NOT_FOUND", f"No rank data for keyword '{request.keyword_id}'", elapsed_ms=timer.elapsed_ms
            )
        return OperationResult.ok(stats, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to compute rank stats: {exc}", elapsed_ms=timer.elapsed_ms)


def track_keyword_now(
    ctx: OperationContext,
    request: TrackKeywordNowRequest,
    *,
    settings: RankBrndSettings | None = None,
    client: DataForSEOClient | None = None,
) -> OperationResult[dict]:
    """Check one keyword immediately instead of waiting for the worker."""
    timer = start_timer()
    try:
        keyword, failure = _keyword_for(ctx, request.keyword_id, request.organization_id, PermissionCategory.CREATE)
        if failure:
            return failure
        client = client or DataForSEOClient.from_settings(settings or get_settings())
        service = RankTrackerService(ctx.conn, client, clock=ctx.clock)
        if not service.is_configured():
            return OperationResult.fail(
                "UNAVAILABLE", "DataForSEO rank tracker not configured", elapsed_ms=timer.elapsed_ms
            )
        if ctx.dry_run:
            return OperationResult.ok(
                {"keyword_id": keyword["id"], "estimated_cost": service.estimate_cost(1)},
                elapsed_ms=timer.elapsed_ms,
            )
        outcome = service.track_single_keyword(
            keyword["keyword"],
            OrganizationRepository(ctx.conn).get_domain(keyword["organization_id"]) or DEFAULT_DOMAIN,
            keyword["organization_id"],
            keyword_id=keyword["id"],
            product_id=keyword.get("product_id"),
            location=request.location,
            device=request.device,
        )
        if not outcome["success"]:
            return OperationResult.fail(
                "UNAVAILABLE", outcome.get("error") or "Rank check failed", retryable=True, elapsed_ms=timer.elapsed_ms
            )
        return OperationResult.ok({"keyword_id": keyword["id"], **outcome}, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to track keyword: {exc}", elapsed_ms=timer.elapsed_ms)
