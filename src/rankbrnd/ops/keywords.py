"""Keyword operations."""

from __future__ import annotations

from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import KeywordRepository, OrganizationRepository
from rankbrnd.core.timestamps import generate_ulid, to_iso8601
from rankbrnd.ops.authz import require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import CreateKeywordRequest, ListKeywordsRequest, SetKeywordActiveRequest
from rankbrnd.ops.responses import KeywordSummary
from rankbrnd.ops.result import OperationResult, PagedResult, start_timer
from rankbrnd.rbac import PermissionCategory, Resource

logger = get_logger(__name__)


def create_keyword(ctx: OperationContext, request: CreateKeywordRequest) -> OperationResult[KeywordSummary]:
    timer = start_timer()

    keyword = " ".join(request.keyword.split())
    if not keyword:
        return OperationResult.fail("VALIDATION_FAILED", "keyword is required", elapsed_ms=timer.elapsed_ms)
    if request.difficulty is not None and not 0 <= request.difficulty <= 100:
        return OperationResult.fail("VALIDATION_FAILED", "difficulty must be 0-100", elapsed_ms=timer.elapsed_ms)
    if request.search_volume is not None and request.search_volume < 0:
        return OperationResult.fail("VALIDATION_FAILED", "search_volume must be >= 0", elapsed_ms=timer.elapsed_ms)
    denied = require_permission(ctx, request.organization_id, Resource.KEYWORDS, PermissionCategory.CREATE)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    now = to_iso8601(ctx.now())
    row = {
        "id": generate_ulid(),
        "organization_id": request.organization_id,
        "product_id": request.product_id,
        "keyword": keyword,
        "search_volume": request.search_volume,
        "difficulty": request.difficulty,
        "intent": request.intent,
        "active": 1,
        "created_at": now,
        "updated_at": now,
    }
    if ctx.dry_run:
        return OperationResult.ok(KeywordSummary.from_row(row), elapsed_ms=timer.elapsed_ms)

    try:
        if OrganizationRepository(ctx.conn).get(request.organization_id) is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Organization '{request.organization_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        repo = KeywordRepository(ctx.conn)
        repo.create(row)
        ctx.conn.commit()
        logger.info("keyword_created", keyword_id=row["id"], organization_id=request.organization_id)
        return OperationResult.ok(KeywordSummary.from_row(repo.get(row["id"])), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create keyword: {exc}", elapsed_ms=timer.elapsed_ms)


def list_keywords(ctx: OperationContext, request: ListKeywordsRequest) -> PagedResult[KeywordSummary]:
    timer = start_timer()
    if not 1 <= request.limit <= 100 or request.offset < 0:
        return PagedResult.fail("VALIDATION_FAILED", "limit must be 1-100 and offset >= 0", elapsed_ms=timer.elapsed_ms)
    denied = require_permission(ctx, request.organization_id, Resource.KEYWORDS, PermissionCategory.READ)
    if denied:
        return PagedResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        rows, total = KeywordRepository(ctx.conn).list_keywords(
            organization_id=request.organization_id or None,
            product_id=request.product_id,
            active=request.active,
            search=request.search,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            [KeywordSummary.from_row(r) for r in rows],
            total=total,
            limit=request.limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return PagedResult.fail("INTERNAL", f"Failed to list keywords: {exc}", elapsed_ms=timer.elapsed_ms)


def set_keyword_active(ctx: OperationContext, request: SetKeywordActiveRequest) -> OperationResult[KeywordSummary]:
    """Pause or resume rank tracking for a keyword."""
    timer = start_timer()
    try:
        repo = KeywordRepository(ctx.conn)
        row = repo.get(request.keyword_id)
        if row is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Keyword '{request.keyword_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        denied = require_permission(ctx, row["organization_id"], Resource.KEYWORDS, PermissionCategory.UPDATE)
        if denied:
            return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

        changes = {"active": int(request.active), "updated_at": to_iso8601(ctx.now())}
        if ctx.dry_run:
            return OperationResult.ok(KeywordSummary.from_row({**row, **changes}), elapsed_ms=timer.elapsed_ms)
        repo.update(request.keyword_id, changes)
        ctx.conn.commit()
        return OperationResult.ok(KeywordSummary.from_row(repo.get(request.keyword_id)), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to update keyword: {exc}", elapsed_ms=timer.elapsed_ms)
