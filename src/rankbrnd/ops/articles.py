"""Article operations.

Articles are the content units the publishing queue delivers to a CMS.
Generation is out of scope here; these operations store and read what
an upstream generator produced.
"""

from __future__ import annotations

from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import ArticleRepository, KeywordRepository, OrganizationRepository
from rankbrnd.core.timestamps import generate_ulid, to_iso8601
from rankbrnd.ops.authz import require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import ArticleRequest, CreateArticleRequest, ListArticlesRequest
from rankbrnd.ops.responses import ArticleSummary
from rankbrnd.ops.result import OperationResult, PagedResult, start_timer
from rankbrnd.rbac import PermissionCategory, Resource

logger = get_logger(__name__)

ARTICLE_STATUSES = ("draft", "ready", "scheduled", "published", "archived")


def create_article(ctx: OperationContext, request: CreateArticleRequest) -> OperationResult[ArticleSummary]:
    timer = start_timer()

    if not request.title.strip():
        return OperationResult.fail("VALIDATION_FAILED", "title is required", elapsed_ms=timer.elapsed_ms)
    denied = require_permission(ctx, request.organization_id, Resource.ARTICLES, PermissionCategory.CREATE)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    now = to_iso8601(ctx.now())
    row = {
        "id": generate_ulid(),
        "organization_id": request.organization_id,
        "product_id": request.product_id,
        "keyword_id": request.keyword_id,
        "title": request.title.strip(),
        "content": request.content,
        "content_html": request.content_html,
        "tags": list(request.tags),
        "status": "draft",
        "canonical_url": request.canonical_url,
        "created_at": now,
        "updated_at": now,
    }
    if ctx.dry_run:
        return OperationResult.ok(ArticleSummary.from_row(row), elapsed_ms=timer.elapsed_ms)

    try:
        if OrganizationRepository(ctx.conn).get(request.organization_id) is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Organization '{request.organization_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        if request.keyword_id:
            keyword = KeywordRepository(ctx.conn).get(request.keyword_id)
            if keyword is None or keyword["organization_id"] != request.organization_id:
                return OperationResult.fail(
                    "NOT_FOUND", f"Keyword '{request.keyword_id}' not found", elapsed_ms=timer.elapsed_ms
                )
        repo = ArticleRepository(ctx.conn)
        repo.create(row)
        ctx.conn.commit()
        logger.info("article_created", article_id=row["id"], organization_id=request.organization_id)
        return OperationResult.ok(ArticleSummary.from_row(repo.get(row["id"])), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create article: {exc}", elapsed_ms=timer.elapsed_ms)


def get_article(ctx: OperationContext, request: ArticleRequest) -> OperationResult[ArticleSummary]:
    timer = start_timer()
    try:
        row = ArticleRepository(ctx.conn).get(request.article_id)
        if row is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Article '{request.article_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        denied = require_permission(ctx, row["organization_id"], Resource.ARTICLES, PermissionCategory.READ)
        if denied:
            return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
        return OperationResult.ok(ArticleSummary.from_row(row), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to get article: {exc}", elapsed_ms=timer.elapsed_ms)


def list_articles(ctx: OperationContext, request: ListArticlesRequest) -> PagedResult[ArticleSummary]:
    timer = start_timer()
    if not 1 <= request.limit <= 100 or request.offset < 0:
        return PagedResult.fail("VALIDATION_FAILED", "limit must be 1-100 and offset >= 0", elapsed_ms=timer.elapsed_ms)
    if request.status is not None and request.status not in ARTICLE_STATUSES:
        return PagedResult.fail(
            "VALIDATION_FAILED",
            f"status must be one of: {', '.join(ARTICLE_STATUSES)}",
            elapsed_ms=timer.elapsed_ms,
        )
    denied = require_permission(ctx, request.organization_id, Resource.ARTICLES, PermissionCategory.READ)
    if denied:
        return PagedResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        rows, total = ArticleRepository(ctx.conn).list_articles(
            organization_id=request.organization_id or None,
            product_id=request.product_id,
            status=request.status,
            limit=request.limit,
            offset=request.offset,
        )
        return PagedResult.from_items(
            [ArticleSummary.from_row(r) for r in rows],
            total=total,
            limit=request.limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return PagedResult.fail("INTERNAL", f"Failed to list articles: {exc}", elapsed_ms=timer.elapsed_ms)
