"""
Articles router.

Endpoints:
    GET  /articles         List an organization's articles
    POST /articles         Store an article (status ``draft``)
    GET  /articles/{id}    One article
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext
from rankbrnd.api.schemas.common import PagedResponse, SuccessResponse
from rankbrnd.api.schemas.domains import ArticleSchema, CreateArticleBody
from rankbrnd.api.utils import _dc, _handle_error, _page

router = APIRouter(prefix="/articles")


@router.get("", response_model=PagedResponse[ArticleSchema])
def list_articles(
    ctx: OpContext,
    organization_id: str = Query(""),
    product_id: str | None = Query(None),
    status: str | None = Query(None, description="draft, ready, scheduled, published, archived"),
    limit: int = Query(50),
    offset: int = Query(0),
):
    from rankbrnd.ops.articles import list_articles as _list
    from rankbrnd.ops.requests import ListArticlesRequest

    request = ListArticlesRequest(
        organization_id=organization_id,
        product_id=product_id,
        status=status,
        limit=limit,
        offset=offset,
    )
    result = _list(ctx, request)
    if not result.success:
        return _handle_error(result)
    return PagedResponse(
        data=[ArticleSchema(**_dc(a)) for a in (result.data or [])],
        page=_page(result),
        elapsed_ms=result.elapsed_ms,
    )


@router.post("", response_model=SuccessResponse[ArticleSchema], status_code=201)
def create_article(ctx: OpContext, body: CreateArticleBody):
    from rankbrnd.ops.articles import create_article as _create
    from rankbrnd.ops.requests import CreateArticleRequest

    result = _create(ctx, CreateArticleRequest(**body.model_dump()))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=ArticleSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)


@router.get("/{article_id}", response_model=SuccessResponse[ArticleSchema])
def get_article(ctx: OpContext, article_id: str = Path(...)):
    from rankbrnd.ops.articles import get_article as _get
    from rankbrnd.ops.requests import ArticleRequest

    result = _get(ctx, ArticleRequest(article_id=article_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=ArticleSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)
