"""
Keywords router.

Endpoints:
    GET   /keywords          List an organization's keywords (search, active filter, paging)
    POST  /keywords          Add a keyword
    PATCH /keywords/{id}     Pause or resume tracking
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext
from rankbrnd.api.schemas.common import PagedResponse, SuccessResponse
from rankbrnd.api.schemas.domains import CreateKeywordBody, KeywordSchema, SetKeywordActiveBody
from rankbrnd.api.utils import _dc, _handle_error, _page

router = APIRouter(prefix="/keywords")


@router.get("", response_model=PagedResponse[KeywordSchema])
def list_keywords(
    ctx: OpContext,
    organization_id: str = Query(""),
    product_id: str | None = Query(None),
    active: bool | None = Query(None),
    search: str | None = Query(None, description="Case-insensitive substring"),
    limit: int = Query(50),
    offset: int = Query(0),
):
    from rankbrnd.ops.keywords import list_keywords as _list
    from rankbrnd.ops.requests import ListKeywordsRequest

    request = ListKeywordsRequest(
        organization_id=organization_id,
        product_id=product_id,
        active=active,
        search=search,
        limit=limit,
        offset=offset,
    )
    result = _list(ctx, request)
    if not result.success:
        return _handle_error(result)
    return PagedResponse(
        data=[KeywordSchema(**_dc(k)) for k in (result.data or [])],
        page=_page(result),
        elapsed_ms=result.elapsed_ms,
    )


@router.post("", response_model=SuccessResponse[KeywordSchema], status_code=201)
def create_keyword(ctx: OpContext, body: CreateKeywordBody):
    from rankbrnd.ops.keywords import create_keyword as _create
    from rankbrnd.ops.requests import CreateKeywordRequest

    result = _create(ctx, CreateKeywordRequest(**body.model_dump()))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=KeywordSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)


@router.patch("/{keyword_id}", response_model=SuccessResponse[KeywordSchema])
def set_keyword_active(ctx: OpContext, body: SetKeywordActiveBody, keyword_id: str = Path(...)):
    from rankbrnd.ops.keywords import set_keyword_active as _set
    from rankbrnd.ops.requests import SetKeywordActiveRequest

    result = _set(ctx, SetKeywordActiveRequest(keyword_id=keyword_id, active=body.active))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=KeywordSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)
