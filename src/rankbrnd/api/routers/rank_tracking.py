"""
Rank tracking router: stored positions, history and on-demand checks.

Endpoints:
    GET    /rank-tracking                         List records (filters, date range, paging)
    POST   /rank-tracking                         Add or replace a manual record
    DELETE /rank-tracking/{id}                    Delete a record
    GET    /rank-tracking/keywords/{id}/history   Records for one keyword, oldest first
    GET    /rank-tracking/keywords/{id}/stats     Current/best/worst/average position
    POST   /rank-tracking/track                   Check one keyword now via DataForSEO
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext, WorkerSettings
from rankbrnd.api.schemas.common import PagedResponse, SuccessResponse
from rankbrnd.api.schemas.domains import CreateRankRecordBody, RankRecordSchema, TrackKeywordBody
from rankbrnd.api.utils import _dc, _handle_error, _page

router = APIRouter(prefix="/rank-tracking")


@router.get("", response_model=PagedResponse[RankRecordSchema])
def list_rank_records(
    ctx: OpContext,
    organization_id: str | None = Query(None),
    product_id: str | None = Query(None),
    keyword_id: str | None = Query(None),
    device: str | None = Query(None),
    location: str | None = Query(None),
    date_from: str | None = Query(None, description="YYYY-MM-DD, inclusive"),
    date_to: str | None = Query(None, description="YYYY-MM-DD, inclusive"),
    limit: int = Query(50),
    offset: int = Query(0),
):
    from rankbrnd.ops.rank_tracking import list_rank_records as _list
    from rankbrnd.ops.requests import ListRankRecordsRequest

    request = ListRankRecordsRequest(
        organization_id=organization_id,
        product_id=product_id,
        keyword_id=keyword_id,
        device=device,
        location=location,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    result = _list(ctx, request)
    if not result.success:
        return _handle_error(result)
    return PagedResponse(
        data=[RankRecordSchema(**_dc(r)) for r in (result.data or [])],
        page=_page(result),
        elapsed_ms=result.elapsed_ms,
    )


@router.post("", response_model=SuccessResponse[RankRecordSchema], status_code=201)
def create_rank_record(ctx: OpContext, body: CreateRankRecordBody):
    """Store a position by hand; the keyword/device/location/date row is replaced if present."""
    from rankbrnd.ops.rank_tracking import create_rank_record as _create
    from rankbrnd.ops.requests import CreateRankRecordRequest

    result = _create(ctx, CreateRankRecordRequest(**body.model_dump()))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=RankRecordSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)


@router.delete("/{record_id}", response_model=SuccessResponse[dict])
def delete_rank_record(ctx: OpContext, record_id: str = Path(...)):
    from rankbrnd.ops.rank_tracking import delete_rank_record as _delete
    from rankbrnd.ops.requests import RankRecordRequest

    result = _delete(ctx, RankRecordRequest(record_id=record_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)


@router.get("/keywords/{keyword_id}/history", response_model=SuccessResponse[list[RankRecordSchema]])
def get_rank_history(
    ctx: OpContext,
    keyword_id: str = Path(...),
    organization_id: str | None = Query(None),
    device: str | None = Query(None),
    location: str | None = Query(None),
    date_from: str | None = Query(None),
    date_to: str | None = Query(None),
):
    from rankbrnd.ops.rank_tracking import get_rank_history as _history
    from rankbrnd.ops.requests import RankHistoryRequest

    request = RankHistoryRequest(
        keyword_id=keyword_id,
        organization_id=organization_id,
        device=device,
        location=location,
        date_from=date_from,
        date_to=date_to,
    )
    result = _history(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=[RankRecordSchema(**_dc(r)) for r in (result.data or [])],
        elapsed_ms=result.elapsed_ms,
    )


@router.get("/keywords/{keyword_id}/stats", response_model=SuccessResponse[dict])
def get_rank_stats(
    ctx: OpContext,
    keyword_id: str = Path(...),
    organization_id: str | None = Query(None),
    device: str | None = Query(None),
    location: str | None = Query(None),
    date_from: str | None = Query(None),
    date_to: str | None = Query(None),
):
    """Summary of a keyword's positions; 404 when nothing has been tracked."""
    from rankbrnd.ops.rank_tracking import get_rank_stats as _stats
    from rankbrnd.ops.requests import RankHistoryRequest

    request = RankHistoryRequest(
        keyword_id=keyword_id,
        organization_id=organization_id,
        device=device,
        location=location,
        date_from=date_from,
        date_to=date_to,
    )
    result = _stats(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)


@router.post("/track", response_model=SuccessResponse[dict])
def track_keyword_now(ctx: OpContext, settings: WorkerSettings, body: TrackKeywordBody):
    from rankbrnd.ops.rank_tracking import track_keyword_now as _track
    from rankbrnd.ops.requests import TrackKeywordNowRequest

    result = _track(ctx, TrackKeywordNowRequest(**body.model_dump()), settings=settings)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms, warnings=result.warnings)
