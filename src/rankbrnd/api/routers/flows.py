"""
Flows router: setup wizard and onboarding progress.

Endpoints:
    GET    /flows/{flow}    Current progress (``flow`` is setup_wizard or onboarding)
    POST   /flows/{flow}    Apply one action (start, next, skip, save, ...)
    DELETE /flows/{flow}    Forget the stored progress

The user defaults to the ``X-User-ID`` caller; system callers pass
``?user_id=``.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext
from rankbrnd.api.schemas.common import SuccessResponse
from rankbrnd.api.schemas.domains import FlowActionBody
from rankbrnd.api.utils import _handle_error

router = APIRouter(prefix="/flows")


@router.get("/{flow}", response_model=SuccessResponse[dict])
def get_flow_progress(ctx: OpContext, flow: str = Path(...), user_id: str | None = Query(None)):
    """Progress with per-step ``completed`` and ``accessible`` flags.

    Example:
        GET /api/v1/flows/setup_wizard
        X-User-ID: user_1

        Response:
        {"data": {"current_step": "cms-connection", "completed_steps": ["brand-setup"],
                  "progress_percentage": 33, "is_complete": false, "steps": [...]}}
    """
    from rankbrnd.ops.flows import get_flow_progress as _get
    from rankbrnd.ops.requests import FlowRequest

    result = _get(ctx, FlowRequest(user_id=user_id or ctx.user or "", flow=flow))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)


@router.post("/{flow}", response_model=SuccessResponse[dict])
def update_flow_progress(
    ctx: OpContext,
    body: FlowActionBody,
    flow: str = Path(...),
    user_id: str | None = Query(None),
):
    """Apply one action and return the new progress.

    ``save`` stores wizard data under ``key`` (brand_config,
    cms_integration, keyword_config, article_options); ``achievement``
    sets the onboarding flag named by ``key``.
    """
    from rankbrnd.ops.flows import update_flow_progress as _update
    from rankbrnd.ops.requests import FlowActionRequest

    request = FlowActionRequest(user_id=user_id or ctx.user or "", flow=flow, **body.model_dump())
    result = _update(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)


@router.delete("/{flow}", response_model=SuccessResponse[dict])
def delete_flow_progress(ctx: OpContext, flow: str = Path(...), user_id: str | None = Query(None)):
    from rankbrnd.ops.flows import delete_flow_progress as _delete
    from rankbrnd.ops.requests import FlowRequest

    result = _delete(ctx, FlowRequest(user_id=user_id or ctx.user or "", flow=flow))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)
