"""
Integrations router: CMS credentials per organization.

Endpoints:
    GET  /integrations         List an organization's integrations
    POST /integrations         Connect a CMS
    GET  /integrations/{id}    One integration

Secret config values (keys containing password, secret, token or key)
are returned masked.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext
from rankbrnd.api.schemas.common import SuccessResponse
from rankbrnd.api.schemas.domains import CreateIntegrationBody, IntegrationSchema
from rankbrnd.api.utils import _dc, _handle_error

router = APIRouter(prefix="/integrations")


@router.get("", response_model=SuccessResponse[list[IntegrationSchema]])
def list_integrations(ctx: OpContext, organization_id: str = Query(""), platform: str | None = Query(None)):
    from rankbrnd.ops.integrations import list_integrations as _list
    from rankbrnd.ops.requests import ListIntegrationsRequest

    result = _list(ctx, ListIntegrationsRequest(organization_id=organization_id, platform=platform))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=[IntegrationSchema(**_dc(i)) for i in (result.data or [])],
        elapsed_ms=result.elapsed_ms,
    )


@router.post("", response_model=SuccessResponse[IntegrationSchema], status_code=201)
def create_integration(ctx: OpContext, body: CreateIntegrationBody):
    """Connect a CMS. A platform without a publishing adapter is stored with a warning."""
    from rankbrnd.ops.integrations import create_integration as _create
    from rankbrnd.ops.requests import CreateIntegrationRequest

    result = _create(ctx, CreateIntegrationRequest(**body.model_dump()))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=IntegrationSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/{integration_id}", response_model=SuccessResponse[IntegrationSchema])
def get_integration(ctx: OpContext, integration_id: str = Path(...)):
    from rankbrnd.ops.integrations import get_integration as _get
    from rankbrnd.ops.requests import IntegrationRequest

    result = _get(ctx, IntegrationRequest(integration_id=integration_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=IntegrationSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)
