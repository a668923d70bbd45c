"""
Organizations router: tenants and their team members.

Endpoints:
    GET    /organizations                              Caller's organizations with role
    POST   /organizations                              Create (caller becomes owner)
    GET    /organizations/{id}                         One organization
    PATCH  /organizations/{id}                         Rename, set domain, merge settings
    GET    /organizations/{id}/members                 Team members
    POST   /organizations/{id}/members                 Add a member (default viewer)
    PUT    /organizations/{id}/members/{user_id}       Change a member's role
    DELETE /organizations/{id}/members/{user_id}       Remove a member
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Query

from rankbrnd.api.deps import OpContext
from rankbrnd.api.schemas.common import SuccessResponse
from rankbrnd.api.schemas.domains import (
    AddTeamMemberBody,
    ChangeRoleBody,
    CreateOrganizationBody,
    OrganizationSchema,
    TeamMemberSchema,
    UpdateOrganizationBody,
)
from rankbrnd.api.utils import _dc, _handle_error

router = APIRouter(prefix="/organizations")


def _org_response(result):
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=OrganizationSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)


def _member_response(result):
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=TeamMemberSchema(**_dc(result.data)), elapsed_ms=result.elapsed_ms)


@router.get("", response_model=SuccessResponse[list[OrganizationSchema]])
def list_organizations(ctx: OpContext, user_id: str | None = Query(None)):
    from rankbrnd.ops.organizations import list_organizations as _list
    from rankbrnd.ops.requests import ListOrganizationsRequest

    result = _list(ctx, ListOrganizationsRequest(user_id=user_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=[OrganizationSchema(**_dc(o)) for o in (result.data or [])],
        elapsed_ms=result.elapsed_ms,
    )


@router.post("", response_model=SuccessResponse[OrganizationSchema], status_code=201)
def create_organization(ctx: OpContext, body: CreateOrganizationBody):
    """Create an organization; the slug is derived from the name when omitted (409 if taken)."""
    from rankbrnd.ops.organizations import create_organization as _create
    from rankbrnd.ops.requests import CreateOrganizationRequest

    data = body.model_dump()
    data["owner_user_id"] = data["owner_user_id"] or ""
    return _org_response(_create(ctx, CreateOrganizationRequest(**data)))


@router.get("/{organization_id}", response_model=SuccessResponse[OrganizationSchema])
def get_organization(ctx: OpContext, organization_id: str = Path(...)):
    from rankbrnd.ops.organizations import get_organization as _get
    from rankbrnd.ops.requests import OrganizationRequest

    return _org_response(_get(ctx, OrganizationRequest(organization_id=organization_id)))


@router.patch("/{organization_id}", response_model=SuccessResponse[OrganizationSchema])
def update_organization(ctx: OpContext, body: UpdateOrganizationBody, organization_id: str = Path(...)):
    """Admins and owners only; ``settings`` keys are merged into the stored settings."""
    from rankbrnd.ops.organizations import update_organization as _update
    from rankbrnd.ops.requests import UpdateOrganizationRequest

    return _org_response(_update(ctx, UpdateOrganizationRequest(organization_id=organization_id, **body.model_dump())))


@router.get("/{organization_id}/members", response_model=SuccessResponse[list[TeamMemberSchema]])
def list_team_members(ctx: OpContext, organization_id: str = Path(...)):
    from rankbrnd.ops.organizations import list_team_members as _list
    from rankbrnd.ops.requests import OrganizationRequest

    result = _list(ctx, OrganizationRequest(organization_id=organization_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=[TeamMemberSchema(**_dc(m)) for m in (result.data or [])],
        elapsed_ms=result.elapsed_ms,
    )


@router.post("/{organization_id}/members", response_model=SuccessResponse[TeamMemberSchema], status_code=201)
def add_team_member(ctx: OpContext, body: AddTeamMemberBody, organization_id: str = Path(...)):
    from rankbrnd.ops.organizations import add_team_member as _add
    from rankbrnd.ops.requests import AddTeamMemberRequest

    return _member_response(_add(ctx, AddTeamMemberRequest(organization_id=organization_id, **body.model_dump())))


@router.put("/{organization_id}/members/{user_id}", response_model=SuccessResponse[TeamMemberSchema])
def change_member_role(
    ctx: OpContext,
    body: ChangeRoleBody,
    organization_id: str = Path(...),
    user_id: str = Path(...),
):
    """Owners may change anyone; admins only move editors and viewers between those roles."""
    from rankbrnd.ops.organizations import change_member_role as _change
    from rankbrnd.ops.requests import ChangeRoleRequest

    return _member_response(
        _change(ctx, ChangeRoleRequest(organization_id=organization_id, user_id=user_id, role=body.role))
    )


@router.delete("/{organization_id}/members/{user_id}", response_model=SuccessResponse[dict])
def remove_team_member(ctx: OpContext, organization_id: str = Path(...), user_id: str = Path(...)):
    from rankbrnd.ops.organizations import remove_team_member as _remove
    from rankbrnd.ops.requests import TeamMemberRequest

    result = _remove(ctx, TeamMemberRequest(organization_id=organization_id, user_id=user_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=result.data, elapsed_ms=result.elapsed_ms)
