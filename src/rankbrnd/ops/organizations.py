"""
Organization and team operations.

Creating an organization makes the creator its owner. Role changes are
checked with :func:`~rankbrnd.rbac.can_modify_user_role`, and the last
owner can be neither demoted nor removed.
"""

from __future__ import annotations

import re

from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import OrganizationRepository, TeamMemberRepository
from rankbrnd.core.timestamps import generate_ulid, to_iso8601
from rankbrnd.ops.authz import caller_role, require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import (
    AddTeamMemberRequest,
    ChangeRoleRequest,
    CreateOrganizationRequest,
    ListOrganizationsRequest,
    OrganizationRequest,
    TeamMemberRequest,
    UpdateOrganizationRequest,
)
from rankbrnd.ops.responses import OrganizationSummary, TeamMember
from rankbrnd.ops.result import OperationResult, start_timer
from rankbrnd.rank_tracking.service import normalize_domain
from rankbrnd.rbac import ROLE_DISPLAY_NAMES, PermissionCategory, Resource, Role, can_modify_user_role

logger = get_logger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")
ROLES = tuple(r.value for r in Role)


def slugify(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-")


def _member(row: dict) -> TeamMember:
    return TeamMember(
        organization_id=row["organization_id"],
        user_id=row["user_id"],
        role=row["role"],
        role_display_name=ROLE_DISPLAY_NAMES[Role(row["role"])],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _owner_count(members: TeamMemberRepository, organization_id: str) -> int:
    return sum(1 for m in members.list_members(organization_id) if m["role"] == Role.OWNER.value)


# ------------------------------------------------------------------ #
# Organizations
# ------------------------------------------------------------------ #


def create_organization(
    ctx: OperationContext,
    request: CreateOrganizationRequest,
) -> OperationResult[OrganizationSummary]:
    timer = start_timer()

    owner = request.owner_user_id or ctx.user
    if not request.name.strip():
        return OperationResult.fail("VALIDATION_FAILED", "name is required", elapsed_ms=timer.elapsed_ms)
    if not owner:
        return OperationResult.fail("VALIDATION_FAILED", "owner_user_id is required", elapsed_ms=timer.elapsed_ms)
    if ctx.user is not None and owner != ctx.user:
        return OperationResult.fail(
            "FORBIDDEN", "Organizations can only be created for yourself", elapsed_ms=timer.elapsed_ms
        )
    slug = slugify(request.slug or request.name)
    if not slug:
        return OperationResult.fail("VALIDATION_FAILED", "slug must contain letters or digits", elapsed_ms=timer.elapsed_ms)

    now = to_iso8601(ctx.now())
    row = {
        "id": generate_ulid(),
        "name": request.name.strip(),
        "slug": slug,
        "domain": normalize_domain(request.domain) if request.domain else None,
        "tier": request.tier,
        "settings": dict(request.settings),
        "active": 1,
        "created_at": now,
        "updated_at": now,
    }
    if ctx.dry_run:
        return OperationResult.ok(OrganizationSummary.from_row({**row, "role": "owner"}), elapsed_ms=timer.elapsed_ms)

    try:
        orgs = OrganizationRepository(ctx.conn)
        if orgs.get_by_slug(slug) is not None:
            return OperationResult.fail("CONFLICT", f"Slug '{slug}' is already taken", elapsed_ms=timer.elapsed_ms)
        orgs.create(row)
        TeamMemberRepository(ctx.conn).create(
            {
                "id": generate_ulid(),
                "organization_id": row["id"],
                "user_id": owner,
                "role": Role.OWNER.value,
                "created_at": now,
                "updated_at": now,
            }
        )
        ctx.conn.commit()
        logger.info("organization_created", organization_id=row["id"], slug=slug, owner=owner)
        return OperationResult.ok(
            OrganizationSummary.from_row({**orgs.get(row["id"]), "role": Role.OWNER.value}),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        ctx.conn.rollback()
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create organization: {exc}", elapsed_ms=timer.elapsed_ms)


def get_organization(ctx: OperationContext, request: OrganizationRequest) -> OperationResult[OrganizationSummary]:
    timer = start_timer()
    try:
        row = OrganizationRepository(ctx.conn).get(request.organization_id)
        if row is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Organization '{request.organization_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        denied = require_permission(ctx, request.organization_id, Resource.ANALYTICS, PermissionCategory.READ)
        if denied:
            return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
        role = caller_role(ctx, request.organization_id)
        return OperationResult.ok(OrganizationSummary.from_row({**row, "role": role}), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to get organization: {exc}", elapsed_ms=timer.elapsed_ms)


def list_organizations(
    ctx: OperationContext,
    request: ListOrganizationsRequest,
) -> OperationResult[list[OrganizationSummary]]:
    """A user's organizations with their role, or every active one for system callers."""
    timer = start_timer()
    user_id = request.user_id or ctx.user
    if ctx.user is not None and user_id != ctx.user:
        return OperationResult.fail(
            "FORBIDDEN", "Cannot list another user's organizations", elapsed_ms=timer.elapsed_ms
        )
    try:
        repo = OrganizationRepository(ctx.conn)
        rows = repo.list_for_user(user_id) if user_id else repo.list_active()
        return OperationResult.ok([OrganizationSummary.from_row(r) for r in rows], elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to list organizations: {exc}", elapsed_ms=timer.elapsed_ms)


def update_organization(
    ctx: OperationContext,
    request: UpdateOrganizationRequest,
) -> OperationResult[OrganizationSummary]:
    """Rename, change the domain, or merge new keys into settings."""
    timer = start_timer()
    try:
        repo = OrganizationRepository(ctx.conn)
        row = repo.get(request.organization_id)
        if row is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Organization '{request.organization_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        denied = require_permission(
            ctx, request.organization_id, Resource.SETTINGS, PermissionCategory.MANAGE_SETTINGS
        )
        if denied:
            return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

        changes: dict = {}
        if request.name is not None:
            if not request.name.strip():
                return OperationResult.fail("VALIDATION_FAILED", "name cannot be empty", elapsed_ms=timer.elapsed_ms)
            changes["name"] = request.name.strip()
        if request.domain is not None:
            changes["domain"] = normalize_domain(request.domain) if request.domain else None
        if request.settings is not None:
            changes["settings"] = {**(row.get("settings") or {}), **request.settings}
        if not changes:
            return OperationResult.fail("VALIDATION_FAILED", "No fields to update", elapsed_ms=timer.elapsed_ms)
        if ctx.dry_run:
            return OperationResult.ok(OrganizationSummary.from_row({**row, **changes}), elapsed_ms=timer.elapsed_ms)

        changes["updated_at"] = to_iso8601(ctx.now())
        repo.update(request.organization_id, changes)
        ctx.conn.commit()
        return OperationResult.ok(OrganizationSummary.from_row(repo.get(request.organization_id)), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to update organization: {exc}", elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Team
# ------------------------------------------------------------------ #


def list_team_members(ctx: OperationContext, request: OrganizationRequest) -> OperationResult[list[TeamMember]]:
    timer = start_timer()
    denied = require_permission(ctx, request.organization_id, Resource.TEAM, PermissionCategory.READ)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
    try:
        rows = TeamMemberRepository(ctx.conn).list_members(request.organization_id)
        return OperationResult.ok([_member(r) for r in rows], elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to list team members: {exc}", elapsed_ms=timer.elapsed_ms)


def add_team_member(ctx: OperationContext, request: AddTeamMemberRequest) -> OperationResult[TeamMember]:
    timer = start_timer()

    if not request.organization_id or not request.user_id:
        return OperationResult.fail(
            "VALIDATION_FAILED", "organization_id and user_id are required", elapsed_ms=timer.elapsed_ms
        )
    if request.role not in ROLES:
        return OperationResult.fail(
            "VALIDATION_FAILED", f"role must be one of: {', '.join(ROLES)}", elapsed_ms=timer.elapsed_ms
        )
    denied = require_permission(ctx, request.organization_id, Resource.TEAM, PermissionCategory.MANAGE_TEAM)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        if ctx.user is not None:
            role = caller_role(ctx, request.organization_id)
            if not can_modify_user_role(role, Role.VIEWER, request.role):
                return OperationResult.fail(
                    "FORBIDDEN", f"Role '{role}' cannot grant '{request.role}'", elapsed_ms=timer.elapsed_ms
                )
        if OrganizationRepository(ctx.conn).get(request.organization_id) is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Organization '{request.organization_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        members = TeamMemberRepository(ctx.conn)
        if members.get(request.organization_id, request.user_id) is not None:
            return OperationResult.fail("CONFLICT", "User is already a member", elapsed_ms=timer.elapsed_ms)

        now = to_iso8601(ctx.now())
        row = {
            "id": generate_ulid(),
            "organization_id": request.organization_id,
            "user_id": request.user_id,
            "role": request.role,
            "created_at": now,
            "updated_at": now,
        }
        if not ctx.dry_run:
            members.create(row)
            ctx.conn.commit()
            logger.info("team_member_added", organization_id=request.organization_id, user_id=request.user_id, role=request.role)
        return OperationResult.ok(_member(row), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to add team member: {exc}", elapsed_ms=timer.elapsed_ms)


def change_member_role(ctx: OperationContext, request: ChangeRoleRequest) -> OperationResult[TeamMember]:
    timer = start_timer()

    if request.role not in ROLES:
        return OperationResult.fail(
            "VALIDATION_FAILED", f"role must be one of: {', '.join(ROLES)}", elapsed_ms=timer.elapsed_ms
        )
    denied = require_permission(ctx, request.organization_id, Resource.TEAM, PermissionCategory.MANAGE_TEAM)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        members = TeamMemberRepository(ctx.conn)
        target = members.get(request.organization_id, request.user_id)
        if target is None:
            return OperationResult.fail("NOT_FOUND", "Team member not found", elapsed_ms=timer.elapsed_ms)

        if ctx.user is not None:
            role = caller_role(ctx, request.organization_id)
            if not can_modify_user_role(role, target["role"], request.role, is_self=ctx.user == request.user_id):
                return OperationResult.fail(
                    "FORBIDDEN",
                    f"Role '{role}' cannot change '{target['role']}' to '{request.role}'",
                    elapsed_ms=timer.elapsed_ms,
                )
        if (
            target["role"] == Role.OWNER.value
            and request.role != Role.OWNER.value
            and _owner_count(members, request.organization_id) <= 1
        ):
            return OperationResult.fail("CONFLICT", "Cannot demote the last owner", elapsed_ms=timer.elapsed_ms)

        if ctx.dry_run:
            return OperationResult.ok(_member({**target, "role": request.role}), elapsed_ms=timer.elapsed_ms)
        members.set_role(request.organization_id, request.user_id, request.role, to_iso8601(ctx.now()))
        ctx.conn.commit()
        logger.info(
            "team_member_role_changed",
            organization_id=request.organization_id,
            user_id=request.user_id,
            old_role=target["role"],
            new_role=request.role,
        )
        return OperationResult.ok(
            _member(members.get(request.organization_id, request.user_id)), elapsed_ms=timer.elapsed_ms
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to change role: {exc}", elapsed_ms=timer.elapsed_ms)


def remove_team_member(ctx: OperationContext, request: TeamMemberRequest) -> OperationResult[dict]:
    timer = start_timer()
    denied = require_permission(ctx, request.organization_id, Resource.TEAM, PermissionCategory.MANAGE_TEAM)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    try:
        members = TeamMemberRepository(ctx.conn)
        target = members.get(request.organization_id, request.user_id)
        if target is None:
            return OperationResult.fail("NOT_FOUND", "Team member not found", elapsed_ms=timer.elapsed_ms)
        if ctx.user is not None and ctx.user != request.user_id:
            role = caller_role(ctx, request.organization_id)
            if role != Role.OWNER.value and target["role"] in (Role.ADMIN.value, Role.OWNER.value):
                return OperationResult.fail(
                    "FORBIDDEN", f"Role '{role}' cannot remove '{target['role']}'", elapsed_ms=timer.elapsed_ms
                )
        if target["role"] == Role.OWNER.value and _owner_count(members, request.organization_id) <= 1:
            return OperationResult.fail("CONFLICT", "Cannot remove the last owner", elapsed_ms=timer.elapsed_ms)

        if not ctx.dry_run:
            members.remove(request.organization_id, request.user_id)
            ctx.conn.commit()
            logger.info("team_member_removed", organization_id=request.organization_id, user_id=request.user_id)
        return OperationResult.ok(
            {"organization_id": request.organization_id, "user_id": request.user_id, "removed": not ctx.dry_run},
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to remove team member: {exc}", elapsed_ms=timer.elapsed_ms)
