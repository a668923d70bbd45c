"""
Organization role checks for operations.

Checks apply only when ``ctx.user`` is set. System callers (CLI, cron
workers) have no user and are trusted.
"""

from __future__ import annotations

from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import TeamMemberRepository
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.result import OperationError
from rankbrnd.rbac import PermissionCategory, Resource, has_permission

logger = get_logger(__name__)


def caller_role(ctx: OperationContext, organization_id: str) -> str | None:
    """The acting user's role in *organization_id*, ``None`` if not a member."""
    if ctx.user is None:
        return None
    return TeamMemberRepository(ctx.conn).get_role(organization_id, ctx.user)


def require_permission(
    ctx: OperationContext,
    organization_id: str | None,
    resource: Resource,
    category: PermissionCategory,
) -> OperationError | None:
    """Return a FORBIDDEN error when the caller may not act, else ``None``."""
    if ctx.user is None:
        return None
    if not organization_id:
        return OperationError(code="VALIDATION_FAILED", message="organization_id is required")

    role = caller_role(ctx, organization_id)
    if role is None:
        logger.info("permission_denied", user=ctx.user, organization_id=organization_id, reason="not_member")
        return OperationError(
            code="FORBIDDEN",
            message=f"User is not a member of organization '{organization_id}'",
        )
    if not has_permission(role, resource, category):
        logger.info(
            "permission_denied",
            user=ctx.user,
            organization_id=organization_id,
            role=role,
            permission=f"{category.value}:{resource.value}",
        )
        return OperationError(
            code="FORBIDDEN",
            message=f"Role '{role}' lacks {category.value}:{resource.value}",
            details={"role": role, "permission": f"{category.value}:{resource.value}"},
        )
    return None
