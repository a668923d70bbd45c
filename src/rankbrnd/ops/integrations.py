"""CMS integration operations.

An integration stores the credentials a CMS adapter needs. Responses
never echo secret config values back.
"""

from __future__ import annotations

from rankbrnd.cms import adapter_registry
from rankbrnd.core.logging import get_logger
from rankbrnd.core.repositories import IntegrationRepository, OrganizationRepository
from rankbrnd.core.timestamps import generate_ulid, to_iso8601
from rankbrnd.ops.authz import require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import CreateIntegrationRequest, IntegrationRequest, ListIntegrationsRequest
from rankbrnd.ops.responses import IntegrationSummary
from rankbrnd.ops.result import OperationResult, start_timer
from rankbrnd.publishing.queue import PLATFORMS
from rankbrnd.rbac import PermissionCategory, Resource

logger = get_logger(__name__)


def create_integration(
    ctx: OperationContext,
    request: CreateIntegrationRequest,
) -> OperationResult[IntegrationSummary]:
    timer = start_timer()

    platform = request.platform.lower()
    if platform not in PLATFORMS:
        return OperationResult.fail(
            "VALIDATION_FAILED", f"platform must be one of: {', '.join(PLATFORMS)}", elapsed_ms=timer.elapsed_ms
        )
    denied = require_permission(ctx, request.organization_id, Resource.INTEGRATIONS, PermissionCategory.INTEGRATIONS)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)

    warnings: list[str] = []
    if platform not in adapter_registry.list_platforms():
        warnings.append(f"No publishing adapter for '{platform}' yet; queued items will fail")

    now = to_iso8601(ctx.now())
    row = {
        "id": generate_ulid(),
        "organization_id": request.organization_id,
        "platform": platform,
        "name": request.name.strip() or platform.title(),
        "config": dict(request.config),
        "active": 1,
        "created_at": now,
        "updated_at": now,
    }
    if ctx.dry_run:
        return OperationResult.ok(IntegrationSummary.from_row(row), warnings=warnings, elapsed_ms=timer.elapsed_ms)

    try:
        if OrganizationRepository(ctx.conn).get(request.organization_id) is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Organization '{request.organization_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        repo = IntegrationRepository(ctx.conn)
        repo.create(row)
        ctx.conn.commit()
        logger.info("integration_created", integration_id=row["id"], platform=platform)
        return OperationResult.ok(
            IntegrationSummary.from_row(repo.get(row["id"])), warnings=warnings, elapsed_ms=timer.elapsed_ms
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create integration: {exc}", elapsed_ms=timer.elapsed_ms)


def get_integration(ctx: OperationContext, request: IntegrationRequest) -> OperationResult[IntegrationSummary]:
    timer = start_timer()
    try:
        row = IntegrationRepository(ctx.conn).get(request.integration_id)
        if row is None:
            return OperationResult.fail(
                "NOT_FOUND", f"Integration '{request.integration_id}' not found", elapsed_ms=timer.elapsed_ms
            )
        denied = require_permission(ctx, row["organization_id"], Resource.INTEGRATIONS, PermissionCategory.READ)
        if denied:
            return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
        return OperationResult.ok(IntegrationSummary.from_row(row), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to get integration: {exc}", elapsed_ms=timer.elapsed_ms)


def list_integrations(
    ctx: OperationContext,
    request: ListIntegrationsRequest,
) -> OperationResult[list[IntegrationSummary]]:
    timer = start_timer()
    denied = require_permission(ctx, request.organization_id, Resource.INTEGRATIONS, PermissionCategory.READ)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
    try:
        rows = IntegrationRepository(ctx.conn).list_integrations(
            organization_id=request.organization_id or None,
            platform=request.platform,
        )
        return OperationResult.ok([IntegrationSummary.from_row(r) for r in rows], elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to list integrations: {exc}", elapsed_ms=timer.elapsed_ms)
