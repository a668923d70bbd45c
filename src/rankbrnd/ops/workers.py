"""
Worker operations: run the publishing and rank tracking batch jobs.

The API cron endpoints and ``rankbrnd worker ...`` both come through
here, so limits and retry policy are read from :class:`RankBrndSettings`
in one place.

System callers may run across every organization. A signed-in user must
name one organization and hold ``manage_settings:settings`` there (admin
or owner) to run a worker, or ``read:publishing`` to see its status.
"""

from __future__ import annotations

from rankbrnd.core.logging import get_logger
from rankbrnd.core.settings import RankBrndSettings, get_settings
from rankbrnd.ops.authz import require_permission
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.requests import RunPublishWorkerRequest, RunRankWorkerRequest
from rankbrnd.ops.result import OperationError, OperationResult, start_timer
from rankbrnd.publishing.retry import RetryConfig
from rankbrnd.publishing.worker import AdapterFactory, PublishingWorker, WorkerRunResult
from rankbrnd.rank_tracking.client import DataForSEOClient
from rankbrnd.rank_tracking.service import RankTrackerService
from rankbrnd.rank_tracking.worker import RankTrackingWorker, RankWorkerResult
from rankbrnd.rbac import PermissionCategory, Resource

logger = get_logger(__name__)


def _require_scoped_caller(
    ctx: OperationContext,
    organization_id: str | None,
    resource: Resource,
    category: PermissionCategory,
) -> OperationError | None:
    if ctx.user is None:
        return None
    if not organization_id:
        logger.info("permission_denied", user=ctx.user, reason="all_organizations")
        return OperationError(
            code="FORBIDDEN", message="organization_id is required for user-triggered worker runs"
        )
    return require_permission(ctx, organization_id, resource, category)


def build_publishing_worker(
    ctx: OperationContext,
    settings: RankBrndSettings | None = None,
    adapter_factory: AdapterFactory | None = None,
) -> PublishingWorker:
    settings = settings or get_settings()
    kwargs = {} if adapter_factory is None else {"adapter_factory": adapter_factory}
    return PublishingWorker(
        ctx.conn,
        retry_config=RetryConfig(
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
            max_retries=settings.retry_max_retries,
        ),
        max_items_per_run=settings.publish_max_items_per_run,
        max_processing_time_ms=settings.publish_max_processing_time_ms,
        clock=ctx.clock,
        **kwargs,
    )


def build_rank_worker(
    ctx: OperationContext,
    settings: RankBrndSettings | None = None,
    client: DataForSEOClient | None = None,
) -> RankTrackingWorker:
    """Rank worker wired to DataForSEO; the client is ``None`` when unconfigured."""
    settings = settings or get_settings()
    client = client or DataForSEOClient.from_settings(settings)
    return RankTrackingWorker(
        ctx.conn,
        RankTrackerService(ctx.conn, client, clock=ctx.clock),
        max_keywords_per_run=settings.rank_max_keywords_per_run,
        max_processing_time_ms=settings.rank_max_processing_time_ms,
        cron_secret_configured=bool(settings.rank_tracking_cron_secret),
        clock=ctx.clock,
    )


def run_publishing_worker(
    ctx: OperationContext,
    request: RunPublishWorkerRequest,
    *,
    settings: RankBrndSettings | None = None,
    adapter_factory: AdapterFactory | None = None,
) -> OperationResult[WorkerRunResult]:
    """Run one pass of the scheduled, queued and retry phases."""
    timer = start_timer()
    if request.limit is not None and request.limit < 1:
        return OperationResult.fail("VALIDATION_FAILED", "limit must be >= 1", elapsed_ms=timer.elapsed_ms)
    denied = _require_scoped_caller(
        ctx, request.organization_id, Resource.SETTINGS, PermissionCategory.MANAGE_SETTINGS
    )
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
    if ctx.dry_run:
        return OperationResult.ok(WorkerRunResult(), warnings=["dry run: nothing published"], elapsed_ms=timer.elapsed_ms)
    try:
        worker = build_publishing_worker(ctx, settings, adapter_factory)
        result = worker.run(
            platform=request.platform, organization_id=request.organization_id, limit=request.limit
        )
        return OperationResult.ok(result, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Publishing worker failed: {exc}", elapsed_ms=timer.elapsed_ms)


def publishing_worker_status(
    ctx: OperationContext,
    request: RunPublishWorkerRequest,
    *,
    settings: RankBrndSettings | None = None,
) -> OperationResult[dict]:
    timer = start_timer()
    denied = _require_scoped_caller(ctx, request.organization_id, Resource.PUBLISHING, PermissionCategory.READ)
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
    try:
        status = build_publishing_worker(ctx, settings).status(
            platform=request.platform, organization_id=request.organization_id
        )
        return OperationResult.ok(status, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to read worker status: {exc}", elapsed_ms=timer.elapsed_ms)


def run_rank_tracking_worker(
    ctx: OperationContext,
    request: RunRankWorkerRequest,
    *,
    settings: RankBrndSettings | None = None,
    client: DataForSEOClient | None = None,
) -> OperationResult[RankWorkerResult]:
    """Track keyword rankings for one organization or all active ones."""
    timer = start_timer()
    if request.limit is not None and request.limit < 1:
        return OperationResult.fail("VALIDATION_FAILED", "limit must be >= 1", elapsed_ms=timer.elapsed_ms)
    denied = _require_scoped_caller(
        ctx, request.organization_id, Resource.SETTINGS, PermissionCategory.MANAGE_SETTINGS
    )
    if denied:
        return OperationResult.from_error(denied, elapsed_ms=timer.elapsed_ms)
    try:
        worker = build_rank_worker(ctx, settings, client)
        if not worker.service.is_configured():
            return OperationResult.fail(
                "UNAVAILABLE",
                "DataForSEO rank tracker not configured",
                retryable=False,
                elapsed_ms=timer.elapsed_ms,
            )
        if ctx.dry_run:
            return OperationResult.ok(
                RankWorkerResult(message="dry run: nothing tracked"), elapsed_ms=timer.elapsed_ms
            )
        result = worker.run(
            organization_id=request.organization_id,
            product_id=request.product_id,
            device=request.device,
            location=request.location,
            limit=request.limit,
        )
        return OperationResult.ok(result, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Rank tracking worker failed: {exc}", elapsed_ms=timer.elapsed_ms)


def rank_tracking_worker_stats(
    ctx: OperationContext,
    *,
    settings: RankBrndSettings | None = None,
) -> OperationResult[dict]:
    timer = start_timer()
    try:
        settings = settings or get_settings()
        worker = RankTrackingWorker(
            ctx.conn,
            RankTrackerService(ctx.conn, None, clock=ctx.clock),
            max_keywords_per_run=settings.rank_max_keywords_per_run,
            max_processing_time_ms=settings.rank_max_processing_time_ms,
            cron_secret_configured=bool(settings.rank_tracking_cron_secret),
            clock=ctx.clock,
        )
        stats = worker.stats()
        stats["config"]["dataforseo_configured"] = settings.dataforseo_configured
        return OperationResult.ok(stats, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to read rank worker stats: {exc}", elapsed_ms=timer.elapsed_ms)
