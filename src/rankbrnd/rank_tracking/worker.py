"""Rank tracking batch worker.

Triggered by cron. Tracks one organization when asked, otherwise spreads
the keyword budget across every active organization until the time
budget runs out.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from rankbrnd.core.logging import LogContext, get_logger
from rankbrnd.core.protocols import Connection
from rankbrnd.core.repositories import KeywordRepository, OrganizationRepository, RankTrackingRepository
from rankbrnd.core.timestamps import generate_ulid, today_iso, utc_now
from rankbrnd.rank_tracking.service import RankTrackerService

logger = get_logger(__name__)

MAX_KEYWORDS_PER_RUN = 100
MAX_PROCESSING_TIME_MS = 300_000


@dataclass
class RankWorkerResult:
    organizations: int = 0
    keywords_processed: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    duration_ms: int = 0
    total_cost: float = 0.0
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.message is None:
            data.pop("message")
        return data


class RankTrackingWorker:
    """Runs rank tracking jobs within keyword and time limits."""

    def __init__(
        self,
        conn: Connection,
        service: RankTrackerService,
        *,
        max_keywords_per_run: int = MAX_KEYWORDS_PER_RUN,
        max_processing_time_ms: int = MAX_PROCESSING_TIME_MS,
        cron_secret_configured: bool = False,
        monotonic: Callable[[], float] = time.monotonic,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.conn = conn
        self.service = service
        self.max_keywords_per_run = max_keywords_per_run
        self.max_processing_time_ms = max_processing_time_ms
        self.cron_secret_configured = cron_secret_configured
        self._monotonic = monotonic
        self._clock = clock

    def _elapsed_ms(self, started: float) -> int:
        return int((self._monotonic() - started) * 1000)

    def run(
        self,
        *,
        organization_id: str | None = None,
        product_id: str | None = None,
        device: str | None = None,
        location: str | None = None,
        limit: int | None = None,
    ) -> RankWorkerResult:
        limit = min(limit or self.max_keywords_per_run, self.max_keywords_per_run)
        started = self._monotonic()

        with LogContext(worker="rank_tracking", run_id=generate_ulid()):
            logger.info("rank_worker_started", organization_id=organization_id, limit=limit)

            if organization_id:
                job = self.service.run_job(
                    organization_id,
                    product_id=product_id,
                    device=device,
                    location=location,
                    limit=limit,
                )
                result = RankWorkerResult(
                    organizations=1,
                    keywords_processed=job.total,
                    successful=job.successful,
                    failed=job.failed,
                    errors=[{"organization_id": organization_id, **e} for e in job.errors],
                    total_cost=job.cost,
                )
            else:
                result = self._run_all(product_id, device, location, limit, started)

            result.duration_ms = self._elapsed_ms(started)
            logger.info(
                "rank_worker_completed",
                organizations=result.organizations,
                keywords_processed=result.keywords_processed,
                successful=result.successful,
                failed=result.failed,
                duration_ms=result.duration_ms,
            )
            return result

    def _run_all(
        self,
        product_id: str | None,
        device: str | None,
        location: str | None,
        limit: int,
        started: float,
    ) -> RankWorkerResult:
        orgs = OrganizationRepository(self.conn).list_active()
        if not orgs:
            return RankWorkerResult(message="No active organizations found")

        result = RankWorkerResult()
        per_org = max(1, limit // len(orgs))
        for org in orgs:
            if self._elapsed_ms(started) >= self.max_processing_time_ms:
                logger.warning("rank_worker_time_budget_spent", processed_organizations=result.organizations)
                break
            try:
                job = self.service.run_job(
                    org["id"],
                    product_id=product_id,
                    device=device,
                    location=location,
                    limit=per_org,
                )
                result.keywords_processed += job.processed
                result.successful += job.successful
                result.failed += job.failed
                result.total_cost += job.cost
                result.errors.extend({"organization_id": org["id"], **e} for e in job.errors)
            except Exception as exc:
                logger.exception("rank_worker_org_failed", organization_id=org["id"])
                result.errors.append({"organization_id": org["id"], "keyword": "all", "error": str(exc)})
            result.organizations += 1
        return result

    def stats(self) -> dict[str, Any]:
        """Worker limits plus a snapshot of tracking volume."""
        return {
            "config": {
                "max_keywords_per_run": self.max_keywords_per_run,
                "max_processing_time_ms": self.max_processing_time_ms,
                "cron_secret_configured": self.cron_secret_configured,
            },
            "stats": {
                "total_active_keywords": KeywordRepository(self.conn).count_active(),
                "total_active_organizations": len(OrganizationRepository(self.conn).list_active()),
                "total_rank_records": RankTrackingRepository(self.conn).count_all(),
                "tracked_today": RankTrackingRepository(self.conn).count_for_date(today_iso(self._clock())),
            },
        }
