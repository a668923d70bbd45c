"""Unified publishing worker.

One cron-triggered run works through three phases in order:

1. **scheduled**: pending items whose ``scheduled_for`` has arrived are
   moved to ``queued``.
2. **queued**: queued items, plus pending items with no schedule and no
   retry delay, are published (highest priority first).
3. **retry**: pending items whose ``retry_after`` has passed are
   published again.

Each phase stops once the run's time budget is spent; the items it did
not reach are reported as skipped.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from rankbrnd.cms import CMSAdapter, CMSPost, create_adapter
from rankbrnd.core.errors import CMSError
from rankbrnd.core.logging import LogContext, get_logger
from rankbrnd.core.protocols import Connection
from rankbrnd.core.repositories import ArticleRepository, IntegrationRepository, PublishingQueueRepository
from rankbrnd.core.timestamps import generate_ulid, to_iso8601, utc_now
from rankbrnd.publishing.queue import PublishingQueue
from rankbrnd.publishing.retry import DEFAULT_RETRY_CONFIG, RetryConfig, classify_error

logger = get_logger(__name__)

MAX_ITEMS_PER_RUN = 20
MAX_PROCESSING_TIME_MS = 120_000
STATUS_SAMPLE_SIZE = 10

AdapterFactory = Callable[[str, dict[str, Any]], CMSAdapter]


@dataclass
class PhaseResult:
    name: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    duration_ms: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
            "errors": list(self.errors),
        }


@dataclass
class WorkerRunResult:
    phases: list[PhaseResult] = field(default_factory=list)
    total_duration_ms: int = 0

    @property
    def total_processed(self) -> int:
        return sum(p.processed for p in self.phases)

    @property
    def total_succeeded(self) -> int:
        return sum(p.succeeded for p in self.phases)

    @property
    def total_failed(self) -> int:
        return sum(p.failed for p in self.phases)

    def phase(self, name: str) -> PhaseResult | None:
        return next((p for p in self.phases if p.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phases": [p.to_dict() for p in self.phases],
            "total_processed": self.total_processed,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "total_duration_ms": self.total_duration_ms,
        }


class PublishingWorker:
    """Moves scheduled items into the queue and publishes them.

    Parameters:
        conn: Database connection.
        adapter_factory: ``(platform, config) -> CMSAdapter``; tests pass
            a factory returning fakes.
        max_items_per_run: Hard cap on the ``limit`` accepted by :meth:`run`.
        max_processing_time_ms: Time budget for one run.
        clock: Source of "now" for selection and timestamps.
        monotonic: Source of elapsed time for the budget.
    """

    def __init__(
        self,
        conn: Connection,
        *,
        adapter_factory: AdapterFactory = create_adapter,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        max_items_per_run: int = MAX_ITEMS_PER_RUN,
        max_processing_time_ms: int = MAX_PROCESSING_TIME_MS,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.conn = conn
        self.max_items_per_run = max_items_per_run
        self.max_processing_time_ms = max_processing_time_ms
        self._adapter_factory = adapter_factory
        self._clock = clock
        self._monotonic = monotonic
        self._repo = PublishingQueueRepository(conn)
        self._queue = PublishingQueue(conn, retry_config=retry_config, clock=clock)
        self._articles = ArticleRepository(conn)
        self._integrations = IntegrationRepository(conn)
        self._started = 0.0

    # -- budget --------------------------------------------------------------

    def _elapsed_ms(self) -> int:
        return int((self._monotonic() - self._started) * 1000)

    def _budget_spent(self) -> bool:
        return self._elapsed_ms() >= self.max_processing_time_ms

    # -- run -----------------------------------------------------------------

    def run(
        self,
        *,
        platform: str | None = None,
        organization_id: str | None = None,
        limit: int | None = None,
    ) -> WorkerRunResult:
        """Run all three phases once, optionally for a single organization."""
        limit = min(limit or self.max_items_per_run, self.max_items_per_run)
        self._started = self._monotonic()
        result = WorkerRunResult()

        with LogContext(worker="publishing", run_id=generate_ulid()):
            logger.info("publish_worker_started", platform=platform, organization_id=organization_id, limit=limit)
            scope = {"platform": platform, "organization_id": organization_id}
            now = to_iso8601(self._clock())

            result.phases.append(
                self._run_phase("scheduled", self._repo.due_scheduled(now, **scope, limit=limit), self._queue_item)
            )
            result.phases.append(
                self._run_phase("queued", self._repo.ready_to_publish(**scope, limit=limit), self.publish_item)
            )
            now = to_iso8601(self._clock())
            result.phases.append(
                self._run_phase("retry", self._repo.ready_for_retry(now, **scope, limit=limit), self.publish_item)
            )

            result.total_duration_ms = self._elapsed_ms()
            logger.info(
                "publish_worker_completed",
                processed=result.total_processed,
                succeeded=result.total_succeeded,
                failed=result.total_failed,
                duration_ms=result.total_duration_ms,
            )
        return result

    def _run_phase(
        self,
        name: str,
        items: list[dict[str, Any]],
        handler: Callable[[dict[str, Any]], bool],
    ) -> PhaseResult:
        phase = PhaseResult(name=name)
        phase_started = self._monotonic()
        for index, item in enumerate(items):
            if self._budget_spent():
                phase.skipped = len(items) - index
                logger.warning("publish_worker_time_budget_spent", phase=name, skipped=phase.skipped)
                break
            phase.processed += 1
            try:
                ok = handler(item)
            except Exception as exc:
                logger.exception("publish_phase_item_failed", phase=name, item_id=item["id"])
                phase.errors.append({"item_id": item["id"], "error": str(exc)})
                ok = False
            if ok:
                phase.succeeded += 1
            else:
                phase.failed += 1
        phase.duration_ms = int((self._monotonic() - phase_started) * 1000)
        logger.info(
            "publish_phase_completed",
            phase=name,
            processed=phase.processed,
            succeeded=phase.succeeded,
            failed=phase.failed,
            skipped=phase.skipped,
        )
        return phase

    def _queue_item(self, item: dict[str, Any]) -> bool:
        return self._queue.mark_queued(item["id"]) is not None

    # -- publishing ----------------------------------------------------------

    def _load_post(self, item: dict[str, Any]) -> CMSPost:
        article = self._articles.get(item["article_id"]) if item.get("article_id") else None
        if article is None:
            raise CMSError("Article not found: queue item is invalid", code="NOT_FOUND")
        return CMSPost(
            title=article["title"],
            content=article.get("content") or "",
            content_html=article.get("content_html"),
            tags=list(article.get("tags") or []),
            canonical_url=article.get("canonical_url"),
            publish_status=(item.get("metadata") or {}).get("publish_status", "public"),
        )

    def _load_integration(self, item: dict[str, Any]) -> dict[str, Any]:
        integration = None
        if item.get("integration_id"):
            integration = self._integrations.get(item["integration_id"])
        else:
            integration = self._integrations.find_active(item["organization_id"], item["platform"])
        if integration is None or not integration.get("active"):
            raise CMSError(
                f"No active {item['platform']} integration: required configuration missing",
                code="NOT_CONFIGURED",
            )
        return integration

    def publish_item(self, item: dict[str, Any]) -> bool:
        """Publish one queue row. Returns ``True`` when it was published.

        A row another worker already claimed is reported as not published
        and left alone.
        """
        item_id = item["id"]
        if self._queue.mark_started(item_id) is None:
            logger.info("publish_item_already_claimed", item_id=item_id)
            return False

        adapter: CMSAdapter | None = None
        try:
            post = self._load_post(item)
            integration = self._load_integration(item)
            adapter = self._adapter_factory(integration["platform"], integration.get("config") or {})
            published = adapter.publish(post)
        except Exception as exc:
            classification = classify_error(exc, self._queue.retry_config)
            self._queue.mark_failed(item_id, str(exc), classification.type)
            return False
        finally:
            if adapter is not None:
                adapter.close()

        self._queue.mark_completed(
            item_id,
            published_url=published.url,
            published_post_id=published.post_id,
            published_data=published.metadata,
        )
        if item.get("article_id"):
            self._articles.set_status(item["article_id"], "published", to_iso8601(self._clock()))
            self.conn.commit()
        logger.info("publish_item_completed", item_id=item_id, platform=item["platform"], url=published.url)
        return True

    # -- status --------------------------------------------------------------

    def status(self, *, platform: str | None = None, organization_id: str | None = None) -> dict[str, Any]:
        """Per-phase counts and a sample of the rows each phase would pick."""
        now = to_iso8601(self._clock())
        scope = {"platform": platform, "organization_id": organization_id}
        counts = self._repo.phase_counts(now, **scope)
        samples = {
            "scheduled": self._repo.due_scheduled(now, **scope, limit=STATUS_SAMPLE_SIZE),
            "queued": self._repo.ready_to_publish(**scope, limit=STATUS_SAMPLE_SIZE),
            "retry": self._repo.ready_for_retry(now, **scope, limit=STATUS_SAMPLE_SIZE),
        }
        return {
            "config": {
                "max_items_per_run": self.max_items_per_run,
                "max_processing_time_ms": self.max_processing_time_ms,
            },
            "phases": {
                name: {
                    "count": counts[name],
                    "items": [
                        {
                            "id": row["id"],
                            "platform": row["platform"],
                            "priority": row["priority"],
                            "scheduled_for": row["scheduled_for"],
                            "retry_after": row["retry_after"],
                            "retry_count": row["retry_count"],
                        }
                        for row in rows
                    ],
                }
                for name, rows in samples.items()
            },
        }
