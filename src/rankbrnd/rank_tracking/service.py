"""Rank tracking service: keywords in, ``rank_tracking`` rows out.

Selects active keywords, asks DataForSEO where the organization's domain
ranks, and upserts one row per keyword/device/location/day.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

from rankbrnd.core.errors import ConfigError, RankTrackerError
from rankbrnd.core.logging import get_logger
from rankbrnd.core.protocols import Connection
from rankbrnd.core.repositories import KeywordRepository, OrganizationRepository, RankTrackingRepository
from rankbrnd.core.timestamps import generate_ulid, to_iso8601, today_iso, utc_now
from rankbrnd.rank_tracking.client import DataForSEOClient, RankTrackingResult, TrackKeywordRequest

logger = get_logger(__name__)

DEFAULT_DOMAIN = "example.com"


@dataclass(frozen=True, slots=True)
class KeywordToTrack:
    keyword_id: str
    keyword: str
    domain: str
    product_id: str | None = None
    location: str | None = None
    device: str | None = None
    language: str = "en"


@dataclass
class RankTrackingJobResult:
    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    duration_ms: int = 0
    cost: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_domain(url: str) -> str:
    """``https://www.Example.com/path`` → ``example.com``."""
    candidate = url.strip()
    parsed = urlparse(candidate if candidate.startswith(("http://", "https://")) else f"https://{candidate}")
    host = (parsed.hostname or candidate).lower()
    return host[4:] if host.startswith("www.") else host


class RankTrackerService:
    """Tracks keyword positions and stores them.

    Parameters:
        conn: Database connection.
        client: DataForSEO client; ``None`` leaves the service unconfigured.
        sleep: Called with seconds between batches.
        clock: Source of "now" used for the record date.
    """

    def __init__(
        self,
        conn: Connection,
        client: DataForSEOClient | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.conn = conn
        self.client = client
        self._sleep = sleep
        self._clock = clock
        self._keywords = KeywordRepository(conn)
        self._orgs = OrganizationRepository(conn)
        self._ranks = RankTrackingRepository(conn)

    def is_configured(self) -> bool:
        return self.client is not None

    def estimate_cost(self, keyword_count: int) -> float:
        if self.client is None:
            return 0.0
        return self.client.estimate_cost(keyword_count)

    normalize_domain = staticmethod(normalize_domain)

    # -- selection -----------------------------------------------------------

    def get_keywords_to_track(
        self,
        *,
        organization_id: str | None = None,
        product_id: str | None = None,
        limit: int = 100,
        device: str | None = None,
        location: str | None = None,
    ) -> list[KeywordToTrack]:
        """Active keywords, least recently updated first."""
        rows = self._keywords.list_to_track(organization_id=organization_id, product_id=product_id, limit=limit)
        domain = self._orgs.get_domain(organization_id) or DEFAULT_DOMAIN
        return [
            KeywordToTrack(
                keyword_id=row["id"],
                keyword=row["keyword"],
                domain=domain,
                product_id=row.get("product_id"),
                location=location,
                device=device,
            )
            for row in rows
        ]

    # -- tracking ------------------------------------------------------------

    def _record(self, organization_id: str, result: RankTrackingResult, now: datetime) -> dict[str, Any]:
        top = result.top_position
        stamp = to_iso8601(now)
        return {
            "id": generate_ulid(),
            "organization_id": organization_id,
            "product_id": result.product_id,
            "keyword_id": result.keyword_id,
            "position": top.position,
            "url": top.url,
            "device": result.device,
            "location": result.location or "us",
            "date": today_iso(now),
            "search_volume": 0,
            "metadata": {
                "total_results": result.total_results,
                "all_positions": [
                    {"position": p.position, "url": p.url, "domain": p.domain} for p in result.positions
                ],
                "searched_at": result.searched_at,
            },
            "created_at": stamp,
            "updated_at": stamp,
        }

    def track_keywords(
        self,
        organization_id: str,
        keywords: list[KeywordToTrack],
        *,
        batch_size: int = 50,
        delay_between_batches_ms: int = 1000,
    ) -> RankTrackingJobResult:
        """Track *keywords* in batches and store the top position of each.

        A batch whose API call fails marks all of its keywords failed.

        Raises:
            ConfigError: no DataForSEO client.
        """
        if self.client is None:
            raise ConfigError("DataForSEO rank tracker not configured")

        started = time.perf_counter()
        job = RankTrackingJobResult(total=len(keywords))
        if not keywords:
            return job

        batch_size = max(1, batch_size)
        for start in range(0, len(keywords), batch_size):
            batch = keywords[start : start + batch_size]
            requests = [
                TrackKeywordRequest(
                    keyword=kw.keyword,
                    keyword_id=kw.keyword_id,
                    product_id=kw.product_id,
                    domain=normalize_domain(kw.domain),
                    location=kw.location,
                    device=kw.device or "desktop",
                    language=kw.language,
                )
                for kw in batch
            ]
            try:
                bulk = self.client.track_keywords(requests)
                job.cost += bulk.total_cost
                now = self._clock()
                records = [
                    self._record(organization_id, outcome.result, now)
                    for outcome in bulk.results
                    if outcome.success and outcome.result and outcome.result.positions and outcome.keyword_id
                ]
                job.successful += self._ranks.upsert_many(records)
                self.conn.commit()
                for outcome in bulk.results:
                    if not outcome.success:
                        job.failed += 1
                        job.errors.append({"keyword": outcome.keyword, "error": outcome.error or "Unknown error"})
            except RankTrackerError as exc:
                logger.error(
                    "rank_batch_failed",
                    organization_id=organization_id,
                    batch=start // batch_size + 1,
                    error=str(exc),
                )
                job.failed += len(batch)
                job.errors.extend({"keyword": kw.keyword, "error": str(exc)} for kw in batch)
            job.processed += len(batch)

            if start + batch_size < len(keywords):
                self._sleep(delay_between_batches_ms / 1000)

        job.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "rank_job_completed",
            organization_id=organization_id,
            total=job.total,
            successful=job.successful,
            failed=job.failed,
            duration_ms=job.duration_ms,
            cost=job.cost,
        )
        return job

    def track_single_keyword(
        self,
        keyword: str,
        domain: str,
        organization_id: str,
        *,
        keyword_id: str | None = None,
        product_id: str | None = None,
        location: str | None = None,
        device: str | None = None,
    ) -> dict[str, Any]:
        """Track one keyword now and upsert today's row."""
        if self.client is None:
            return {"success": False, "error": "DataForSEO rank tracker not configured"}
        try:
            result = self.client.track_keyword(
                TrackKeywordRequest(
                    keyword=keyword,
                    keyword_id=keyword_id or keyword,
                    product_id=product_id,
                    domain=normalize_domain(domain),
                    location=location,
                    device=device or "desktop",
                )
            )
        except RankTrackerError as exc:
            logger.error("rank_single_failed", keyword=keyword, error=str(exc))
            return {"success": False, "error": str(exc)}

        if not result.positions:
            return {"success": True, "error": "Domain not found in search results"}

        self._ranks.upsert(self._record(organization_id, result, self._clock()))
        self.conn.commit()
        top = result.top_position
        return {"success": True, "position": top.position, "url": top.url}

    def run_job(
        self,
        organization_id: str,
        *,
        product_id: str | None = None,
        device: str | None = None,
        location: str | None = None,
        limit: int = 100,
    ) -> RankTrackingJobResult:
        """Select and track one organization's keywords."""
        if self.client is None:
            raise ConfigError("DataForSEO rank tracker not configured")
        keywords = self.get_keywords_to_track(
            organization_id=organization_id,
            product_id=product_id,
            limit=limit,
            device=device,
            location=location,
        )
        if not keywords:
            return RankTrackingJobResult()
        return self.track_keywords(organization_id, keywords, batch_size=50, delay_between_batches_ms=1000)

    # -- reporting -----------------------------------------------------------

    def get_rank_history(
        self,
        keyword_id: str,
        *,
        device: str | None = None,
        location: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> list[dict[str, Any]]:
        return self._ranks.history(
            keyword_id, device=device, location=location, date_from=date_from, date_to=date_to
        )

    def get_rank_stats(
        self,
        keyword_id: str,
        *,
        device: str | None = None,
        location: str | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> dict[str, Any] | None:
        """Summary of a keyword's history; ``None`` when nothing is recorded.

        ``position_change`` is positive when the keyword moved up.
        """
        history = self.get_rank_history(
            keyword_id, device=device, location=location, date_from=date_from, date_to=date_to
        )
        if not history:
            return None
        positions = [row["position"] for row in history]
        return {
            "keyword_id": keyword_id,
            "current_position": positions[-1],
            "avg_position": round(sum(positions) / len(positions), 2),
            "best_position": min(positions),
            "worst_position": max(positions),
            "position_change": positions[0] - positions[-1],
            "total_records": len(history),
            "first_tracked": history[0]["date"],
            "last_tracked": history[-1]["date"],
        }
