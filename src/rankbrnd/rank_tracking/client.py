"""DataForSEO SERP client for rank tracking.

Posts Google organic "live advanced" tasks and extracts the positions at
which a target domain appears.

Docs: https://docs.dataforseo.com/v3/serp/google/organic/live/advanced/

Example:
    >>> client = DataForSEOClient("login", "password")
    >>> result = client.track_keyword(TrackKeywordRequest(keyword="best shoes", domain="example.com"))
    >>> result.positions[0].position
    4
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from rankbrnd.core.errors import RankTrackerError
from rankbrnd.core.logging import get_logger
from rankbrnd.core.timestamps import to_iso8601, utc_now

logger = get_logger(__name__)

SERP_ENDPOINT = "/serp/google/organic/live/advanced"
TASK_OK = 20000
COST_PER_REQUEST = 0.003
DEFAULT_LOCATION_CODE = 2840

LOCATION_CODES: dict[str, int] = {
    "us": 2840,
    "gb": 2826,
    "uk": 2826,
    "ca": 2124,
    "au": 2036,
    "de": 2276,
    "fr": 2250,
    "in": 2356,
}


def location_code_for(location: str | None) -> int:
    """Map an ISO country code to a DataForSEO location code (US default)."""
    if not location:
        return DEFAULT_LOCATION_CODE
    return LOCATION_CODES.get(location.lower(), DEFAULT_LOCATION_CODE)


def normalize_host(domain: str) -> str:
    domain = domain.lower()
    return domain[4:] if domain.startswith("www.") else domain


def domain_matches(candidate: str, target: str) -> bool:
    """True when *candidate* is *target* or one of its subdomains."""
    candidate, target = normalize_host(candidate), normalize_host(target)
    return candidate == target or candidate.endswith(f".{target}")


@dataclass(frozen=True, slots=True)
class TrackKeywordRequest:
    keyword: str
    domain: str
    keyword_id: str | None = None
    product_id: str | None = None
    location: str | None = None
    location_code: int | None = None
    language: str = "en"
    device: str = "desktop"
    depth: int = 100

    def to_task(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "location_code": self.location_code or location_code_for(self.location),
            "language_code": self.language or "en",
            "device": self.device or "desktop",
            "depth": self.depth or 100,
        }


@dataclass(frozen=True, slots=True)
class DomainPosition:
    position: int
    url: str
    domain: str
    title: str | None = None
    description: str | None = None


@dataclass
class RankTrackingResult:
    """Where one keyword's target domain ranks right now."""

    keyword: str
    keyword_id: str | None
    product_id: str | None
    positions: list[DomainPosition]
    device: str
    location: str
    location_code: int
    language_code: str
    total_results: int
    searched_at: str
    cost: float = 0.0

    @property
    def top_position(self) -> DomainPosition | None:
        return self.positions[0] if self.positions else None


@dataclass
class KeywordOutcome:
    keyword: str
    keyword_id: str | None
    success: bool
    result: RankTrackingResult | None = None
    error: str | None = None


@dataclass
class BulkRankTrackingResult:
    total: int
    successful: int = 0
    failed: int = 0
    results: list[KeywordOutcome] = field(default_factory=list)
    total_cost: float = 0.0
    duration_ms: int = 0


class DataForSEOClient:
    """Synchronous DataForSEO client over :class:`httpx.Client` with Basic auth."""

    def __init__(
        self,
        username: str,
        password: str,
        *,
        api_base_url: str = "https://api.dataforseo.com",
        api_version: str = "v3",
        timeout_ms: int = 60000,
        client: httpx.Client | None = None,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.api_version = api_version
        self.timeout_ms = timeout_ms
        self._client = client or httpx.Client()
        self._auth = httpx.BasicAuth(username, password)

    @classmethod
    def from_settings(cls, settings: Any, *, client: httpx.Client | None = None) -> DataForSEOClient | None:
        """Build a client from :class:`RankBrndSettings`; ``None`` without credentials."""
        if not settings.dataforseo_configured:
            logger.warning("dataforseo_not_configured")
            return None
        return cls(
            settings.dataforseo_username,
            settings.dataforseo_password,
            api_base_url=settings.dataforseo_api_base_url,
            api_version=settings.dataforseo_api_version,
            timeout_ms=settings.dataforseo_timeout_ms,
            client=client,
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def estimate_cost(keyword_count: int) -> float:
        return keyword_count * COST_PER_REQUEST

    def _post(self, tasks: list[dict[str, Any]]) -> dict[str, Any]:
        url = f"{self.api_base_url}/{self.api_version}{SERP_ENDPOINT}"
        try:
            response = self._client.post(url, json=tasks, auth=self._auth, timeout=self.timeout_ms / 1000)
        except httpx.TimeoutException as exc:
            raise RankTrackerError(f"Request timeout after {self.timeout_ms}ms", code=408, cause=exc) from exc
        except httpx.TransportError as exc:
            raise RankTrackerError(str(exc), code=500, cause=exc) from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            message = (data.get("status_message") or data.get("message")) if isinstance(data, dict) else None
            raise RankTrackerError(
                message or response.reason_phrase or "Unknown error occurred",
                code=response.status_code,
            )
        if not isinstance(data, dict):
            raise RankTrackerError("Malformed response from DataForSEO", code=502)
        return data

    @staticmethod
    def _positions(task_result: dict[str, Any], target_domain: str) -> list[DomainPosition]:
        positions: list[DomainPosition] = []
        for item in task_result.get("items") or []:
            if item.get("type") != "organic":
                continue
            if domain_matches(item.get("domain", ""), target_domain):
                positions.append(
                    DomainPosition(
                        position=int(item["rank_absolute"]),
                        url=item.get("url", ""),
                        domain=item.get("domain", ""),
                        title=item.get("title"),
                        description=item.get("description"),
                    )
                )
        return positions

    def _result(self, request: TrackKeywordRequest, task: dict[str, Any], task_result: dict[str, Any]) -> RankTrackingResult:
        payload = request.to_task()
        return RankTrackingResult(
            keyword=request.keyword,
            keyword_id=request.keyword_id,
            product_id=request.product_id,
            positions=self._positions(task_result, request.domain),
            device=payload["device"],
            location=(request.location or "us").lower(),
            location_code=payload["location_code"],
            language_code=payload["language_code"],
            total_results=int(task_result.get("total_results_count") or 0),
            searched_at=to_iso8601(utc_now()),
            cost=float(task.get("cost") or 0),
        )

    def track_keyword(self, request: TrackKeywordRequest) -> RankTrackingResult:
        """Track one keyword.

        Raises:
            RankTrackerError: HTTP failure, task failure, or empty result.
        """
        response = self._post([request.to_task()])
        tasks = response.get("tasks") or []
        task = tasks[0] if tasks else {}
        if task.get("status_code") not in (None, TASK_OK):
            raise RankTrackerError(task.get("status_message") or "DataForSEO task failed", code=500)
        results = task.get("result") or []
        if not results:
            raise RankTrackerError("No results returned from DataForSEO", code=500)
        return self._result(request, task, results[0])

    def track_keywords(self, requests: list[TrackKeywordRequest]) -> BulkRankTrackingResult:
        """Track several keywords in one API call.

        Task-level failures become failed outcomes; an HTTP failure of the
        whole call raises :class:`RankTrackerError`.
        """
        started = time.perf_counter()
        bulk = BulkRankTrackingResult(total=len(requests))
        if not requests:
            return bulk

        response = self._post([r.to_task() for r in requests])
        tasks = response.get("tasks") or []

        for index, request in enumerate(requests):
            task = tasks[index] if index < len(tasks) else {}
            bulk.total_cost += float(task.get("cost") or 0)
            results = task.get("result") or []
            if task.get("status_code") == TASK_OK and results:
                bulk.results.append(
                    KeywordOutcome(
                        keyword=request.keyword,
                        keyword_id=request.keyword_id,
                        success=True,
                        result=self._result(request, task, results[0]),
                    )
                )
                bulk.successful += 1
            else:
                bulk.results.append(
                    KeywordOutcome(
                        keyword=request.keyword,
                        keyword_id=request.keyword_id,
                        success=False,
                        error=task.get("status_message") or "Unknown error from DataForSEO",
                    )
                )
                bulk.failed += 1

        bulk.duration_ms = int((time.perf_counter() - started) * 1000)
        return bulk
