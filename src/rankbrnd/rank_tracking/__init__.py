"""Keyword rank tracking through the DataForSEO SERP API."""

from rankbrnd.rank_tracking.client import (
    COST_PER_REQUEST,
    BulkRankTrackingResult,
    DataForSEOClient,
    DomainPosition,
    KeywordOutcome,
    RankTrackingResult,
    TrackKeywordRequest,
)
from rankbrnd.rank_tracking.service import (
    KeywordToTrack,
    RankTrackerService,
    RankTrackingJobResult,
    normalize_domain,
)
from rankbrnd.rank_tracking.worker import (
    MAX_KEYWORDS_PER_RUN,
    MAX_PROCESSING_TIME_MS,
    RankTrackingWorker,
    RankWorkerResult,
)

__all__ = [
    "COST_PER_REQUEST",
    "MAX_KEYWORDS_PER_RUN",
    "MAX_PROCESSING_TIME_MS",
    "BulkRankTrackingResult",
    "DataForSEOClient",
    "DomainPosition",
    "KeywordOutcome",
    "KeywordToTrack",
    "RankTrackerService",
    "RankTrackingJobResult",
    "RankTrackingResult",
    "RankTrackingWorker",
    "RankWorkerResult",
    "TrackKeywordRequest",
    "normalize_domain",
]
