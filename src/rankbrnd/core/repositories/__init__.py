"""Repositories for rankbrnd tables.

Each repository extends :class:`~rankbrnd.core.repository.BaseRepository`
and owns the SQL for one aggregate. Ops functions in ``rankbrnd.ops``
use these instead of inline SQL.

Architecture::

    ┌────────────────────────────────────────────────────────────────┐
    │  ops/publishing_queue.py, ops/rank_tracking.py, ...            │
    └────────────────────────────┬───────────────────────────────────┘
                                 │ uses
                                 ▼
    ┌────────────────────────────────────────────────────────────────┐
    │  organizations.py     - OrganizationRepository,                │
    │                         TeamMemberRepository                   │
    │  content.py           - KeywordRepository, ArticleRepository,  │
    │                         IntegrationRepository                  │
    │  publishing_queue.py  - PublishingQueueRepository              │
    │  rank_tracking.py     - RankTrackingRepository                 │
    │  flow_progress.py     - FlowProgressRepository                 │
    └────────────────────────────────────────────────────────────────┘
"""

from rankbrnd.core.repositories._helpers import _build_where
from rankbrnd.core.repositories.content import (
    ArticleRepository,
    IntegrationRepository,
    KeywordRepository,
)
from rankbrnd.core.repositories.flow_progress import FlowProgressRepository
from rankbrnd.core.repositories.organizations import OrganizationRepository, TeamMemberRepository
from rankbrnd.core.repositories.publishing_queue import PublishingQueueRepository
from rankbrnd.core.repositories.rank_tracking import RankTrackingRepository

__all__ = [
    "_build_where",
    "ArticleRepository",
    "FlowProgressRepository",
    "IntegrationRepository",
    "KeywordRepository",
    "OrganizationRepository",
    "PublishingQueueRepository",
    "RankTrackingRepository",
    "TeamMemberRepository",
]
