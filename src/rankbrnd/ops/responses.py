"""
Typed response objects for operations.

Each dataclass is the *output* of one operation beyond the generic
:class:`OperationResult` envelope. Responses carry domain data only:
no HTTP status codes and no CLI formatting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_SECRET_MARKERS = ("password", "secret", "token", "key")


def _flag(value: Any) -> bool:
    return bool(value)


# ------------------------------------------------------------------ #
# Database
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class DatabaseInitResult:
    tables_created: list[str]
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class TableCount:
    table: str
    count: int


@dataclass(frozen=True, slots=True)
class DatabaseHealth:
    connected: bool
    backend: str = "unknown"
    table_count: int = 0
    latency_ms: float = 0.0


# ------------------------------------------------------------------ #
# Publishing queue
# ------------------------------------------------------------------ #


@dataclass(slots=True)
class QueueItem:
    """A publishing queue row."""

    id: str
    organization_id: str
    platform: str
    status: str
    product_id: str | None = None
    article_id: str | None = None
    integration_id: str | None = None
    priority: int = 0
    retry_count: int = 0
    max_retries: int = 3
    last_error: str | None = None
    error_type: str | None = None
    retry_after: str | None = None
    scheduled_for: str | None = None
    queued_at: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    failed_at: str | None = None
    published_url: str | None = None
    published_post_id: str | None = None
    published_data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> QueueItem:
        return cls(**{name: row.get(name) for name in cls.__dataclass_fields__ if name in row})


@dataclass(frozen=True, slots=True)
class BulkQueueError:
    article_id: str
    error: str


@dataclass(slots=True)
class BulkQueueResult:
    created: list[QueueItem] = field(default_factory=list)
    errors: list[BulkQueueError] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class QueueStats:
    pending: int = 0
    queued: int = 0
    publishing: int = 0
    published: int = 0
    failed: int = 0
    cancelled: int = 0
    total: int = 0


@dataclass(slots=True)
class ScheduledItem:
    """A future publish with its time shown in the viewer's timezone."""

    item: QueueItem
    timezone: str
    scheduled_for_local: str
    relative_time: str


# ------------------------------------------------------------------ #
# Rank tracking
# ------------------------------------------------------------------ #


@dataclass(slots=True)
class RankRecord:
    id: str
    organization_id: str
    keyword_id: str
    position: int
    date: str
    device: str = "desktop"
    location: str = "us"
    url: str | None = None
    product_id: str | None = None
    search_volume: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> RankRecord:
        return cls(**{name: row.get(name) for name in cls.__dataclass_fields__ if name in row})


# ------------------------------------------------------------------ #
# Organizations and team
# ------------------------------------------------------------------ #


@dataclass(slots=True)
class OrganizationSummary:
    id: str
    name: str
    slug: str
    domain: str | None = None
    tier: str = "free"
    settings: dict[str, Any] = field(default_factory=dict)
    active: bool = True
    role: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> OrganizationSummary:
        return cls(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            domain=row.get("domain"),
            tier=row.get("tier") or "free",
            settings=row.get("settings") or {},
            active=_flag(row.get("active", 1)),
            role=row.get("role"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True, slots=True)
class TeamMember:
    organization_id: str
    user_id: str
    role: str
    role_display_name: str = ""
    created_at: str | None = None
    updated_at: str | None = None


# ------------------------------------------------------------------ #
# Keywords, articles, integrations
# ------------------------------------------------------------------ #


@dataclass(slots=True)
class KeywordSummary:
    id: str
    organization_id: str
    keyword: str
    product_id: str | None = None
    search_volume: int | None = None
    difficulty: int | None = None
    intent: str | None = None
    active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> KeywordSummary:
        data = {name: row.get(name) for name in cls.__dataclass_fields__ if name in row}
        data["active"] = _flag(row.get("active", 1))
        return cls(**data)


@dataclass(slots=True)
class ArticleSummary:
    id: str
    organization_id: str
    title: str
    status: str = "draft"
    content: str = ""
    content_html: str | None = None
    tags: list[str] = field(default_factory=list)
    canonical_url: str | None = None
    keyword_id: str | None = None
    product_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ArticleSummary:
        data = {name: row.get(name) for name in cls.__dataclass_fields__ if name in row}
        data["tags"] = list(row.get("tags") or [])
        return cls(**data)


@dataclass(slots=True)
class IntegrationSummary:
    """An integration with credential values masked."""

    id: str
    organization_id: str
    platform: str
    name: str
    config: dict[str, Any] = field(default_factory=dict)
    active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> IntegrationSummary:
        config = {
            key: "***" if any(marker in key.lower() for marker in _SECRET_MARKERS) else value
            for key, value in (row.get("config") or {}).items()
        }
        return cls(
            id=row["id"],
            organization_id=row["organization_id"],
            platform=row["platform"],
            name=row["name"],
            config=config,
            active=_flag(row.get("active", 1)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
