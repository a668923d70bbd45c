"""
Domain-specific Pydantic schemas for the API layer.

These mirror the ops-layer dataclasses as Pydantic models so they get
JSON serialisation and OpenAPI docs. The real types live in
``rankbrnd.ops.responses``; request bodies map onto
``rankbrnd.ops.requests``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

# ── Status Enums (documented) ────────────────────────────────────────────

QueueStatus = Literal["pending", "queued", "publishing", "published", "failed", "cancelled"]
"""
Publishing queue status values:

- ``pending``: Waiting for its schedule, a retry window, or the next run
- ``queued``: Schedule reached, picked up on the next worker pass
- ``publishing``: A worker is sending it to the CMS
- ``published``: Live on the CMS
- ``failed``: Retries exhausted or a non-retriable error
- ``cancelled``: Cancelled before publishing started
"""

Device = Literal["desktop", "mobile"]


# ── Publishing queue ─────────────────────────────────────────────────────


class QueueItemSchema(BaseModel):
    id: str
    organization_id: str
    platform: str
    status: QueueStatus
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
    published_data: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None


class BulkQueueErrorSchema(BaseModel):
    article_id: str
    error: str


class BulkQueueResultSchema(BaseModel):
    created: list[QueueItemSchema] = Field(default_factory=list)
    errors: list[BulkQueueErrorSchema] = Field(default_factory=list)


class QueueStatsSchema(BaseModel):
    pending: int = 0
    queued: int = 0
    publishing: int = 0
    published: int = 0
    failed: int = 0
    cancelled: int = 0
    total: int = 0


class RetryStateSchema(BaseModel):
    """Retry bookkeeping for a queue item.

    ``next_retry_in`` is milliseconds until the retry window opens.
    """

    retry_count: int
    max_retries: int
    last_error: str | None = None
    error_type: str | None = None
    retry_after: str | None = None
    can_retry: bool
    next_retry_in: int = 0


class ScheduledItemSchema(BaseModel):
    item: QueueItemSchema
    timezone: str
    scheduled_for_local: str
    relative_time: str


class CreateQueueItemBody(BaseModel):
    organization_id: str
    platform: str
    article_id: str | None = None
    product_id: str | None = None
    integration_id: str | None = None
    priority: int = 0
    max_retries: int = 3
    scheduled_for: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateQueueItemBody(BaseModel):
    priority: int | None = None
    scheduled_for: str | None = None
    max_retries: int | None = None
    metadata: dict[str, Any] | None = None
    integration_id: str | None = None


class MarkCompletedBody(BaseModel):
    published_url: str | None = None
    published_post_id: str | None = None
    published_data: dict[str, Any] = Field(default_factory=dict)


class MarkFailedBody(BaseModel):
    error_message: str
    error_type: str | None = None


class BulkQueueBody(BaseModel):
    organization_id: str
    article_ids: list[str]
    platform: str
    integration_id: str | None = None
    product_id: str | None = None
    priority: int = 0
    scheduled_for: str | None = None


class ScheduleArticleBody(BaseModel):
    """``scheduled_for`` is wall-clock time in ``timezone`` unless it has an offset."""

    organization_id: str
    article_id: str
    platform: str
    scheduled_for: str
    timezone: str = "UTC"
    integration_id: str | None = None
    product_id: str | None = None
    priority: int = 0


class RescheduleBody(BaseModel):
    scheduled_for: str
    timezone: str = "UTC"


# ── Workers ──────────────────────────────────────────────────────────────


class RunPublishWorkerBody(BaseModel):
    platform: str | None = None
    organization_id: str | None = None
    limit: int | None = Field(default=None, ge=1)


class RunRankWorkerBody(BaseModel):
    organization_id: str | None = None
    product_id: str | None = None
    device: Device | None = None
    location: str | None = None
    limit: int | None = Field(default=None, ge=1)


# ── Rank tracking ────────────────────────────────────────────────────────


class RankRecordSchema(BaseModel):
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
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None


class CreateRankRecordBody(BaseModel):
    organization_id: str
    keyword_id: str
    position: int
    date: str | None = None
    url: str | None = None
    device: str = "desktop"
    location: str = "us"
    product_id: str | None = None
    search_volume: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)


class TrackKeywordBody(BaseModel):
    organization_id: str
    keyword_id: str
    device: Device | None = None
    location: str | None = None


# ── Flows ────────────────────────────────────────────────────────────────


class FlowActionBody(BaseModel):
    """One step action: start, next, previous, go_to, skip, complete, reset, save or achievement."""

    action: str
    step_id: str | None = None
    key: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


# ── Organizations and team ───────────────────────────────────────────────


class OrganizationSchema(BaseModel):
    id: str
    name: str
    slug: str
    domain: str | None = None
    tier: str = "free"
    settings: dict[str, Any] = Field(default_factory=dict)
    active: bool = True
    role: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class CreateOrganizationBody(BaseModel):
    name: str
    owner_user_id: str | None = None
    slug: str | None = None
    domain: str | None = None
    tier: str = "free"
    settings: dict[str, Any] = Field(default_factory=dict)


class UpdateOrganizationBody(BaseModel):
    name: str | None = None
    domain: str | None = None
    settings: dict[str, Any] | None = None


class TeamMemberSchema(BaseModel):
    organization_id: str
    user_id: str
    role: str
    role_display_name: str = ""
    created_at: str | None = None
    updated_at: str | None = None


class AddTeamMemberBody(BaseModel):
    user_id: str
    role: str = "viewer"


class ChangeRoleBody(BaseModel):
    role: str


# ── Keywords, articles, integrations ─────────────────────────────────────


class KeywordSchema(BaseModel):
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


class CreateKeywordBody(BaseModel):
    organization_id: str
    keyword: str
    product_id: str | None = None
    search_volume: int | None = None
    difficulty: int | None = None
    intent: str | None = None


class SetKeywordActiveBody(BaseModel):
    active: bool


class ArticleSchema(BaseModel):
    id: str
    organization_id: str
    title: str
    status: str = "draft"
    content: str = ""
    content_html: str | None = None
    tags: list[str] = Field(default_factory=list)
    canonical_url: str | None = None
    keyword_id: str | None = None
    product_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class CreateArticleBody(BaseModel):
    organization_id: str
    title: str
    content: str = ""
    content_html: str | None = None
    tags: list[str] = Field(default_factory=list)
    canonical_url: str | None = None
    keyword_id: str | None = None
    product_id: str | None = None


class IntegrationSchema(BaseModel):
    """An integration; secret config values are returned as ``***``."""

    id: str
    organization_id: str
    platform: str
    name: str
    config: dict[str, Any] = Field(default_factory=dict)
    active: bool = True
    created_at: str | None = None
    updated_at: str | None = None


class CreateIntegrationBody(BaseModel):
    organization_id: str
    platform: str
    name: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
