"""
Typed request objects for operations.

Each dataclass is the *input* contract of one operation function. Requests
carry validated, transport-agnostic data only: no raw HTTP bodies and no
typer options.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ------------------------------------------------------------------ #
# Publishing queue
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class CreateQueueItemRequest:
    """Request for :func:`rankbrnd.ops.publishing_queue.create_queue_item`.

    Attributes:
        organization_id: Owning organization.
        platform: Target CMS (``wordpress``, ``shopify``, ...).
        article_id: Article to publish.
        integration_id: Integration whose credentials are used. When
            omitted the worker picks the organization's active integration
            for *platform*.
        priority: 0-100, higher is published first.
        max_retries: Automatic retries before the item fails for good.
        scheduled_for: UTC ISO timestamp; ``None`` publishes on the next run.
    """

    organization_id: str = ""
    platform: str = ""
    article_id: str | None = None
    product_id: str | None = None
    integration_id: str | None = None
    priority: int = 0
    max_retries: int = 3
    scheduled_for: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class QueueItemRequest:
    """Request naming a single queue item (get, cancel, retry, start, ...)."""

    item_id: str = ""


@dataclass(frozen=True, slots=True)
class ListQueueItemsRequest:
    organization_id: str | None = None
    product_id: str | None = None
    article_id: str | None = None
    status: str | None = None
    platform: str | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class UpdateQueueItemRequest:
    """Fields left as ``None`` are not changed."""

    item_id: str = ""
    priority: int | None = None
    scheduled_for: str | None = None
    max_retries: int | None = None
    metadata: dict[str, Any] | None = None
    integration_id: str | None = None


@dataclass(frozen=True, slots=True)
class MarkCompletedRequest:
    item_id: str = ""
    published_url: str | None = None
    published_post_id: str | None = None
    published_data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MarkFailedRequest:
    """``error_type`` is derived from the message when omitted."""

    item_id: str = ""
    error_message: str = ""
    error_type: str | None = None


@dataclass(frozen=True, slots=True)
class DeleteQueueItemRequest:
    item_id: str = ""
    hard: bool = False


@dataclass(frozen=True, slots=True)
class BulkQueueRequest:
    """Queue up to 50 articles with shared settings."""

    organization_id: str = ""
    article_ids: list[str] = field(default_factory=list)
    platform: str = ""
    integration_id: str | None = None
    product_id: str | None = None
    priority: int = 0
    scheduled_for: str | None = None


@dataclass(frozen=True, slots=True)
class QueueStatsRequest:
    organization_id: str | None = None


@dataclass(frozen=True, slots=True)
class ReadyForRetryRequest:
    platform: str | None = None
    limit: int = 50


# ------------------------------------------------------------------ #
# Scheduling
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ScheduleArticleRequest:
    """``scheduled_for`` is local time in *timezone* unless it carries an offset."""

    organization_id: str = ""
    article_id: str = ""
    platform: str = ""
    scheduled_for: str = ""
    timezone: str = "UTC"
    integration_id: str | None = None
    product_id: str | None = None
    priority: int = 0


@dataclass(frozen=True, slots=True)
class RescheduleRequest:
    item_id: str = ""
    scheduled_for: str = ""
    timezone: str = "UTC"


@dataclass(frozen=True, slots=True)
class ListScheduledRequest:
    organization_id: str | None = None
    timezone: str = "UTC"
    limit: int = 50


# ------------------------------------------------------------------ #
# Workers
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class RunPublishWorkerRequest:
    platform: str | None = None
    organization_id: str | None = None
    limit: int | None = None


@dataclass(frozen=True, slots=True)
class RunRankWorkerRequest:
    organization_id: str | None = None
    product_id: str | None = None
    device: str | None = None
    location: str | None = None
    limit: int | None = None


# ------------------------------------------------------------------ #
# Rank tracking
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ListRankRecordsRequest:
    organization_id: str | None = None
    product_id: str | None = None
    keyword_id: str | None = None
    device: str | None = None
    location: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class CreateRankRecordRequest:
    """Manual record; an existing row for the same keyword/device/location/date is replaced."""

    organization_id: str = ""
    keyword_id: str = ""
    position: int = 0
    date: str | None = None
    url: str | None = None
    device: str = "desktop"
    location: str = "us"
    product_id: str | None = None
    search_volume: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RankRecordRequest:
    record_id: str = ""


@dataclass(frozen=True, slots=True)
class RankHistoryRequest:
    keyword_id: str = ""
    organization_id: str | None = None
    device: str | None = None
    location: str | None = None
    date_from: str | None = None
    date_to: str | None = None


@dataclass(frozen=True, slots=True)
class TrackKeywordNowRequest:
    organization_id: str = ""
    keyword_id: str = ""
    device: str | None = None
    location: str | None = None


# ------------------------------------------------------------------ #
# Flows
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class FlowRequest:
    user_id: str = ""
    flow: str = ""


@dataclass(frozen=True, slots=True)
class FlowActionRequest:
    """One navigation or save action on a user's flow.

    ``action`` is one of ``start``, ``next``, ``previous``, ``go_to``,
    ``skip``, ``complete``, ``reset``, ``save`` (wizard data, ``key`` names
    the section) or ``achievement`` (onboarding flag in ``key``).
    """

    user_id: str = ""
    flow: str = ""
    action: str = ""
    step_id: str | None = None
    key: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


# ------------------------------------------------------------------ #
# Organizations and team
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class CreateOrganizationRequest:
    """The creator becomes the organization's owner."""

    name: str = ""
    owner_user_id: str = ""
    slug: str | None = None
    domain: str | None = None
    tier: str = "free"
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class OrganizationRequest:
    organization_id: str = ""


@dataclass(frozen=True, slots=True)
class ListOrganizationsRequest:
    user_id: str | None = None


@dataclass(frozen=True, slots=True)
class UpdateOrganizationRequest:
    """``settings`` is merged into the stored settings."""

    organization_id: str = ""
    name: str | None = None
    domain: str | None = None
    settings: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class AddTeamMemberRequest:
    organization_id: str = ""
    user_id: str = ""
    role: str = "viewer"


@dataclass(frozen=True, slots=True)
class ChangeRoleRequest:
    organization_id: str = ""
    user_id: str = ""
    role: str = ""


@dataclass(frozen=True, slots=True)
class TeamMemberRequest:
    organization_id: str = ""
    user_id: str = ""


# ------------------------------------------------------------------ #
# Keywords, articles, integrations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class CreateKeywordRequest:
    organization_id: str = ""
    keyword: str = ""
    product_id: str | None = None
    search_volume: int | None = None
    difficulty: int | None = None
    intent: str | None = None


@dataclass(frozen=True, slots=True)
class ListKeywordsRequest:
    organization_id: str = ""
    product_id: str | None = None
    active: bool | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class SetKeywordActiveRequest:
    keyword_id: str = ""
    active: bool = True


@dataclass(frozen=True, slots=True)
class CreateArticleRequest:
    organization_id: str = ""
    title: str = ""
    content: str = ""
    content_html: str | None = None
    tags: list[str] = field(default_factory=list)
    canonical_url: str | None = None
    keyword_id: str | None = None
    product_id: str | None = None


@dataclass(frozen=True, slots=True)
class ArticleRequest:
    article_id: str = ""


@dataclass(frozen=True, slots=True)
class ListArticlesRequest:
    organization_id: str = ""
    product_id: str | None = None
    status: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class CreateIntegrationRequest:
    organization_id: str = ""
    platform: str = ""
    name: str = ""
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class IntegrationRequest:
    integration_id: str = ""


@dataclass(frozen=True, slots=True)
class ListIntegrationsRequest:
    organization_id: str = ""
    platform: str | None = None
