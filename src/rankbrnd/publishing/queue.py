"""Publishing queue lifecycle.

Status machine::

    pending ──► queued ──► publishing ──► published
       ▲  │                    │
       │  └──► cancelled       ├──► pending (retry_after set, retriable)
       │            │          └──► failed
       └────────────┴── retry ◄──────┘

Every transition is a guarded ``UPDATE ... AND status IN (...)`` so a row
claimed by one worker cannot be claimed again by another.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from rankbrnd.core.logging import get_logger
from rankbrnd.core.protocols import Connection
from rankbrnd.core.repositories import PublishingQueueRepository
from rankbrnd.core.timestamps import to_iso8601, utc_now
from rankbrnd.publishing.retry import (
    DEFAULT_RETRY_CONFIG,
    PublishingErrorType,
    RetryConfig,
    calculate_retry_delay,
    classify_error,
    is_retriable_error,
)

logger = get_logger(__name__)

STATUSES = ("pending", "queued", "publishing", "published", "failed", "cancelled")
PLATFORMS = (
    "wordpress",
    "webflow",
    "shopify",
    "ghost",
    "notion",
    "squarespace",
    "wix",
    "contentful",
    "strapi",
    "custom",
)

CANCELLABLE_STATUSES = ("pending", "queued")
RETRYABLE_STATUSES = ("failed", "cancelled")
EDITABLE_STATUSES = ("pending", "queued", "failed")
STARTABLE_STATUSES = ("pending", "queued")
IN_FLIGHT_STATUSES = ("pending", "queued", "publishing")


class PublishingQueue:
    """State transitions for ``publishing_queue`` rows.

    Each method returns the updated row, or ``None`` when the row does not
    exist or is not in a status the transition accepts.
    """

    def __init__(
        self,
        conn: Connection,
        *,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.conn = conn
        self.repo = PublishingQueueRepository(conn)
        self.retry_config = retry_config
        self._clock = clock

    def _apply(self, item_id: str, data: dict[str, Any], from_statuses: tuple[str, ...]) -> dict[str, Any] | None:
        data = {**data, "updated_at": to_iso8601(self._clock())}
        changed = self.repo.transition(item_id, data, from_statuses=from_statuses)
        self.conn.commit()
        if not changed:
            return None
        return self.repo.get(item_id)

    def mark_queued(self, item_id: str) -> dict[str, Any] | None:
        return self._apply(
            item_id,
            {"status": "queued", "queued_at": to_iso8601(self._clock())},
            ("pending",),
        )

    def mark_started(self, item_id: str) -> dict[str, Any] | None:
        return self._apply(
            item_id,
            {"status": "publishing", "started_at": to_iso8601(self._clock())},
            STARTABLE_STATUSES,
        )

    def mark_completed(
        self,
        item_id: str,
        *,
        published_url: str | None = None,
        published_post_id: str | None = None,
        published_data: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        return self._apply(
            item_id,
            {
                "status": "published",
                "completed_at": to_iso8601(self._clock()),
                "published_url": published_url,
                "published_post_id": published_post_id,
                "published_data": published_data or {},
                "retry_after": None,
            },
            IN_FLIGHT_STATUSES,
        )

    def mark_failed(
        self,
        item_id: str,
        error_message: str,
        error_type: PublishingErrorType | str | None = None,
    ) -> dict[str, Any] | None:
        """Record a failed attempt and either schedule a retry or give up.

        A retriable failure with attempts left goes back to ``pending``
        with ``retry_after`` set; anything else ends in ``failed``.
        """
        item = self.repo.get(item_id)
        if item is None or item["status"] not in IN_FLIGHT_STATUSES:
            return None

        if error_type is None:
            error_type = classify_error(error_message, self.retry_config).type
        error_type = PublishingErrorType(error_type)

        now = self._clock()
        retry_count = int(item["retry_count"] or 0) + 1
        max_retries = int(item["max_retries"])
        data: dict[str, Any] = {
            "retry_count": retry_count,
            "last_error": error_message,
            "error_type": error_type.value,
        }
        if is_retriable_error(error_type) and retry_count < max_retries:
            delay_ms = calculate_retry_delay(retry_count - 1, config=self.retry_config)
            data["status"] = "pending"
            data["retry_after"] = to_iso8601(now + timedelta(milliseconds=delay_ms))
            logger.warning(
                "publish_retry_scheduled",
                item_id=item_id,
                retry_count=retry_count,
                error_type=error_type.value,
                delay_ms=delay_ms,
            )
        else:
            data["status"] = "failed"
            data["failed_at"] = to_iso8601(now)
            data["retry_after"] = None
            logger.error(
                "publish_item_failed",
                item_id=item_id,
                retry_count=retry_count,
                error_type=error_type.value,
                error=error_message,
            )
        return self._apply(item_id, data, IN_FLIGHT_STATUSES)

    def cancel(self, item_id: str) -> dict[str, Any] | None:
        return self._apply(item_id, {"status": "cancelled"}, CANCELLABLE_STATUSES)

    def retry(self, item_id: str) -> dict[str, Any] | None:
        """Manual retry: back to ``pending`` with a fresh retry budget."""
        return self._apply(
            item_id,
            {
                "status": "pending",
                "retry_count": 0,
                "retry_after": None,
                "last_error": None,
                "error_type": None,
                "failed_at": None,
            },
            RETRYABLE_STATUSES,
        )
