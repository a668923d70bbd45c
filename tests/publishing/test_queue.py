"""Tests for rankbrnd.publishing.queue.PublishingQueue state transitions."""

import pytest

from rankbrnd.publishing.queue import PublishingQueue
from rankbrnd.publishing.retry import PublishingErrorType, RetryConfig


@pytest.fixture()
def queue(conn, clock):
    return PublishingQueue(conn, clock=clock)


@pytest.fixture()
def org(make_org):
    return make_org()


class TestForwardTransitions:
    def test_pending_to_queued(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"])
        updated = queue.mark_queued(item["id"])
        assert updated["status"] == "queued"
        assert updated["queued_at"] == "2026-03-15T12:00:00.000Z"

    def test_queue_only_from_pending(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="failed")
        assert queue.mark_queued(item["id"]) is None

    def test_started_from_queued(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="queued")
        updated = queue.mark_started(item["id"])
        assert updated["status"] == "publishing"
        assert updated["started_at"] is not None

    def test_second_claim_is_rejected(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"])
        assert queue.mark_started(item["id"]) is not None
        assert queue.mark_started(item["id"]) is None

    def test_completed(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="publishing", retry_after="2026-03-15T11:00:00.000Z")
        updated = queue.mark_completed(
            item["id"],
            published_url="https://blog.acme.example/post",
            published_post_id="42",
            published_data={"slug": "post"},
        )
        assert updated["status"] == "published"
        assert updated["published_url"] == "https://blog.acme.example/post"
        assert updated["published_post_id"] == "42"
        assert updated["published_data"] == {"slug": "post"}
        assert updated["retry_after"] is None
        assert updated["completed_at"] == "2026-03-15T12:00:00.000Z"

    def test_completed_terminal_item_is_rejected(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="cancelled")
        assert queue.mark_completed(item["id"]) is None

    def test_missing_item(self, queue):
        assert queue.mark_queued("does-not-exist") is None
        assert queue.mark_failed("does-not-exist", "boom") is None

    def test_soft_deleted_item_is_invisible(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], deleted_at="2026-03-14T00:00:00.000Z")
        assert queue.mark_queued(item["id"]) is None


class TestMarkFailed:
    def test_retriable_failure_goes_back_to_pending(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="publishing")
        updated = queue.mark_failed(item["id"], "HTTP 503: Service Unavailable")
        assert updated["status"] == "pending"
        assert updated["retry_count"] == 1
        assert updated["error_type"] == "server_error"
        assert updated["last_error"] == "HTTP 503: Service Unavailable"
        assert updated["retry_after"] == "2026-03-15T12:00:01.000Z"

    def test_backoff_doubles(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="publishing", retry_count=1)
        updated = queue.mark_failed(item["id"], "network unreachable")
        assert updated["retry_count"] == 2
        assert updated["retry_after"] == "2026-03-15T12:00:02.000Z"

    def test_budget_exhausted_fails(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="publishing", retry_count=2, max_retries=3)
        updated = queue.mark_failed(item["id"], "HTTP 502 Bad Gateway")
        assert updated["status"] == "failed"
        assert updated["retry_count"] == 3
        assert updated["retry_after"] is None
        assert updated["failed_at"] == "2026-03-15T12:00:00.000Z"

    def test_auth_error_fails_immediately(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="publishing")
        updated = queue.mark_failed(item["id"], "HTTP 401: Unauthorized")
        assert updated["status"] == "failed"
        assert updated["error_type"] == "auth"
        assert updated["retry_count"] == 1

    def test_explicit_error_type_overrides_message(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="publishing")
        updated = queue.mark_failed(item["id"], "looks fine", PublishingErrorType.VALIDATION)
        assert updated["status"] == "failed"
        assert updated["error_type"] == "validation"

    def test_terminal_item_is_rejected(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="published")
        assert queue.mark_failed(item["id"], "HTTP 503") is None

    def test_custom_retry_config(self, conn, clock, org, make_queue_item):
        queue = PublishingQueue(conn, retry_config=RetryConfig(base_delay_ms=5000), clock=clock)
        item = make_queue_item(org["id"], status="publishing")
        updated = queue.mark_failed(item["id"], "timeout")
        assert updated["retry_after"] == "2026-03-15T12:00:05.000Z"


class TestCancelAndRetry:
    @pytest.mark.parametrize("status", ["pending", "queued"])
    def test_cancel_allowed(self, queue, org, make_queue_item, status):
        item = make_queue_item(org["id"], status=status)
        assert queue.cancel(item["id"])["status"] == "cancelled"

    @pytest.mark.parametrize("status", ["publishing", "published", "failed", "cancelled"])
    def test_cancel_rejected(self, queue, org, make_queue_item, status):
        item = make_queue_item(org["id"], status=status)
        assert queue.cancel(item["id"]) is None

    def test_retry_resets_budget(self, queue, org, make_queue_item):
        item = make_queue_item(
            org["id"],
            status="failed",
            retry_count=3,
            last_error="HTTP 503",
            error_type="server_error",
            failed_at="2026-03-15T11:00:00.000Z",
        )
        updated = queue.retry(item["id"])
        assert updated["status"] == "pending"
        assert updated["retry_count"] == 0
        assert updated["last_error"] is None
        assert updated["error_type"] is None
        assert updated["failed_at"] is None

    def test_retry_cancelled(self, queue, org, make_queue_item):
        item = make_queue_item(org["id"], status="cancelled")
        assert queue.retry(item["id"])["status"] == "pending"

    @pytest.mark.parametrize("status", ["pending", "queued", "publishing", "published"])
    def test_retry_rejected(self, queue, org, make_queue_item, status):
        item = make_queue_item(org["id"], status=status)
        assert queue.retry(item["id"]) is None
