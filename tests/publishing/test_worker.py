"""Tests for rankbrnd.publishing.worker.PublishingWorker."""

from __future__ import annotations

import pytest

from rankbrnd.cms import CMSAdapter, CMSPost, PublishResult
from rankbrnd.core.errors import CMSError
from rankbrnd.core.repositories import ArticleRepository, PublishingQueueRepository
from rankbrnd.publishing.worker import PublishingWorker


class FakeAdapter(CMSAdapter):
    """Records published posts; raises *error* when set."""

    name = "Fake"

    def __init__(self, published: list[CMSPost], error: Exception | None = None):
        self._published = published
        self._error = error
        self.closed = False

    def is_configured(self) -> bool:
        return True

    def publish(self, post: CMSPost) -> PublishResult:
        if self._error is not None:
            raise self._error
        self._published.append(post)
        n = len(self._published)
        return PublishResult(success=True, post_id=str(n), url=f"https://blog.acme.example/p/{n}", metadata={"n": n})

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Monotonic source advanced by a fixed step per call."""

    def __init__(self, step: float = 0.0):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture()
def published():
    return []


@pytest.fixture()
def make_worker(conn, clock, published):
    def _make(error: Exception | None = None, **kwargs) -> PublishingWorker:
        adapters: list[FakeAdapter] = []

        def factory(platform, config):
            adapter = FakeAdapter(published, error)
            adapters.append(adapter)
            return adapter

        worker = PublishingWorker(conn, adapter_factory=factory, clock=clock, **kwargs)
        worker.adapters = adapters
        return worker

    return _make


@pytest.fixture()
def setup(make_org, make_article, make_integration):
    org = make_org()
    integration = make_integration(org["id"])
    return org, integration, make_article


def _get(conn, item_id):
    return PublishingQueueRepository(conn).get(item_id)


class TestPhases:
    def test_empty_run(self, make_worker):
        result = make_worker().run()
        assert [p.name for p in result.phases] == ["scheduled", "queued", "retry"]
        assert result.total_processed == 0

    def test_due_scheduled_item_is_queued_then_published(self, conn, make_worker, setup, make_queue_item, published):
        org, _, make_article = setup
        article = make_article(org["id"])
        item = make_queue_item(org["id"], article_id=article["id"], scheduled_for="2026-03-15T11:59:00.000Z")

        result = make_worker().run()

        assert result.phase("scheduled").succeeded == 1
        assert result.phase("queued").succeeded == 1
        assert _get(conn, item["id"])["status"] == "published"
        assert published[0].title == article["title"]

    def test_future_scheduled_item_is_left_alone(self, conn, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        article = make_article(org["id"])
        item = make_queue_item(org["id"], article_id=article["id"], scheduled_for="2026-03-16T09:00:00.000Z")

        result = make_worker().run()

        assert result.total_processed == 0
        assert _get(conn, item["id"])["status"] == "pending"

    def test_unscheduled_pending_is_published(self, conn, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        article = make_article(org["id"])
        item = make_queue_item(org["id"], article_id=article["id"])

        result = make_worker().run()

        assert result.phase("queued").succeeded == 1
        row = _get(conn, item["id"])
        assert row["status"] == "published"
        assert row["published_url"] == "https://blog.acme.example/p/1"
        assert row["published_post_id"] == "1"
        assert ArticleRepository(conn).get(article["id"])["status"] == "published"

    def test_priority_order(self, make_worker, setup, make_queue_item, published):
        org, _, make_article = setup
        low = make_article(org["id"], "Low")
        high = make_article(org["id"], "High")
        make_queue_item(org["id"], article_id=low["id"], status="queued", priority=1)
        make_queue_item(org["id"], article_id=high["id"], status="queued", priority=9)

        make_worker().run()

        assert [p.title for p in published] == ["High", "Low"]

    def test_retry_phase_picks_due_items(self, conn, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        article = make_article(org["id"])
        due = make_queue_item(
            org["id"], article_id=article["id"], retry_count=1, retry_after="2026-03-15T11:59:59.000Z"
        )
        later = make_queue_item(
            org["id"], article_id=article["id"], retry_count=1, retry_after="2026-03-15T12:05:00.000Z"
        )

        result = make_worker().run()

        assert result.phase("queued").processed == 0
        assert result.phase("retry").succeeded == 1
        assert _get(conn, due["id"])["status"] == "published"
        assert _get(conn, later["id"])["status"] == "pending"

    def test_platform_filter(self, conn, make_worker, setup, make_queue_item, make_integration):
        org, _, make_article = setup
        make_integration(org["id"], "shopify", {"shop_domain": "acme.myshopify.com", "access_token": "t"})
        article = make_article(org["id"])
        wp = make_queue_item(org["id"], article_id=article["id"], platform="wordpress")
        shop = make_queue_item(org["id"], article_id=article["id"], platform="shopify")

        make_worker().run(platform="shopify")

        assert _get(conn, shop["id"])["status"] == "published"
        assert _get(conn, wp["id"])["status"] == "pending"

    def test_limit_is_capped(self, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        article = make_article(org["id"])
        for _ in range(5):
            make_queue_item(org["id"], article_id=article["id"], status="queued")

        result = make_worker(max_items_per_run=3).run(limit=100)

        assert result.phase("queued").processed == 3

    def test_adapters_are_closed(self, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        make_queue_item(org["id"], article_id=make_article(org["id"])["id"])
        worker = make_worker()
        worker.run()
        assert worker.adapters and all(a.closed for a in worker.adapters)


class TestFailures:
    def test_transient_error_schedules_retry(self, conn, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        item = make_queue_item(org["id"], article_id=make_article(org["id"])["id"])

        result = make_worker(CMSError("WordPress API error", status_code=503)).run()

        assert result.phase("queued").failed == 1
        row = _get(conn, item["id"])
        assert row["status"] == "pending"
        assert row["error_type"] == "server_error"
        assert row["retry_after"] == "2026-03-15T12:00:01.000Z"

    def test_auth_error_fails_permanently(self, conn, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        item = make_queue_item(org["id"], article_id=make_article(org["id"])["id"])

        make_worker(CMSError("WordPress API error: Unauthorized", status_code=401)).run()

        row = _get(conn, item["id"])
        assert row["status"] == "failed"
        assert row["error_type"] == "auth"

    def test_missing_article_fails_without_retry(self, conn, make_worker, setup, make_queue_item):
        org, _, _ = setup
        item = make_queue_item(org["id"])

        make_worker().run()

        row = _get(conn, item["id"])
        assert row["status"] == "failed"
        assert row["error_type"] == "validation"

    def test_missing_integration_fails(self, conn, make_worker, make_org, make_article, make_queue_item):
        org = make_org()
        item = make_queue_item(org["id"], article_id=make_article(org["id"])["id"])

        make_worker().run()

        row = _get(conn, item["id"])
        assert row["status"] == "failed"
        assert "integration" in row["last_error"]

    def test_already_claimed_item_is_not_published(self, conn, make_worker, setup, make_queue_item, published):
        org, _, make_article = setup
        item = make_queue_item(org["id"], article_id=make_article(org["id"])["id"], status="publishing")

        assert make_worker().publish_item(item) is False
        assert published == []


class TestTimeBudget:
    def test_items_past_budget_are_skipped(self, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        article = make_article(org["id"])
        for _ in range(4):
            make_queue_item(org["id"], article_id=article["id"], status="queued")

        # Each monotonic() call advances 1s against a 2.5s budget
        worker = make_worker(max_processing_time_ms=2500, monotonic=FakeClock(step=1.0))
        result = worker.run()

        queued = result.phase("queued")
        assert queued.processed < 4
        assert queued.processed + queued.skipped == 4


class TestStatus:
    def test_counts_and_samples(self, make_worker, setup, make_queue_item):
        org, _, make_article = setup
        article = make_article(org["id"])
        make_queue_item(org["id"], article_id=article["id"], scheduled_for="2026-03-15T11:00:00.000Z")
        make_queue_item(org["id"], article_id=article["id"], status="queued")
        make_queue_item(org["id"], article_id=article["id"], retry_after="2026-03-15T11:30:00.000Z")

        status = make_worker(max_items_per_run=7).status()

        assert status["config"]["max_items_per_run"] == 7
        assert {k: v["count"] for k, v in status["phases"].items()} == {"scheduled": 1, "queued": 1, "retry": 1}
        assert len(status["phases"]["queued"]["items"]) == 1
