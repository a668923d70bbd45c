"""Tests for rankbrnd.rank_tracking.worker.RankTrackingWorker."""

import pytest

from rankbrnd.rank_tracking.service import RankTrackerService
from rankbrnd.rank_tracking.worker import RankTrackingWorker


class Ticker:
    def __init__(self, step: float):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture()
def make_worker(conn, dataforseo, clock):
    def _make(**kwargs) -> RankTrackingWorker:
        service = RankTrackerService(conn, dataforseo, sleep=lambda s: None, clock=clock)
        return RankTrackingWorker(conn, service, clock=clock, **kwargs)

    return _make


class TestRun:
    def test_single_organization(self, make_worker, fake_serp, make_org, make_keyword):
        org = make_org()
        make_keyword(org["id"], "alpha")
        make_keyword(org["id"], "beta")
        fake_serp.ranks = {"alpha": 3}

        result = make_worker().run(organization_id=org["id"])

        assert result.organizations == 1
        assert result.keywords_processed == 2
        assert result.successful == 1
        assert result.failed == 1
        assert result.errors[0]["organization_id"] == org["id"]
        assert result.errors[0]["keyword"] == "beta"

    def test_all_organizations_share_budget(self, make_worker, fake_serp, make_org, make_keyword):
        first, second = make_org("One"), make_org("Two")
        for org in (first, second):
            for i in range(4):
                make_keyword(org["id"], f"{org['name']} {i}")
        fake_serp.ranks = {f"{name} {i}": i + 1 for name in ("One", "Two") for i in range(4)}

        result = make_worker().run(limit=4)

        assert result.organizations == 2
        # 4 // 2 orgs = 2 keywords each
        assert result.keywords_processed == 4
        assert result.successful == 4

    def test_limit_capped(self, make_worker, fake_serp, make_org, make_keyword):
        org = make_org()
        for i in range(5):
            make_keyword(org["id"], f"k{i}")
        fake_serp.ranks = {f"k{i}": 1 for i in range(5)}

        result = make_worker(max_keywords_per_run=2).run(organization_id=org["id"], limit=50)

        assert result.keywords_processed == 2

    def test_inactive_organizations_skipped(self, make_worker, make_org, make_keyword, fake_serp):
        org = make_org(active=False)
        make_keyword(org["id"])
        result = make_worker().run()
        assert result.organizations == 0
        assert result.message == "No active organizations found"
        assert "message" in result.to_dict()
        assert fake_serp.requests == []

    def test_time_budget(self, make_worker, make_org, make_keyword, fake_serp):
        for name in ("A", "B", "C"):
            make_keyword(make_org(name)["id"], name)
        fake_serp.ranks = {"A": 1, "B": 1, "C": 1}

        worker = make_worker(max_processing_time_ms=1500, monotonic=Ticker(step=1.0))
        result = worker.run()

        assert result.organizations < 3

    def test_result_dict_omits_empty_message(self, make_worker, make_org):
        org = make_org()
        data = make_worker().run(organization_id=org["id"]).to_dict()
        assert "message" not in data
        assert data["organizations"] == 1


class TestStats:
    def test_snapshot(self, conn, make_worker, fake_serp, make_org, make_keyword):
        org = make_org()
        make_keyword(org["id"], "alpha")
        make_keyword(org["id"], "paused", active=False)
        make_org("Dormant", active=False)
        fake_serp.ranks = {"alpha": 2}
        worker = make_worker(max_keywords_per_run=25, cron_secret_configured=True)
        worker.run(organization_id=org["id"])

        stats = worker.stats()

        assert stats["config"] == {
            "max_keywords_per_run": 25,
            "max_processing_time_ms": 300_000,
            "cron_secret_configured": True,
        }
        assert stats["stats"] == {
            "total_active_keywords": 1,
            "total_active_organizations": 1,
            "total_rank_records": 1,
            "tracked_today": 1,
        }
