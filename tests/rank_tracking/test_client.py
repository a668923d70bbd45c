"""Tests for rankbrnd.rank_tracking.client.DataForSEOClient."""

import httpx
import pytest

from rankbrnd.core.errors import RankTrackerError
from rankbrnd.core.settings import RankBrndSettings
from rankbrnd.rank_tracking.client import (
    DataForSEOClient,
    TrackKeywordRequest,
    domain_matches,
    location_code_for,
)


class TestHelpers:
    @pytest.mark.parametrize(
        ("location", "code"),
        [("us", 2840), ("GB", 2826), ("uk", 2826), ("de", 2276), (None, 2840), ("zz", 2840)],
    )
    def test_location_codes(self, location, code):
        assert location_code_for(location) == code

    def test_domain_matches(self):
        assert domain_matches("www.acme.example", "acme.example")
        assert domain_matches("blog.acme.example", "www.acme.example")
        assert not domain_matches("notacme.example", "acme.example")

    def test_task_payload_defaults(self):
        task = TrackKeywordRequest(keyword="shoes", domain="acme.example", location="gb").to_task()
        assert task == {
            "keyword": "shoes",
            "location_code": 2826,
            "language_code": "en",
            "device": "desktop",
            "depth": 100,
        }

    def test_explicit_location_code_wins(self):
        task = TrackKeywordRequest(keyword="k", domain="d", location="gb", location_code=1001).to_task()
        assert task["location_code"] == 1001

    def test_estimate_cost(self):
        assert DataForSEOClient.estimate_cost(10) == pytest.approx(0.03)

    def test_from_settings(self):
        assert DataForSEOClient.from_settings(RankBrndSettings()) is None
        client = DataForSEOClient.from_settings(
            RankBrndSettings(dataforseo_username="u", dataforseo_password="p", dataforseo_api_base_url="https://x/")
        )
        try:
            assert client is not None
            assert client.api_base_url == "https://x"
        finally:
            client.close()


class TestTrackKeyword:
    def test_positions_for_target_domain(self, dataforseo, fake_serp):
        fake_serp.ranks = {"running shoes": 4}
        result = dataforseo.track_keyword(
            TrackKeywordRequest(keyword="running shoes", domain="acme.example", keyword_id="kw-1")
        )
        # featured snippets are ignored, only organic results count
        assert [p.position for p in result.positions] == [4]
        assert result.top_position.url == "https://www.acme.example/running-shoes"
        assert result.keyword_id == "kw-1"
        assert result.location == "us"
        assert result.location_code == 2840
        assert result.total_results == 1000
        assert result.cost == pytest.approx(0.003)

    def test_posts_to_live_advanced_with_basic_auth(self, fake_serp):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization", "")
            return fake_serp(request)

        fake_serp.ranks = {"k": 1}
        client = DataForSEOClient("login", "secret", client=httpx.Client(transport=httpx.MockTransport(handler)))
        client.track_keyword(TrackKeywordRequest(keyword="k", domain="acme.example"))
        assert seen["url"] == "https://api.dataforseo.com/v3/serp/google/organic/live/advanced"
        assert seen["auth"].startswith("Basic ")

    def test_domain_absent(self, dataforseo, fake_serp):
        fake_serp.ranks = {"k": None}
        result = dataforseo.track_keyword(TrackKeywordRequest(keyword="k", domain="acme.example"))
        assert result.positions == []
        assert result.top_position is None

    def test_task_failure(self, dataforseo):
        with pytest.raises(RankTrackerError, match="Invalid Field"):
            dataforseo.track_keyword(TrackKeywordRequest(keyword="unknown", domain="acme.example"))

    def test_http_error(self, dataforseo, fake_serp):
        fake_serp.status_code = 402
        with pytest.raises(RankTrackerError) as exc_info:
            dataforseo.track_keyword(TrackKeywordRequest(keyword="k", domain="acme.example"))
        assert exc_info.value.code == 402
        assert "Quota exceeded" in str(exc_info.value)

    def test_timeout(self):
        def slow(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = DataForSEOClient(
            "l", "p", timeout_ms=1500, client=httpx.Client(transport=httpx.MockTransport(slow))
        )
        with pytest.raises(RankTrackerError, match="1500ms") as exc_info:
            client.track_keyword(TrackKeywordRequest(keyword="k", domain="d"))
        assert exc_info.value.code == 408

    def test_malformed_body(self):
        client = DataForSEOClient(
            "l", "p", client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>")))
        )
        with pytest.raises(RankTrackerError, match="Malformed"):
            client.track_keyword(TrackKeywordRequest(keyword="k", domain="d"))


class TestTrackKeywords:
    def test_mixed_outcomes(self, dataforseo, fake_serp):
        fake_serp.ranks = {"a": 3, "b": None}
        bulk = dataforseo.track_keywords(
            [
                TrackKeywordRequest(keyword="a", domain="acme.example", keyword_id="1"),
                TrackKeywordRequest(keyword="b", domain="acme.example", keyword_id="2"),
                TrackKeywordRequest(keyword="c", domain="acme.example", keyword_id="3"),
            ]
        )
        assert len(fake_serp.requests) == 1
        assert bulk.total == 3
        assert bulk.successful == 2
        assert bulk.failed == 1
        assert bulk.results[2].error == "Invalid Field: 'keyword'."
        assert bulk.total_cost == pytest.approx(0.006)

    def test_empty(self, dataforseo, fake_serp):
        bulk = dataforseo.track_keywords([])
        assert bulk.total == 0
        assert fake_serp.requests == []
