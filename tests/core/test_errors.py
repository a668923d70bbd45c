"""Tests for rankbrnd.core.errors."""

import pytest

from rankbrnd.core.errors import (
    AuthError,
    CMSError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    NetworkError,
    NotFoundError,
    RankBrndError,
    RankTrackerError,
    RateLimitError,
    TimeoutError,
    TransientError,
    ValidationError,
)


class TestErrorContext:
    def test_empty(self):
        assert ErrorContext().to_dict() == {}

    def test_only_set_fields_serialised(self):
        ctx = ErrorContext(platform="shopify", http_status=502, metadata={"attempt": 2})
        assert ctx.to_dict() == {"platform": "shopify", "http_status": 502, "attempt": 2}


class TestRankBrndError:
    def test_defaults(self):
        err = RankBrndError("boom")
        assert err.category is ErrorCategory.INTERNAL
        assert err.retryable is False
        assert str(err) == "boom"

    def test_overrides(self):
        err = RankBrndError("boom", category=ErrorCategory.DATABASE, retryable=True)
        assert err.category is ErrorCategory.DATABASE
        assert err.retryable is True

    def test_with_context_known_and_extra_keys(self):
        err = RankBrndError("x").with_context(queue_item_id="q-1", attempt=3)
        assert err.context.queue_item_id == "q-1"
        assert err.context.metadata == {"attempt": 3}

    def test_cause_is_chained(self):
        original = ValueError("bad json")
        err = RankBrndError("wrap", cause=original)
        assert err.__cause__ is original
        assert err.to_dict()["cause"] == "bad json"

    def test_to_dict(self):
        data = RateLimitError().with_context(platform="wordpress").to_dict()
        assert data == {
            "error_type": "RateLimitError",
            "message": "Rate limit exceeded",
            "category": "NETWORK",
            "retryable": True,
            "retry_after": 60,
            "context": {"platform": "wordpress"},
        }

    def test_repr(self):
        assert repr(NotFoundError("gone")) == "NotFoundError('gone', category=NOT_FOUND)"


class TestHierarchy:
    @pytest.mark.parametrize("cls", [NetworkError, TimeoutError, RateLimitError])
    def test_transient_are_retryable(self, cls):
        err = cls("x")
        assert isinstance(err, TransientError)
        assert err.retryable is True

    @pytest.mark.parametrize(
        ("cls", "category"),
        [
            (ValidationError, ErrorCategory.VALIDATION),
            (AuthError, ErrorCategory.AUTH),
            (NotFoundError, ErrorCategory.NOT_FOUND),
            (ConfigError, ErrorCategory.CONFIG),
        ],
    )
    def test_permanent(self, cls, category):
        err = cls("x")
        assert err.retryable is False
        assert err.category is category

    def test_timeout_error_shadows_builtin_but_is_distinct(self):
        import builtins

        assert TimeoutError is not builtins.TimeoutError


class TestCMSError:
    def test_status_folded_into_message(self):
        err = CMSError("Service Unavailable", status_code=503)
        assert str(err) == "HTTP 503: Service Unavailable"
        assert err.status_code == 503
        assert err.code == "API_ERROR"
        assert err.context.http_status == 503

    def test_status_not_duplicated(self):
        assert str(CMSError("got 404 from server", status_code=404)) == "got 404 from server"

    def test_without_status(self):
        err = CMSError("no connection", code="NETWORK_ERROR")
        assert str(err) == "no connection"
        assert err.status_code is None


def test_rank_tracker_error_code():
    err = RankTrackerError("quota", code=402)
    assert err.code == 402
    assert err.category is ErrorCategory.RANK_TRACKING
    assert RankTrackerError("x").code == 500
