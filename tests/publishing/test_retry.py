"""Tests for rankbrnd.publishing.retry: classification, backoff, formatting."""

from datetime import UTC, datetime, timedelta

import pytest

from rankbrnd.publishing.retry import (
    PublishingErrorType,
    RetryConfig,
    RetryOptions,
    RetryStrategy,
    calculate_next_retry,
    calculate_retry_delay,
    classify_error,
    format_duration,
    get_time_until_retry,
    is_retriable_error,
    retry_state_for,
    with_retry,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


class TestClassifyError:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("ECONNREFUSED 127.0.0.1:443", PublishingErrorType.NETWORK),
            ("fetch failed", PublishingErrorType.NETWORK),
            ("Request timed out after 30s", PublishingErrorType.TIMEOUT),
            ("HTTP 429: Too Many Requests", PublishingErrorType.RATE_LIMIT),
            ("HTTP 401: Unauthorized", PublishingErrorType.AUTH),
            ("Invalid token supplied", PublishingErrorType.AUTH),
            ("Title is required", PublishingErrorType.VALIDATION),
            ("HTTP 503: Service Unavailable", PublishingErrorType.SERVER_ERROR),
            ("Bad Gateway", PublishingErrorType.SERVER_ERROR),
            ("something odd happened", PublishingErrorType.UNKNOWN),
        ],
    )
    def test_message_keywords(self, message, expected):
        assert classify_error(message).type is expected

    def test_accepts_exceptions(self):
        result = classify_error(ConnectionError("Connection reset by peer"))
        assert result.type is PublishingErrorType.NETWORK

    def test_case_insensitive(self):
        assert classify_error("RATE LIMIT exceeded").type is PublishingErrorType.RATE_LIMIT

    def test_first_matching_rule_wins(self):
        # "connection" (network) is checked before "timeout"
        assert classify_error("connection timeout").type is PublishingErrorType.NETWORK

    def test_auth_and_validation_not_retriable(self):
        auth = classify_error("401 Unauthorized")
        validation = classify_error("validation error: slug")
        assert auth.retriable is False and auth.should_retry is False
        assert validation.retriable is False
        assert auth.suggested_backoff_ms == 0
        assert validation.suggested_backoff_ms == 0

    def test_suggested_backoff(self):
        config = RetryConfig(base_delay_ms=1000, max_delay_ms=60000)
        assert classify_error("network down", config).suggested_backoff_ms == 1000
        assert classify_error("429", config).suggested_backoff_ms == 60000
        assert classify_error("timeout", config).suggested_backoff_ms == 2000
        assert classify_error("mystery", config).suggested_backoff_ms == 2000


class TestIsRetriable:
    def test_enum_and_string(self):
        assert is_retriable_error(PublishingErrorType.NETWORK) is True
        assert is_retriable_error("server_error") is True
        assert is_retriable_error("auth") is False
        assert is_retriable_error(PublishingErrorType.VALIDATION) is False


class TestCalculateRetryDelay:
    def test_exponential(self):
        assert [calculate_retry_delay(n) for n in range(5)] == [1000, 2000, 4000, 8000, 16000]

    def test_capped_at_max(self):
        assert calculate_retry_delay(10) == 60000
        assert calculate_retry_delay(3, config=RetryConfig(base_delay_ms=1000, max_delay_ms=5000)) == 5000

    def test_linear(self):
        assert [calculate_retry_delay(n, RetryStrategy.LINEAR) for n in range(3)] == [1000, 2000, 3000]

    def test_immediate(self):
        assert calculate_retry_delay(4, "immediate") == 0

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError):
            calculate_retry_delay(1, "fibonacci")

    def test_next_retry(self):
        assert calculate_next_retry(2, now=NOW) == NOW + timedelta(milliseconds=4000)


class TestTimeUntilRetry:
    def test_none(self):
        assert get_time_until_retry(None, NOW) == 0

    def test_future_string(self):
        assert get_time_until_retry("2026-03-15T12:00:05.000Z", NOW) == 5000

    def test_past_clamps_to_zero(self):
        assert get_time_until_retry(NOW - timedelta(minutes=1), NOW) == 0


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("ms", "expected"),
        [
            (0, "0ms"),
            (250, "250ms"),
            (999, "999ms"),
            (1000, "1s"),
            (1500, "2s"),
            (59_000, "59s"),
            (60_000, "1m"),
            (90_000, "2m"),
            (3_600_000, "1h"),
            (7_200_000, "2h"),
        ],
    )
    def test_units(self, ms, expected):
        assert format_duration(ms) == expected


class TestRetryState:
    def test_from_row(self):
        state = retry_state_for(
            {
                "retry_count": 1,
                "max_retries": 3,
                "last_error": "HTTP 503",
                "error_type": "server_error",
                "retry_after": "2026-03-15T12:00:02.000Z",
            },
            NOW,
        )
        assert state.can_retry is True
        assert state.next_retry_in == 2000
        assert state.to_dict()["error_type"] == "server_error"

    def test_exhausted(self):
        state = retry_state_for({"retry_count": 3, "max_retries": 3}, NOW)
        assert state.can_retry is False
        assert state.next_retry_in == 0

    def test_missing_max_retries_defaults_to_three(self):
        assert retry_state_for({"retry_count": 0}, NOW).max_retries == 3


class TestWithRetry:
    def test_success_first_try(self):
        sleeps = []
        assert with_retry(lambda: "ok", sleep=sleeps.append) == "ok"
        assert sleeps == []

    def test_retries_then_succeeds(self):
        calls = {"n": 0}
        sleeps: list[float] = []
        retries: list[int] = []

        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise RuntimeError("HTTP 503")
            return "done"

        result = with_retry(flaky, on_retry=lambda n, exc: retries.append(n), sleep=sleeps.append)
        assert result == "done"
        assert calls["n"] == 3
        assert sleeps == [1.0, 2.0]
        assert retries == [1, 2]

    def test_gives_up_after_max_retries(self):
        calls = {"n": 0}

        def always_down():
            calls["n"] += 1
            raise RuntimeError("network unreachable")

        with pytest.raises(RuntimeError):
            with_retry(always_down, RetryOptions(max_retries=2), sleep=lambda s: None)
        assert calls["n"] == 3

    def test_non_retriable_raises_immediately(self):
        calls = {"n": 0}

        def unauthorized():
            calls["n"] += 1
            raise PermissionError("401 Unauthorized")

        with pytest.raises(PermissionError):
            with_retry(unauthorized, sleep=lambda s: None)
        assert calls["n"] == 1

    def test_custom_retriable_set(self):
        calls = {"n": 0}

        def slow():
            calls["n"] += 1
            raise TimeoutError("timed out")

        options = RetryOptions(retriable_errors=[PublishingErrorType.NETWORK])
        with pytest.raises(TimeoutError):
            with_retry(slow, options, sleep=lambda s: None)
        assert calls["n"] == 1
