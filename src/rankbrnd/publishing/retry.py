"""Error classification and retry backoff for CMS publishing.

A failed publish is classified by its message into a
:class:`PublishingErrorType`. Auth and validation failures need a human
to fix credentials or content, so they are never retried; everything
else backs off exponentially up to ``max_delay_ms``.

Example:
    >>> from rankbrnd.publishing.retry import classify_error, calculate_retry_delay
    >>> classify_error("HTTP 503: Service Unavailable").type
    <PublishingErrorType.SERVER_ERROR: 'server_error'>
    >>> [calculate_retry_delay(n) for n in range(4)]
    [1000, 2000, 4000, 8000]
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, TypeVar

from rankbrnd.core.logging import get_logger
from rankbrnd.core.timestamps import from_iso8601, to_iso8601, utc_now

logger = get_logger(__name__)

T = TypeVar("T")


class PublishingErrorType(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    VALIDATION = "validation"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


class RetryStrategy(str, Enum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    IMMEDIATE = "immediate"


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Backoff bounds shared by the queue and the worker."""

    base_delay_ms: int = 1000
    max_delay_ms: int = 60000
    max_retries: int = 3


DEFAULT_RETRY_CONFIG = RetryConfig()

NON_RETRIABLE_TYPES = frozenset({PublishingErrorType.AUTH, PublishingErrorType.VALIDATION})


@dataclass(frozen=True, slots=True)
class ErrorClassification:
    type: PublishingErrorType
    retriable: bool
    should_retry: bool
    suggested_backoff_ms: int


@dataclass
class RetryOptions:
    """Options for :func:`with_retry`."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 60000
    retriable_errors: list[PublishingErrorType] = field(
        default_factory=lambda: [
            PublishingErrorType.NETWORK,
            PublishingErrorType.TIMEOUT,
            PublishingErrorType.RATE_LIMIT,
            PublishingErrorType.SERVER_ERROR,
            PublishingErrorType.UNKNOWN,
        ]
    )
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL


@dataclass(frozen=True, slots=True)
class RetryState:
    """Retry bookkeeping for one queue item, as shown to users."""

    retry_count: int
    max_retries: int
    last_error: str | None
    error_type: str | None
    retry_after: str | None
    can_retry: bool
    next_retry_in: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
            "last_error": self.last_error,
            "error_type": self.error_type,
            "retry_after": self.retry_after,
            "can_retry": self.can_retry,
            "next_retry_in": self.next_retry_in,
        }


# Ordered: the first rule whose keywords appear in the message wins.
_RULES: tuple[tuple[PublishingErrorType, tuple[str, ...]], ...] = (
    (
        PublishingErrorType.NETWORK,
        ("network", "econnrefused", "enotfound", "etimedout", "connection", "fetch failed"),
    ),
    (PublishingErrorType.TIMEOUT, ("timeout", "timed out")),
    (PublishingErrorType.RATE_LIMIT, ("rate limit", "rate-limit", "429", "too many requests")),
    (
        PublishingErrorType.AUTH,
        ("unauthorized", "authentication", "401", "invalid token", "access denied", "forbidden"),
    ),
    (PublishingErrorType.VALIDATION, ("validation", "invalid", "required", "malformed", "400")),
    (
        PublishingErrorType.SERVER_ERROR,
        ("500", "502", "503", "504", "internal server error", "bad gateway", "service unavailable"),
    ),
)


def _suggested_backoff(error_type: PublishingErrorType, config: RetryConfig) -> int:
    if error_type in NON_RETRIABLE_TYPES:
        return 0
    if error_type is PublishingErrorType.NETWORK:
        return config.base_delay_ms
    if error_type is PublishingErrorType.RATE_LIMIT:
        return config.max_delay_ms
    return config.base_delay_ms * 2


def classify_error(error: BaseException | str, config: RetryConfig = DEFAULT_RETRY_CONFIG) -> ErrorClassification:
    """Classify an exception or message for retry purposes."""
    message = str(error).lower()
    error_type = PublishingErrorType.UNKNOWN
    for candidate, needles in _RULES:
        if any(needle in message for needle in needles):
            error_type = candidate
            break

    retriable = error_type not in NON_RETRIABLE_TYPES
    return ErrorClassification(
        type=error_type,
        retriable=retriable,
        should_retry=retriable,
        suggested_backoff_ms=_suggested_backoff(error_type, config),
    )


def is_retriable_error(error_type: PublishingErrorType | str) -> bool:
    return PublishingErrorType(error_type) not in NON_RETRIABLE_TYPES


def calculate_retry_delay(
    retry_count: int,
    strategy: RetryStrategy | str = RetryStrategy.EXPONENTIAL,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
) -> int:
    """Delay in milliseconds before retry number ``retry_count`` (0-based)."""
    strategy = RetryStrategy(strategy)
    if strategy is RetryStrategy.IMMEDIATE:
        return 0
    if strategy is RetryStrategy.LINEAR:
        return min(config.base_delay_ms * (retry_count + 1), config.max_delay_ms)
    return min(config.base_delay_ms * (2**retry_count), config.max_delay_ms)


def calculate_next_retry(
    retry_count: int,
    now: datetime | None = None,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
) -> datetime:
    now = now or utc_now()
    return now + timedelta(milliseconds=calculate_retry_delay(retry_count, config=config))


def get_time_until_retry(retry_after: datetime | str | None, now: datetime | None = None) -> int:
    """Milliseconds until ``retry_after``, never negative."""
    if retry_after is None:
        return 0
    target = from_iso8601(retry_after) if isinstance(retry_after, str) else retry_after
    if target is None:
        return 0
    now = now or utc_now()
    return max(0, int((target - now).total_seconds() * 1000))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_duration(ms: float) -> str:
    """Compact human duration: ``250ms``, ``5s``, ``3m``, ``2h``."""
    if ms < 1000:
        return f"{_round_half_up(ms)}ms"
    if ms < 60_000:
        return f"{_round_half_up(ms / 1000)}s"
    if ms < 3_600_000:
        return f"{_round_half_up(ms / 60_000)}m"
    return f"{_round_half_up(ms / 3_600_000)}h"


def retry_state_for(item: Mapping[str, Any], now: datetime | None = None) -> RetryState:
    """Build a :class:`RetryState` from a publishing queue row."""
    retry_count = int(item.get("retry_count") or 0)
    max_retries = int(item.get("max_retries") if item.get("max_retries") is not None else 3)
    retry_after = item.get("retry_after")
    if isinstance(retry_after, datetime):
        retry_after = to_iso8601(retry_after)
    return RetryState(
        retry_count=retry_count,
        max_retries=max_retries,
        last_error=item.get("last_error"),
        error_type=item.get("error_type"),
        retry_after=retry_after,
        can_retry=retry_count < max_retries,
        next_retry_in=get_time_until_retry(retry_after, now),
    )


def with_retry(
    fn: Callable[[], T],
    options: RetryOptions | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` until it succeeds or a non-retriable error occurs.

    At most ``max_retries + 1`` calls are made. Before retry ``n`` the
    helper sleeps for the strategy's delay and calls ``on_retry(n, exc)``.
    """
    options = options or RetryOptions()
    config = RetryConfig(
        base_delay_ms=options.base_delay_ms,
        max_delay_ms=options.max_delay_ms,
        max_retries=options.max_retries,
    )
    retriable = {PublishingErrorType(t) for t in options.retriable_errors}

    attempt = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            classification = classify_error(exc, config)
            if classification.type not in retriable or attempt >= options.max_retries:
                raise
            delay_ms = calculate_retry_delay(attempt, options.strategy, config)
            logger.warning(
                "retrying_after_error",
                attempt=attempt + 1,
                error_type=classification.type.value,
                delay_ms=delay_ms,
                error=str(exc),
            )
            sleep(delay_ms / 1000)
            attempt += 1
            if on_retry is not None:
                on_retry(attempt, exc)
