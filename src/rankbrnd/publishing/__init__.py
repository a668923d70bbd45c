"""Publishing: queue lifecycle, retry policy, timezones and the worker."""

from rankbrnd.publishing.queue import PLATFORMS, STATUSES, PublishingQueue
from rankbrnd.publishing.retry import (
    DEFAULT_RETRY_CONFIG,
    ErrorClassification,
    PublishingErrorType,
    RetryConfig,
    RetryOptions,
    RetryState,
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
from rankbrnd.publishing.worker import PhaseResult, PublishingWorker, WorkerRunResult

__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "PLATFORMS",
    "STATUSES",
    "ErrorClassification",
    "PhaseResult",
    "PublishingErrorType",
    "PublishingQueue",
    "PublishingWorker",
    "RetryConfig",
    "RetryOptions",
    "RetryState",
    "RetryStrategy",
    "WorkerRunResult",
    "calculate_next_retry",
    "calculate_retry_delay",
    "classify_error",
    "format_duration",
    "get_time_until_retry",
    "is_retriable_error",
    "retry_state_for",
    "with_retry",
]
