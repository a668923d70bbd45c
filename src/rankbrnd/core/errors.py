"""
Structured error types for rankbrnd.

Every error raised inside the service layer carries a category, a retry
flag, and a structured context so logs and publishing-queue rows can be
classified without string parsing at the call site.

Manifesto:
    Failures in a publishing system are routine: CMS endpoints time out,
    DataForSEO rate-limits, credentials expire. The error hierarchy makes
    the retry decision explicit on the exception itself.

    - **Typed categories:** ErrorCategory instead of ad-hoc strings
    - **Explicit retry semantics:** every error knows if it is retryable
    - **Rich context:** organization, queue item, platform, HTTP status
    - **Chaining:** the original exception is kept as ``cause``

Architecture:
    ::

        RankBrndError (base)
        ├── TransientError (retryable)
        │   ├── NetworkError
        │   ├── TimeoutError
        │   └── RateLimitError (retry_after=60)
        ├── ValidationError
        ├── AuthError
        ├── NotFoundError
        ├── ConfigError
        ├── CMSError (status_code, code)
        └── RankTrackerError (code)

Tags:
    errors, exceptions, retry-logic, classification, rankbrnd

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Top-level classification used for routing and retry decisions."""

    NETWORK = "NETWORK"
    DATABASE = "DATABASE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    AUTH = "AUTH"
    NOT_FOUND = "NOT_FOUND"
    CMS = "CMS"
    RANK_TRACKING = "RANK_TRACKING"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only non-``None`` fields are serialised by :meth:`to_dict`.
    """

    organization_id: str | None = None
    queue_item_id: str | None = None
    platform: str | None = None
    keyword: str | None = None
    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["organization_id", "queue_item_id", "platform", "keyword", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RankBrndError(Exception):
    """
    Base exception for all rankbrnd errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    can override both per instance.

    Examples:
        >>> error = RankBrndError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(platform="wordpress").context.platform
        'wordpress'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RankBrndError:
        """Add context to this error (fluent API).

        Usage:
            raise CMSError("Publish failed").with_context(
                platform="wordpress",
                queue_item_id=item_id,
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialise for structured logging."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(RankBrndError):
    """Temporary failure that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """Connection refused, DNS failure, reset by peer."""

    default_category = ErrorCategory.NETWORK


class TimeoutError(TransientError):
    """Request or operation timed out."""

    default_category = ErrorCategory.NETWORK


class RateLimitError(TransientError):
    """Upstream returned 429 or an equivalent throttle response."""

    default_category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: int = 60,
        **kwargs: Any,
    ):
        super().__init__(message, retry_after=retry_after, **kwargs)


# =============================================================================
# PERMANENT ERRORS
# =============================================================================


class ValidationError(RankBrndError):
    """Input failed validation. Never retryable."""

    default_category = ErrorCategory.VALIDATION


class AuthError(RankBrndError):
    """Credentials missing, invalid, or insufficient."""

    default_category = ErrorCategory.AUTH


class NotFoundError(RankBrndError):
    default_category = ErrorCategory.NOT_FOUND


class ConfigError(RankBrndError):
    """Missing or invalid configuration (credentials, secrets)."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# INTEGRATION ERRORS
# =============================================================================


class CMSError(RankBrndError):
    """Error returned by a CMS adapter.

    The HTTP status is folded into the message so that
    :func:`rankbrnd.publishing.retry.classify_error` can route it
    (``"HTTP 503 ..."`` → server_error, ``"HTTP 401 ..."`` → auth).
    """

    default_category = ErrorCategory.CMS

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str = "API_ERROR",
        **kwargs: Any,
    ):
        if status_code is not None and str(status_code) not in message:
            message = f"HTTP {status_code}: {message}"
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.code = code
        if status_code is not None:
            self.context.http_status = status_code


class RankTrackerError(RankBrndError):
    """Error from the SERP data provider."""

    default_category = ErrorCategory.RANK_TRACKING

    def __init__(self, message: str, *, code: int = 500, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.code = code


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RankBrndError",
    "TransientError",
    "NetworkError",
    "TimeoutError",
    "RateLimitError",
    "ValidationError",
    "AuthError",
    "NotFoundError",
    "ConfigError",
    "CMSError",
    "RankTrackerError",
]
