"""
Common API schemas: shared envelopes and RFC 7807 errors.

Every endpoint returns either :class:`SuccessResponse` (2xx) or
:class:`ProblemDetail` (4xx/5xx). Paged endpoints embed :class:`PageMeta`
alongside the item list.

Response Envelope Conventions:
    - All 2xx responses use ``SuccessResponse[T]`` or ``PagedResponse[T]``
    - All 4xx/5xx responses use ``ProblemDetail`` (RFC 7807)
    - ``elapsed_ms`` tracks server-side processing time
    - ``warnings`` carries non-fatal issues
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """Field-level or nested error."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``NOT_FOUND`` (404): Resource does not exist
        - ``VALIDATION_FAILED`` (400): Invalid input data
        - ``UNAUTHORIZED`` (401): Missing API key or cron secret
        - ``FORBIDDEN`` (403): Caller's role lacks the permission
        - ``CONFLICT`` (409): Operation conflicts with current state
        - ``NOT_CANCELLABLE`` (409): Queue item is past pending/queued
        - ``NOT_RETRYABLE`` (409): Queue item is not failed/cancelled
        - ``RATE_LIMITED`` (429): Too many requests
        - ``UNAVAILABLE`` (503): Dependency not configured or down
        - ``INTERNAL`` (500): Unexpected server error

    Example:
        {
            "type": "about:blank",
            "title": "Queue item '01J...' not found",
            "status": 404,
            "detail": "NOT_FOUND",
            "instance": "",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="Error type URI")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Explanation or machine error code")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(default_factory=list, description="Field-level error details")


# ── Success Envelopes ────────────────────────────────────────────────────


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""

    total: int = Field(description="Total items across all pages")
    limit: int = Field(description="Items per page (requested)")
    offset: int = Field(description="Current offset (0-based)")
    has_more: bool = Field(description="True if more pages exist after current")
    page: int = Field(default=1, description="Current page number (1-indexed)")
    total_pages: int = Field(default=1, description="Total number of pages")
    has_prev: bool = Field(default=False, description="True if a previous page exists")

    @classmethod
    def from_result(cls, total: int, limit: int, offset: int) -> PageMeta:
        """Factory that computes the derived fields."""
        limit = max(limit, 1)
        total_pages = max(1, (total + limit - 1) // limit)
        current_page = (offset // limit) + 1
        return cls(
            total=total,
            limit=limit,
            offset=offset,
            has_more=(offset + limit) < total,
            page=current_page,
            total_pages=total_pages,
            has_prev=current_page > 1,
        )


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success envelope for single-item responses."""

    data: T = Field(description="Response payload (type varies by endpoint)")
    elapsed_ms: float = Field(default=0.0, description="Server-side processing time in milliseconds")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal warnings")


class PagedResponse(BaseModel, Generic[T]):
    """Paged success envelope for list responses."""

    data: list[T] = Field(description="Items for this page")
    page: PageMeta = Field(description="Pagination metadata")
    elapsed_ms: float = Field(default=0.0, description="Server-side processing time in milliseconds")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal warnings")
