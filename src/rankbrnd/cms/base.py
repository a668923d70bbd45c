"""CMS adapter base class.

Manifesto:
    The publishing worker never knows which CMS it is talking to. Each
    platform implements :class:`CMSAdapter`; failures surface as
    :class:`~rankbrnd.core.errors.CMSError` (HTTP errors) or
    :class:`~rankbrnd.core.errors.TransientError` subclasses (transport
    errors) whose messages the retry classifier understands.

Tags:
    rankbrnd, cms, abstract-base, adapter-pattern
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
import markdown

from rankbrnd.core.errors import CMSError, NetworkError, TimeoutError


@dataclass(frozen=True, slots=True)
class CMSPost:
    """Platform-neutral article payload."""

    title: str
    content: str
    content_html: str | None = None
    tags: list[str] = field(default_factory=list)
    canonical_url: str | None = None
    publish_status: str = "public"

    def html(self) -> str:
        return self.content_html or markdown_to_html(self.content)


@dataclass(frozen=True, slots=True)
class PublishResult:
    success: bool
    post_id: str | None = None
    url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


def markdown_to_html(text: str) -> str:
    """Render article Markdown to the HTML body sent to the CMS."""
    if not text:
        return ""
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


class CMSAdapter(ABC):
    """Abstract base class for CMS publishing adapters.

    Subclasses get a shared :class:`httpx.Client`; tests pass one built
    on :class:`httpx.MockTransport`.
    """

    name: str = "cms"

    def __init__(self, *, client: httpx.Client | None = None, timeout: float = 30.0):
        self._client = client or httpx.Client(timeout=timeout)

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the credentials needed to publish are present."""
        ...

    @abstractmethod
    def publish(self, post: CMSPost) -> PublishResult:
        """Publish *post* and return where it landed."""
        ...

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and raise a classifiable error on failure."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TimeoutError(f"{self.name} request timed out: {exc}", cause=exc) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"{self.name} network error: {exc}", cause=exc) from exc

        if response.is_success:
            return response

        raise CMSError(
            f"{self.name} API error: {_error_message(response)}",
            status_code=response.status_code,
            code=f"{self.name.upper()}_API_ERROR",
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or response.text[:200]
    if isinstance(body, dict):
        for key in ("message", "error", "errors"):
            value = body.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    return response.reason_phrase
