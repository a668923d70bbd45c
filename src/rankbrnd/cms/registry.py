"""CMS adapter registry and factory.

Maps platform names to adapter classes; ``create_adapter()`` builds a
configured instance from an integration's config dict.
"""

from __future__ import annotations

from typing import Any

import httpx

from rankbrnd.core.errors import CMSError

from .base import CMSAdapter
from .notion import NotionAdapter
from .shopify import ShopifyAdapter
from .webflow import WebflowAdapter
from .webhook import WebhookAdapter
from .wordpress import WordPressAdapter


class AdapterRegistry:
    """Registry of CMS adapter classes keyed by platform.

    Pre-registered:
    - ``wordpress``: :class:`WordPressAdapter`
    - ``shopify``: :class:`ShopifyAdapter`
    - ``webflow``: :class:`WebflowAdapter`
    - ``notion``: :class:`NotionAdapter`
    - ``custom``: :class:`WebhookAdapter`
    """

    def __init__(self) -> None:
        self._factories: dict[str, type[CMSAdapter]] = {
            "wordpress": WordPressAdapter,
            "shopify": ShopifyAdapter,
            "webflow": WebflowAdapter,
            "notion": NotionAdapter,
            "custom": WebhookAdapter,
        }

    def register(self, platform: str, adapter_class: type[CMSAdapter]) -> None:
        self._factories[platform.lower()] = adapter_class

    def create(self, platform: str, config: dict[str, Any], *, client: httpx.Client | None = None) -> CMSAdapter:
        factory = self._factories.get(platform.lower())
        if factory is None:
            raise CMSError(
                f"Unsupported platform {platform!r}: validation failed, no publishing adapter",
                code="UNSUPPORTED_PLATFORM",
            )
        adapter = factory(config, client=client)
        if not adapter.is_configured():
            raise CMSError(
                f"{adapter.name} integration is invalid: required credentials missing",
                code="NOT_CONFIGURED",
            )
        return adapter

    def list_platforms(self) -> list[str]:
        return sorted(self._factories)


adapter_registry = AdapterRegistry()


def create_adapter(platform: str, config: dict[str, Any], *, client: httpx.Client | None = None) -> CMSAdapter:
    """Build a configured adapter for *platform*.

    Raises:
        CMSError: platform has no adapter, or credentials are missing.
            Both classify as validation failures and are not retried.
    """
    return adapter_registry.create(platform, config, client=client)
