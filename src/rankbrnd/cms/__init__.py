"""Publishing adapters for external CMS platforms."""

from rankbrnd.cms.base import CMSAdapter, CMSPost, PublishResult, markdown_to_html
from rankbrnd.cms.notion import NotionAdapter, markdown_to_blocks
from rankbrnd.cms.registry import AdapterRegistry, adapter_registry, create_adapter
from rankbrnd.cms.shopify import ShopifyAdapter
from rankbrnd.cms.webflow import WebflowAdapter
from rankbrnd.cms.webhook import WebhookAdapter
from rankbrnd.cms.wordpress import WordPressAdapter

__all__ = [
    "AdapterRegistry",
    "CMSAdapter",
    "CMSPost",
    "NotionAdapter",
    "PublishResult",
    "ShopifyAdapter",
    "WebflowAdapter",
    "WebhookAdapter",
    "WordPressAdapter",
    "adapter_registry",
    "create_adapter",
    "markdown_to_blocks",
    "markdown_to_html",
]
