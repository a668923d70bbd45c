"""Shopify Admin API adapter for blog articles."""

from __future__ import annotations

from typing import Any

import httpx

from rankbrnd.cms.base import CMSAdapter, CMSPost, PublishResult

DEFAULT_API_VERSION = "2024-01"


class ShopifyAdapter(CMSAdapter):
    """Publishes articles into a shop blog.

    Config keys: ``shop_domain``, ``access_token``, optional ``blog_id``
    (the first blog is used, or a "Blog" is created) and ``api_version``.
    """

    name = "Shopify"

    def __init__(self, config: dict[str, Any], *, client: httpx.Client | None = None):
        super().__init__(client=client)
        self.config = config
        version = config.get("api_version", DEFAULT_API_VERSION)
        self.base_url = f"https://{config.get('shop_domain', '')}/admin/api/{version}"

    def is_configured(self) -> bool:
        return bool(self.config.get("shop_domain") and self.config.get("access_token"))

    def _headers(self) -> dict[str, str]:
        return {"X-Shopify-Access-Token": str(self.config.get("access_token", ""))}

    def _blog_id(self) -> int:
        if self.config.get("blog_id"):
            return int(self.config["blog_id"])
        blogs = self._request(
            "GET", f"{self.base_url}/blogs.json", params={"limit": 1}, headers=self._headers()
        ).json().get("blogs", [])
        if blogs:
            return int(blogs[0]["id"])
        created = self._request(
            "POST",
            f"{self.base_url}/blogs.json",
            json={"blog": {"title": "Blog", "commentable": "moderate"}},
            headers=self._headers(),
        ).json()
        return int(created["blog"]["id"])

    def publish(self, post: CMSPost) -> PublishResult:
        blog_id = self._blog_id()
        article = {
            "title": post.title,
            "body_html": post.html(),
            "tags": ", ".join(post.tags),
            "published": post.publish_status == "public",
        }
        data = self._request(
            "POST",
            f"{self.base_url}/blogs/{blog_id}/articles.json",
            json={"article": article},
            headers=self._headers(),
        ).json()["article"]
        handle = data.get("handle")
        return PublishResult(
            success=True,
            post_id=str(data["id"]),
            url=f"https://{self.config['shop_domain']}/blogs/news/{handle}" if handle else None,
            metadata={"blog_id": blog_id, "handle": handle, "published_at": data.get("published_at")},
        )
