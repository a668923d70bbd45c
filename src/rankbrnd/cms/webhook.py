"""Generic webhook adapter for the ``custom`` platform.

POSTs the post as JSON to a configured URL. The receiver may answer
with ``{"id": ..., "url": ...}``.
"""

from __future__ import annotations

from typing import Any

import httpx

from rankbrnd.cms.base import CMSAdapter, CMSPost, PublishResult


class WebhookAdapter(CMSAdapter):
    name = "Webhook"

    def __init__(self, config: dict[str, Any], *, client: httpx.Client | None = None):
        super().__init__(client=client)
        self.config = config

    def is_configured(self) -> bool:
        return bool(self.config.get("webhook_url"))

    def publish(self, post: CMSPost) -> PublishResult:
        headers = dict(self.config.get("headers") or {})
        if self.config.get("secret"):
            headers["X-Webhook-Secret"] = self.config["secret"]
        payload = {
            "title": post.title,
            "content": post.content,
            "content_html": post.html(),
            "tags": post.tags,
            "canonical_url": post.canonical_url,
            "status": post.publish_status,
        }
        response = self._request("POST", self.config["webhook_url"], json=payload, headers=headers)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        post_id = body.get("id")
        return PublishResult(
            success=True,
            post_id=str(post_id) if post_id is not None else None,
            url=body.get("url"),
            metadata={"status_code": response.status_code},
        )
