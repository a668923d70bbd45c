"""WordPress REST API adapter (``/wp-json/wp/v2``)."""

from __future__ import annotations

from typing import Any

import httpx

from rankbrnd.cms.base import CMSAdapter, CMSPost, PublishResult

_STATUS_MAP = {"public": "publish", "unlisted": "private", "draft": "draft"}


class WordPressAdapter(CMSAdapter):
    """Publishes posts with Bearer (OAuth) or Basic (application password) auth.

    Config keys: ``url``, ``username`` + ``password`` or ``access_token``,
    optional ``api_version`` (default ``wp/v2``).
    """

    name = "WordPress"

    def __init__(self, config: dict[str, Any], *, client: httpx.Client | None = None):
        super().__init__(client=client)
        self.config = config
        self.base_url = f"{str(config.get('url', '')).rstrip('/')}/wp-json/{config.get('api_version', 'wp/v2')}"

    def is_configured(self) -> bool:
        has_auth = bool(self.config.get("access_token")) or bool(
            self.config.get("username") and self.config.get("password")
        )
        return bool(self.config.get("url")) and has_auth

    def _auth(self) -> dict[str, Any]:
        if self.config.get("access_token"):
            return {"headers": {"Authorization": f"Bearer {self.config['access_token']}"}}
        if self.config.get("username") and self.config.get("password"):
            return {"auth": (self.config["username"], self.config["password"])}
        return {}

    def _tag_ids(self, names: list[str]) -> list[int]:
        ids: list[int] = []
        for name in names:
            found = self._request("GET", f"{self.base_url}/tags", params={"search": name}, **self._auth()).json()
            match = next((t for t in found if t.get("name", "").lower() == name.lower()), None)
            if match is None:
                match = self._request("POST", f"{self.base_url}/tags", json={"name": name}, **self._auth()).json()
            ids.append(int(match["id"]))
        return ids

    def publish(self, post: CMSPost) -> PublishResult:
        payload: dict[str, Any] = {
            "title": post.title,
            "content": post.html(),
            "status": _STATUS_MAP.get(post.publish_status, "draft"),
        }
        if post.tags:
            payload["tags"] = self._tag_ids(post.tags)
        if post.canonical_url:
            payload["meta"] = {"canonical_url": post.canonical_url}

        data = self._request("POST", f"{self.base_url}/posts", json=payload, **self._auth()).json()
        return PublishResult(
            success=True,
            post_id=str(data["id"]),
            url=data.get("link"),
            metadata={"slug": data.get("slug"), "status": data.get("status"), "date": data.get("date")},
        )
