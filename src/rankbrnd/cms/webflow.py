"""Webflow CMS (Data API v2) adapter.

Webflow has no posts; an article becomes an item in a CMS collection.
The collection's field slugs differ per site, so fields are matched by
slug, display name and type, then the item is created and published.
"""

from __future__ import annotations

import re
from typing import Any

import httpx

from rankbrnd.cms.base import CMSAdapter, CMSPost, PublishResult
from rankbrnd.core.errors import CMSError

API_BASE = "https://api.webflow.com/v2"
EXCERPT_LENGTH = 200


def _slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:100]


def _excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    plain = re.sub(r"[#*_`>\[\]]", "", text).strip()
    if len(plain) <= length:
        return plain
    return plain[: length - 3].rsplit(" ", 1)[0] + "..."


class WebflowAdapter(CMSAdapter):
    """Creates and publishes collection items.

    Config keys: ``site_id``, ``access_token``, optional ``collection_id``
    (otherwise the first collection whose slug or name mentions a blog or
    post, else the first collection) and ``site_domain`` (otherwise read
    from the site).
    """

    name = "Webflow"

    def __init__(self, config: dict[str, Any], *, client: httpx.Client | None = None):
        super().__init__(client=client)
        self.config = config
        self.base_url = str(config.get("api_base", API_BASE)).rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.config.get("site_id") and self.config.get("access_token"))

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.get('access_token', '')}",
            "accept": "application/json",
        }

    def _get(self, path: str) -> dict[str, Any]:
        return self._request("GET", f"{self.base_url}{path}", headers=self._headers()).json()

    def _collection(self) -> dict[str, Any]:
        if self.config.get("collection_id"):
            return self._get(f"/collections/{self.config['collection_id']}")

        collections = self._get(f"/sites/{self.config['site_id']}/collections").get("collections", [])
        if not collections:
            raise CMSError(
                "Webflow site has no collection to publish into: required collection missing",
                code="NO_COLLECTION",
            )
        chosen = next(
            (
                c
                for c in collections
                if "blog" in c.get("slug", "") or "post" in c.get("slug", "")
                or "blog" in c.get("displayName", "").lower()
            ),
            collections[0],
        )
        # The listing omits field definitions.
        return self._get(f"/collections/{chosen['id']}")

    def _site_domain(self) -> str:
        if self.config.get("site_domain"):
            return str(self.config["site_domain"])
        site = self._get(f"/sites/{self.config['site_id']}")
        custom = site.get("customDomains") or []
        if custom:
            return str(custom[0]["url"])
        return f"{site.get('shortName', self.config['site_id'])}.webflow.io"

    def field_data(self, post: CMSPost, fields: list[dict[str, Any]]) -> dict[str, Any]:
        """Map *post* onto the collection's fields."""

        def find(predicate) -> dict[str, Any] | None:
            for f in fields:
                if predicate(f.get("slug", ""), f.get("displayName", "").lower()):
                    return f
            return None

        data: dict[str, Any] = {"name": post.title, "slug": _slugify(post.title)}

        body = find(lambda slug, label: any(k in slug or k in label for k in ("body", "content")))
        if body:
            data[body["slug"]] = post.html()

        summary = find(lambda slug, label: "excerpt" in slug or "summary" in slug or "excerpt" in label)
        if summary and post.content:
            data[summary["slug"]] = _excerpt(post.content)

        tags = find(lambda slug, label: slug == "tags" or "tag" in label)
        if tags and post.tags:
            data[tags["slug"]] = list(post.tags) if tags.get("type") == "Set" else ", ".join(post.tags)

        canonical = find(lambda slug, label: slug == "canonical-url")
        if canonical and post.canonical_url:
            data[canonical["slug"]] = post.canonical_url
        return data

    def publish(self, post: CMSPost) -> PublishResult:
        collection = self._collection()
        fields = self.field_data(post, collection.get("fields", []))
        is_draft = post.publish_status == "draft"

        item = self._request(
            "POST",
            f"{self.base_url}/collections/{collection['id']}/items",
            json={"isDraft": is_draft, "isArchived": False, "fieldData": fields},
            headers=self._headers(),
        ).json()

        if not is_draft:
            self._request(
                "POST",
                f"{self.base_url}/collections/{collection['id']}/items/publish",
                json={"itemIds": [item["id"]]},
                headers=self._headers(),
            )

        slug = (item.get("fieldData") or {}).get("slug") or fields["slug"]
        return PublishResult(
            success=True,
            post_id=str(item["id"]),
            url=f"https://{self._site_domain()}/{collection.get('slug', 'blog')}/{slug}",
            metadata={
                "collection_id": collection["id"],
                "collection_name": collection.get("displayName"),
                "slug": slug,
                "is_draft": is_draft,
            },
        )
