"""Notion pages adapter.

Articles become pages in a Notion database. Post metadata maps onto
database properties; the Markdown body is converted line by line into
Notion blocks.
"""

from __future__ import annotations

import re
from typing import Any

import httpx

from rankbrnd.cms.base import CMSAdapter, CMSPost, PublishResult
from rankbrnd.core.timestamps import to_iso8601, utc_now

API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

#: Notion rejects rich-text runs longer than this.
MAX_TEXT_LENGTH = 2000
#: Children accepted per create or append request.
MAX_BLOCKS_PER_REQUEST = 100

DEFAULT_PROPERTIES = {
    "title": "Name",
    "tags": "Tags",
    "status": "Status",
    "canonical_url": "Canonical URL",
    "published": "Published",
}

STATUS_NAMES = {"draft": "Draft", "public": "Published", "unlisted": "Unlisted"}

_NUMBERED = re.compile(r"^\d+\.\s+(.+)$")


def _rich_text(text: str) -> list[dict[str, Any]]:
    return [
        {"type": "text", "text": {"content": text[i : i + MAX_TEXT_LENGTH]}}
        for i in range(0, len(text), MAX_TEXT_LENGTH)
    ] or [{"type": "text", "text": {"content": ""}}]


def _block(kind: str, text: str, **extra: Any) -> dict[str, Any]:
    return {"object": "block", "type": kind, kind: {"rich_text": _rich_text(text), **extra}}


def markdown_to_blocks(text: str) -> list[dict[str, Any]]:
    """Convert Markdown into Notion block objects.

    Handles headings (levels 1-3), bullet and numbered items, quotes,
    fenced code, dividers and paragraphs. Consecutive plain lines form
    one paragraph.
    """
    blocks: list[dict[str, Any]] = []
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            blocks.append(_block("paragraph", " ".join(paragraph)))
            paragraph.clear()

    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        i += 1
        if not line:
            flush()
            continue

        if line.startswith("```"):
            flush()
            language = line[3:].strip() or "plain text"
            code: list[str] = []
            while i < len(lines) and not lines[i].strip().startswith("```"):
                code.append(lines[i])
                i += 1
            i += 1
            blocks.append(_block("code", "\n".join(code), language=language))
            continue

        heading = re.match(r"^(#{1,6})\s+(.+)$", line)
        numbered = _NUMBERED.match(line)
        if heading:
            kind = f"heading_{min(len(heading.group(1)), 3)}"
            block = _block(kind, heading.group(2))
        elif line in ("---", "***", "___"):
            block = {"object": "block", "type": "divider", "divider": {}}
        elif line.startswith(("- ", "* ")):
            block = _block("bulleted_list_item", line[2:])
        elif numbered:
            block = _block("numbered_list_item", numbered.group(1))
        elif line.startswith("> "):
            block = _block("quote", line[2:])
        else:
            paragraph.append(line)
            continue
        flush()
        blocks.append(block)

    flush()
    return blocks


class NotionAdapter(CMSAdapter):
    """Creates pages in a Notion database.

    Config keys: ``integration_token``, ``database_id`` and optional
    ``properties`` overriding :data:`DEFAULT_PROPERTIES` (set a name to
    an empty string to skip that property).
    """

    name = "Notion"

    def __init__(self, config: dict[str, Any], *, client: httpx.Client | None = None):
        super().__init__(client=client)
        self.config = config
        self.base_url = str(config.get("api_base", API_BASE)).rstrip("/")
        self.properties = {**DEFAULT_PROPERTIES, **(config.get("properties") or {})}

    def is_configured(self) -> bool:
        return bool(self.config.get("integration_token") and self.config.get("database_id"))

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.get('integration_token', '')}",
            "Notion-Version": NOTION_VERSION,
        }

    def page_properties(self, post: CMSPost) -> dict[str, Any]:
        props: dict[str, Any] = {self.properties["title"]: {"title": _rich_text(post.title)}}
        if post.tags and self.properties.get("tags"):
            props[self.properties["tags"]] = {"multi_select": [{"name": tag} for tag in post.tags]}
        if self.properties.get("status"):
            status = STATUS_NAMES.get(post.publish_status, "Draft")
            props[self.properties["status"]] = {"select": {"name": status}}
        if post.canonical_url and self.properties.get("canonical_url"):
            props[self.properties["canonical_url"]] = {"url": post.canonical_url}
        if self.properties.get("published"):
            props[self.properties["published"]] = {"date": {"start": to_iso8601(utc_now())}}
        return props

    def publish(self, post: CMSPost) -> PublishResult:
        blocks = markdown_to_blocks(post.content)
        first, rest = blocks[:MAX_BLOCKS_PER_REQUEST], blocks[MAX_BLOCKS_PER_REQUEST:]

        page = self._request(
            "POST",
            f"{self.base_url}/pages",
            json={
                "parent": {"database_id": self.config["database_id"]},
                "properties": self.page_properties(post),
                "children": first,
            },
            headers=self._headers(),
        ).json()

        for start in range(0, len(rest), MAX_BLOCKS_PER_REQUEST):
            self._request(
                "PATCH",
                f"{self.base_url}/blocks/{page['id']}/children",
                json={"children": rest[start : start + MAX_BLOCKS_PER_REQUEST]},
                headers=self._headers(),
            )

        return PublishResult(
            success=True,
            post_id=page["id"],
            url=page.get("url"),
            metadata={
                "public_url": page.get("public_url"),
                "created_time": page.get("created_time"),
                "block_count": len(blocks),
            },
        )
