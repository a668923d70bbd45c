"""Tests for the CMS adapters using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from rankbrnd.cms import (
    AdapterRegistry,
    CMSPost,
    NotionAdapter,
    ShopifyAdapter,
    WebflowAdapter,
    WebhookAdapter,
    WordPressAdapter,
    create_adapter,
    markdown_to_blocks,
    markdown_to_html,
)
from rankbrnd.cms.notion import MAX_BLOCKS_PER_REQUEST
from rankbrnd.core.errors import CMSError, NetworkError, TimeoutError
from rankbrnd.publishing.retry import PublishingErrorType, classify_error


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


POST = CMSPost(title="Hello", content="# Title\n\nSome **bold** text", tags=["seo"])


class TestMarkdownToHtml:
    def test_blocks(self):
        out = markdown_to_html("# Heading\n\nA *para* with [link](https://x.example)")
        assert out == '<h1>Heading</h1>\n<p>A <em>para</em> with <a href="https://x.example">link</a></p>'

    def test_escapes_html(self):
        assert markdown_to_html("a < b") == "<p>a &lt; b</p>"

    def test_empty(self):
        assert markdown_to_html("") == ""

    def test_lists_and_code_blocks(self):
        out = markdown_to_html("Intro\n\n- one\n- two\n\n```\nprint('hi')\n```\n\n> quoted")
        assert "<p>Intro</p>" in out
        assert "<ul>\n<li>one</li>\n<li>two</li>\n</ul>" in out
        assert "<pre><code>print('hi')\n</code></pre>" in out
        assert "<blockquote>" in out
        assert "```" not in out

    def test_post_prefers_explicit_html(self):
        assert CMSPost(title="t", content="ignored", content_html="<p>x</p>").html() == "<p>x</p>"


class TestWordPressAdapter:
    def test_is_configured(self):
        assert WordPressAdapter({"url": "https://wp.example", "access_token": "t"}).is_configured()
        assert WordPressAdapter({"url": "https://wp.example", "username": "u", "password": "p"}).is_configured()
        assert not WordPressAdapter({"url": "https://wp.example", "username": "u"}).is_configured()
        assert not WordPressAdapter({"access_token": "t"}).is_configured()

    def test_publish_creates_missing_tag(self):
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            if request.url.path.endswith("/tags") and request.method == "GET":
                return httpx.Response(200, json=[])
            if request.url.path.endswith("/tags"):
                return httpx.Response(201, json={"id": 7, "name": "seo"})
            body = json.loads(request.content)
            assert body["tags"] == [7]
            assert body["status"] == "publish"
            assert "<strong>bold</strong>" in body["content"]
            assert request.headers["Authorization"] == "Bearer tok"
            return httpx.Response(
                201, json={"id": 99, "link": "https://wp.example/hello", "slug": "hello", "status": "publish"}
            )

        adapter = WordPressAdapter({"url": "https://wp.example/", "access_token": "tok"}, client=_client(handler))
        result = adapter.publish(POST)

        assert result.post_id == "99"
        assert result.url == "https://wp.example/hello"
        assert result.metadata["slug"] == "hello"
        assert seen[-1] == ("POST", "/wp-json/wp/v2/posts")

    def test_reuses_existing_tag(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/tags"):
                assert request.method == "GET"
                return httpx.Response(200, json=[{"id": 3, "name": "SEO"}])
            assert json.loads(request.content)["tags"] == [3]
            return httpx.Response(201, json={"id": 1})

        adapter = WordPressAdapter({"url": "https://wp.example", "access_token": "t"}, client=_client(handler))
        assert adapter.publish(POST).post_id == "1"

    def test_http_error_is_classifiable(self):
        adapter = WordPressAdapter(
            {"url": "https://wp.example", "username": "u", "password": "p"},
            client=_client(lambda r: httpx.Response(401, json={"message": "Sorry, you are not allowed"})),
        )
        with pytest.raises(CMSError) as exc_info:
            adapter.publish(CMSPost(title="t", content="c"))
        assert exc_info.value.status_code == 401
        assert classify_error(exc_info.value).type is PublishingErrorType.AUTH

    def test_server_error(self):
        adapter = WordPressAdapter(
            {"url": "https://wp.example", "access_token": "t"},
            client=_client(lambda r: httpx.Response(503, text="down")),
        )
        with pytest.raises(CMSError) as exc_info:
            adapter.publish(CMSPost(title="t", content="c"))
        assert classify_error(exc_info.value).type is PublishingErrorType.SERVER_ERROR

    def test_transport_errors(self):
        def refused(request):
            raise httpx.ConnectError("connection refused", request=request)

        def slow(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        config = {"url": "https://wp.example", "access_token": "t"}
        with pytest.raises(NetworkError) as net:
            WordPressAdapter(config, client=_client(refused)).publish(CMSPost(title="t", content="c"))
        with pytest.raises(TimeoutError) as timeout:
            WordPressAdapter(config, client=_client(slow)).publish(CMSPost(title="t", content="c"))
        assert classify_error(net.value).type is PublishingErrorType.NETWORK
        assert classify_error(timeout.value).type is PublishingErrorType.TIMEOUT


class TestShopifyAdapter:
    def test_publish_into_first_blog(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["X-Shopify-Access-Token"] == "shpat"
            if request.url.path.endswith("/blogs.json"):
                return httpx.Response(200, json={"blogs": [{"id": 55}]})
            assert request.url.path == "/admin/api/2024-01/blogs/55/articles.json"
            article = json.loads(request.content)["article"]
            assert article["tags"] == "seo"
            assert article["published"] is True
            return httpx.Response(201, json={"article": {"id": 8, "handle": "hello"}})

        adapter = ShopifyAdapter({"shop_domain": "acme.myshopify.com", "access_token": "shpat"}, client=_client(handler))
        result = adapter.publish(POST)

        assert result.post_id == "8"
        assert result.url == "https://acme.myshopify.com/blogs/news/hello"
        assert result.metadata["blog_id"] == 55

    def test_creates_blog_when_none(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            if request.url.path.endswith("/blogs.json") and request.method == "GET":
                return httpx.Response(200, json={"blogs": []})
            if request.url.path.endswith("/blogs.json"):
                return httpx.Response(201, json={"blog": {"id": 11}})
            return httpx.Response(201, json={"article": {"id": 1}})

        adapter = ShopifyAdapter({"shop_domain": "s.myshopify.com", "access_token": "t"}, client=_client(handler))
        result = adapter.publish(CMSPost(title="t", content="c", publish_status="draft"))

        assert calls == ["GET", "POST", "POST"]
        assert result.metadata["blog_id"] == 11
        assert result.url is None


WEBFLOW_FIELDS = [
    {"slug": "name", "displayName": "Name", "type": "PlainText"},
    {"slug": "slug", "displayName": "Slug", "type": "PlainText"},
    {"slug": "post-body", "displayName": "Post Body", "type": "RichText"},
    {"slug": "post-summary", "displayName": "Post Summary", "type": "PlainText"},
    {"slug": "tags", "displayName": "Tags", "type": "PlainText"},
]


class TestWebflowAdapter:
    def test_is_configured(self):
        assert WebflowAdapter({"site_id": "s1", "access_token": "t"}).is_configured()
        assert not WebflowAdapter({"site_id": "s1"}).is_configured()

    def test_publish_into_blog_collection(self):
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            assert request.headers["Authorization"] == "Bearer wf"
            path = request.url.path
            if path == "/v2/sites/s1/collections":
                return httpx.Response(
                    200,
                    json={
                        "collections": [
                            {"id": "c-team", "slug": "team", "displayName": "Team"},
                            {"id": "c-blog", "slug": "blog-posts", "displayName": "Blog Posts"},
                        ]
                    },
                )
            if path == "/v2/collections/c-blog":
                return httpx.Response(
                    200, json={"id": "c-blog", "slug": "blog-posts", "displayName": "Blog Posts", "fields": WEBFLOW_FIELDS}
                )
            if path == "/v2/collections/c-blog/items":
                body = json.loads(request.content)
                assert body["isDraft"] is False
                fields = body["fieldData"]
                assert fields["name"] == "Hello"
                assert fields["slug"] == "hello"
                assert "<strong>bold</strong>" in fields["post-body"]
                assert fields["post-summary"] == "Title\n\nSome bold text"
                assert fields["tags"] == "seo"
                return httpx.Response(202, json={"id": "item-1", "fieldData": {"slug": "hello"}})
            if path == "/v2/collections/c-blog/items/publish":
                assert json.loads(request.content) == {"itemIds": ["item-1"]}
                return httpx.Response(202, json={"publishedItemIds": ["item-1"]})
            assert path == "/v2/sites/s1"
            return httpx.Response(200, json={"id": "s1", "shortName": "acme", "customDomains": []})

        adapter = WebflowAdapter({"site_id": "s1", "access_token": "wf"}, client=_client(handler))
        result = adapter.publish(POST)

        assert result.post_id == "item-1"
        assert result.url == "https://acme.webflow.io/blog-posts/hello"
        assert result.metadata["collection_id"] == "c-blog"
        assert ("POST", "/v2/collections/c-blog/items/publish") in seen

    def test_draft_is_not_published(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            if request.url.path == "/v2/collections/c9":
                return httpx.Response(200, json={"id": "c9", "slug": "news", "fields": []})
            return httpx.Response(202, json={"id": "item-2"})

        adapter = WebflowAdapter(
            {"site_id": "s1", "access_token": "t", "collection_id": "c9", "site_domain": "www.acme.com"},
            client=_client(handler),
        )
        result = adapter.publish(CMSPost(title="Draft Post", content="x", publish_status="draft"))

        assert paths == ["/v2/collections/c9", "/v2/collections/c9/items"]
        assert result.url == "https://www.acme.com/news/draft-post"
        assert result.metadata["is_draft"] is True

    def test_site_without_collections(self):
        adapter = WebflowAdapter(
            {"site_id": "s1", "access_token": "t"},
            client=_client(lambda r: httpx.Response(200, json={"collections": []})),
        )
        with pytest.raises(CMSError) as exc_info:
            adapter.publish(POST)
        assert exc_info.value.code == "NO_COLLECTION"

    def test_set_field_gets_list_of_tags(self):
        adapter = WebflowAdapter({"site_id": "s1", "access_token": "t"})
        post = CMSPost(title="T", content="", tags=["a", "b"])
        data = adapter.field_data(post, [{"slug": "tags", "displayName": "Tags", "type": "Set"}])
        assert data["tags"] == ["a", "b"]


class TestMarkdownToBlocks:
    def test_block_types(self):
        blocks = markdown_to_blocks(
            "# Title\n\nFirst line\nsecond line\n\n"
            "- bullet\n1. step\n> quote\n---\n```python\nx = 1\n```\n#### Deep"
        )
        assert [b["type"] for b in blocks] == [
            "heading_1",
            "paragraph",
            "bulleted_list_item",
            "numbered_list_item",
            "quote",
            "divider",
            "code",
            "heading_3",
        ]
        assert blocks[1]["paragraph"]["rich_text"][0]["text"]["content"] == "First line second line"
        assert blocks[6]["code"]["language"] == "python"
        assert blocks[6]["code"]["rich_text"][0]["text"]["content"] == "x = 1"

    def test_long_text_is_split(self):
        (block,) = markdown_to_blocks("a" * 4500)
        assert [len(r["text"]["content"]) for r in block["paragraph"]["rich_text"]] == [2000, 2000, 500]


class TestNotionAdapter:
    CONFIG = {"integration_token": "secret_n", "database_id": "db1"}

    def test_is_configured(self):
        assert NotionAdapter(self.CONFIG).is_configured()
        assert not NotionAdapter({"database_id": "db1"}).is_configured()

    def test_publish_creates_page(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer secret_n"
            assert request.headers["Notion-Version"] == "2022-06-28"
            assert request.url.path == "/v1/pages"
            body = json.loads(request.content)
            assert body["parent"] == {"database_id": "db1"}
            props = body["properties"]
            assert props["Name"]["title"][0]["text"]["content"] == "Hello"
            assert props["Tags"] == {"multi_select": [{"name": "seo"}]}
            assert props["Status"] == {"select": {"name": "Published"}}
            assert props["Published"]["date"]["start"]
            assert [b["type"] for b in body["children"]] == ["heading_1", "paragraph"]
            return httpx.Response(
                200, json={"id": "page-1", "url": "https://www.notion.so/page-1", "created_time": "2026-03-15"}
            )

        result = NotionAdapter(self.CONFIG, client=_client(handler)).publish(POST)

        assert result.post_id == "page-1"
        assert result.url == "https://www.notion.so/page-1"
        assert result.metadata["block_count"] == 2

    def test_long_body_appended_in_batches(self):
        calls: list[tuple[str, str, int]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            children = json.loads(request.content)["children"]
            calls.append((request.method, request.url.path, len(children)))
            if request.method == "POST":
                return httpx.Response(200, json={"id": "page-2"})
            return httpx.Response(200, json={"results": []})

        content = "\n\n".join(f"Paragraph {n}" for n in range(MAX_BLOCKS_PER_REQUEST * 2 + 5))
        result = NotionAdapter(self.CONFIG, client=_client(handler)).publish(CMSPost(title="Long", content=content))

        assert calls == [
            ("POST", "/v1/pages", 100),
            ("PATCH", "/v1/blocks/page-2/children", 100),
            ("PATCH", "/v1/blocks/page-2/children", 5),
        ]
        assert result.metadata["block_count"] == 205

    def test_property_names_overridable(self):
        adapter = NotionAdapter({**self.CONFIG, "properties": {"title": "Title", "status": ""}})
        props = adapter.page_properties(CMSPost(title="T", content="", canonical_url="https://a.example/t"))
        assert "Title" in props
        assert "Status" not in props
        assert props["Canonical URL"] == {"url": "https://a.example/t"}

    def test_rejected_token(self):
        adapter = NotionAdapter(
            self.CONFIG, client=_client(lambda r: httpx.Response(401, json={"code": "unauthorized"}))
        )
        with pytest.raises(CMSError) as exc_info:
            adapter.publish(POST)
        assert classify_error(exc_info.value).type is PublishingErrorType.AUTH


class TestWebhookAdapter:
    def test_posts_json_with_secret(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["X-Webhook-Secret"] == "s3"
            assert json.loads(request.content)["title"] == "Hello"
            return httpx.Response(200, json={"id": 5, "url": "https://hooks.example/5"})

        adapter = WebhookAdapter({"webhook_url": "https://hooks.example/in", "secret": "s3"}, client=_client(handler))
        result = adapter.publish(POST)
        assert result.post_id == "5"
        assert result.url == "https://hooks.example/5"

    def test_non_json_response(self):
        adapter = WebhookAdapter(
            {"webhook_url": "https://hooks.example/in"}, client=_client(lambda r: httpx.Response(204))
        )
        result = adapter.publish(POST)
        assert result.post_id is None
        assert result.metadata == {"status_code": 204}


class TestRegistry:
    def test_platforms(self):
        assert AdapterRegistry().list_platforms() == ["custom", "notion", "shopify", "webflow", "wordpress"]

    def test_create_configured(self):
        adapter = create_adapter("WordPress", {"url": "https://wp.example", "access_token": "t"})
        try:
            assert isinstance(adapter, WordPressAdapter)
        finally:
            adapter.close()

    def test_unsupported_platform(self):
        with pytest.raises(CMSError) as exc_info:
            create_adapter("ghost", {})
        assert exc_info.value.code == "UNSUPPORTED_PLATFORM"
        assert classify_error(exc_info.value).type is PublishingErrorType.VALIDATION

    def test_missing_credentials(self):
        with pytest.raises(CMSError) as exc_info:
            create_adapter("shopify", {"shop_domain": "x"})
        assert exc_info.value.code == "NOT_CONFIGURED"
        assert classify_error(exc_info.value).retriable is False

    def test_register_custom(self):
        registry = AdapterRegistry()
        registry.register("Ghost", WebhookAdapter)
        assert "ghost" in registry.list_platforms()
