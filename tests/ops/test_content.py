"""Tests for keyword, article and integration operations."""

import pytest

from rankbrnd.core.repositories import IntegrationRepository
from rankbrnd.ops.articles import create_article, get_article, list_articles
from rankbrnd.ops.integrations import create_integration, get_integration, list_integrations
from rankbrnd.ops.keywords import create_keyword, list_keywords, set_keyword_active
from rankbrnd.ops.requests import (
    ArticleRequest,
    CreateArticleRequest,
    CreateIntegrationRequest,
    CreateKeywordRequest,
    IntegrationRequest,
    ListArticlesRequest,
    ListIntegrationsRequest,
    ListKeywordsRequest,
    SetKeywordActiveRequest,
)


@pytest.fixture()
def org(make_org):
    return make_org(members={"editor": "editor", "viewer": "viewer", "admin": "admin"})


class TestKeywords:
    def test_create_collapses_whitespace(self, ctx, org):
        result = create_keyword(
            ctx, CreateKeywordRequest(organization_id=org["id"], keyword="  trail   running shoes ", difficulty=35)
        )
        assert result.success, result.error
        assert result.data.keyword == "trail running shoes"
        assert result.data.active is True

    @pytest.mark.parametrize(
        "kwargs",
        [{"keyword": "   "}, {"keyword": "x", "difficulty": 101}, {"keyword": "x", "search_volume": -5}],
    )
    def test_validation(self, ctx, org, kwargs):
        result = create_keyword(ctx, CreateKeywordRequest(organization_id=org["id"], **kwargs))
        assert result.error.code == "VALIDATION_FAILED"

    def test_unknown_org(self, ctx):
        assert create_keyword(ctx, CreateKeywordRequest(organization_id="nope", keyword="x")).error.code == "NOT_FOUND"

    def test_viewer_cannot_create(self, user_ctx, org):
        result = create_keyword(user_ctx("viewer"), CreateKeywordRequest(organization_id=org["id"], keyword="x"))
        assert result.error.code == "FORBIDDEN"

    def test_list_search_and_active(self, user_ctx, org, make_keyword):
        make_keyword(org["id"], "Trail Shoes")
        make_keyword(org["id"], "road shoes", active=False)
        make_keyword(org["id"], "socks")

        ctx = user_ctx("viewer")
        assert list_keywords(ctx, ListKeywordsRequest(organization_id=org["id"], search="shoes")).total == 2
        active = list_keywords(ctx, ListKeywordsRequest(organization_id=org["id"], search="shoes", active=True))
        assert [k.keyword for k in active.data] == ["Trail Shoes"]

    def test_pause(self, ctx, org, make_keyword):
        kw = make_keyword(org["id"])
        result = set_keyword_active(ctx, SetKeywordActiveRequest(keyword_id=kw["id"], active=False))
        assert result.data.active is False
        assert result.data.updated_at == "2026-03-15T12:00:00.000Z"

    def test_pause_missing(self, ctx):
        assert set_keyword_active(ctx, SetKeywordActiveRequest(keyword_id="nope")).error.code == "NOT_FOUND"


class TestArticles:
    def test_create_starts_as_draft(self, user_ctx, org, make_keyword):
        kw = make_keyword(org["id"])
        result = create_article(
            user_ctx("editor"),
            CreateArticleRequest(
                organization_id=org["id"], title=" Shoe guide ", content="# Guide", tags=["shoes"], keyword_id=kw["id"]
            ),
        )
        assert result.success, result.error
        assert result.data.status == "draft"
        assert result.data.title == "Shoe guide"
        assert result.data.tags == ["shoes"]

    def test_keyword_from_other_org(self, ctx, org, make_org, make_keyword):
        other_kw = make_keyword(make_org("Other")["id"])
        result = create_article(
            ctx, CreateArticleRequest(organization_id=org["id"], title="T", keyword_id=other_kw["id"])
        )
        assert result.error.code == "NOT_FOUND"

    def test_title_required(self, ctx, org):
        assert create_article(ctx, CreateArticleRequest(organization_id=org["id"])).error.code == "VALIDATION_FAILED"

    def test_get_and_list(self, user_ctx, org, make_article):
        draft = make_article(org["id"], "Draft", status="draft")
        make_article(org["id"], "Ready")
        ctx = user_ctx("viewer")

        assert get_article(ctx, ArticleRequest(article_id=draft["id"])).data.title == "Draft"
        ready = list_articles(ctx, ListArticlesRequest(organization_id=org["id"], status="ready"))
        assert [a.title for a in ready.data] == ["Ready"]

    def test_list_bad_status(self, ctx, org):
        result = list_articles(ctx, ListArticlesRequest(organization_id=org["id"], status="lost"))
        assert result.error.code == "VALIDATION_FAILED"

    def test_get_other_org_forbidden(self, user_ctx, make_org, make_article):
        theirs = make_article(make_org("Other", owner="other-owner")["id"])
        assert get_article(user_ctx("viewer"), ArticleRequest(article_id=theirs["id"])).error.code == "FORBIDDEN"


class TestIntegrations:
    def test_secrets_masked_but_stored(self, user_ctx, conn, org):
        result = create_integration(
            user_ctx("admin"),
            CreateIntegrationRequest(
                organization_id=org["id"],
                platform="Shopify",
                config={"shop_domain": "acme.myshopify.com", "access_token": "shpat_123", "blog_id": "9"},
            ),
        )
        assert result.success, result.error
        assert result.data.platform == "shopify"
        assert result.data.name == "Shopify"
        assert result.data.config == {"shop_domain": "acme.myshopify.com", "access_token": "***", "blog_id": "9"}
        assert result.warnings == []
        assert IntegrationRepository(conn).get(result.data.id)["config"]["access_token"] == "shpat_123"

    def test_platform_without_adapter_warns(self, ctx, org):
        result = create_integration(ctx, CreateIntegrationRequest(organization_id=org["id"], platform="ghost"))
        assert result.success
        assert "No publishing adapter for 'ghost'" in result.warnings[0]

    def test_unknown_platform(self, ctx, org):
        result = create_integration(ctx, CreateIntegrationRequest(organization_id=org["id"], platform="geocities"))
        assert result.error.code == "VALIDATION_FAILED"

    def test_editor_cannot_connect(self, user_ctx, org):
        result = create_integration(
            user_ctx("editor"), CreateIntegrationRequest(organization_id=org["id"], platform="wordpress")
        )
        assert result.error.code == "FORBIDDEN"

    def test_get_and_list(self, user_ctx, org, make_integration):
        wp = make_integration(org["id"])
        make_integration(org["id"], "shopify", {"shop_domain": "x", "access_token": "t"})
        ctx = user_ctx("viewer")

        fetched = get_integration(ctx, IntegrationRequest(integration_id=wp["id"])).data
        assert fetched.config["password"] == "***"
        assert fetched.config["username"] == "editor"

        listed = list_integrations(ctx, ListIntegrationsRequest(organization_id=org["id"], platform="shopify"))
        assert [i.platform for i in listed.data] == ["shopify"]
