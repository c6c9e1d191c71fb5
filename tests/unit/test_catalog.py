"""Tests for the Supabase product catalog client."""

import httpx
import pytest

from storefront.catalog.supabase import ProductCatalog, ProductSummary

ROWS = [
    {"id": 1, "name": "Scrub Top", "category": "scrubs", "slug": "scrub-top", "country": "US", "price": 24.5},
    {"id": 2, "name": "Scrub Pants", "category": "scrubs", "slug": "scrub-pants", "price": None},
]


def make_catalog(handler) -> ProductCatalog:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ProductCatalog("https://proj.supabase.co/", "anon-key", http=http)


class TestProductSummary:
    def test_from_row(self):
        product = ProductSummary.from_row(ROWS[0])
        assert product.id == "1"
        assert product.price == 24.5
        assert product.detail_path == "/products/scrubs/scrub-top"

    def test_missing_fields_default(self):
        product = ProductSummary.from_row({"id": 3, "name": "Cap", "slug": None})
        assert product.slug == ""
        assert product.country == ""


class TestProductCatalog:
    async def test_search_filters_by_name(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = request.url
            seen["headers"] = request.headers
            return httpx.Response(200, json=ROWS)

        catalog = make_catalog(handler)
        results = await catalog.search(" scrub ", limit=10)
        await catalog.close()

        assert [p.slug for p in results] == ["scrub-top", "scrub-pants"]
        assert seen["url"].path == "/rest/v1/products"
        assert seen["url"].params["name"] == "ilike.*scrub*"
        assert seen["url"].params["limit"] == "10"
        assert seen["url"].params["select"] == "*"
        assert seen["headers"]["apikey"] == "anon-key"
        assert seen["headers"]["authorization"] == "Bearer anon-key"

    async def test_search_strips_filter_syntax(self):
        seen = {}

        def handler(request):
            seen["name"] = request.url.params["name"]
            return httpx.Response(200, json=[])

        catalog = make_catalog(handler)
        assert await catalog.search("a,b(c)*%") == []
        await catalog.close()
        assert seen["name"] == "ilike.*abc*"

    async def test_get_by_category_and_slug(self):
        def handler(request):
            assert request.url.params["category"] == "eq.scrubs"
            assert request.url.params["slug"] == "eq.scrub-top"
            return httpx.Response(200, json=ROWS[:1])

        catalog = make_catalog(handler)
        product = await catalog.get("scrubs", "scrub-top")
        await catalog.close()
        assert product.name == "Scrub Top"

    async def test_get_missing_returns_none(self):
        catalog = make_catalog(lambda r: httpx.Response(200, json=[]))
        assert await catalog.get("scrubs", "nope") is None
        await catalog.close()

    async def test_by_category(self):
        catalog = make_catalog(lambda r: httpx.Response(200, json=ROWS))
        assert len(await catalog.by_category("scrubs")) == 2
        await catalog.close()

    async def test_http_error_raises(self):
        catalog = make_catalog(lambda r: httpx.Response(500, json={"message": "down"}))
        with pytest.raises(httpx.HTTPStatusError):
            await catalog.search("scrub")
        await catalog.close()
