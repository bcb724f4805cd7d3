"""
Tests for catalog clients and client construction.
"""

import asyncio
import json
from decimal import Decimal

import httpx
import pytest
from cryptography.fernet import Fernet

from autodiscount_core.catalog.factory import (
    decrypt_access_token,
    encrypt_access_token,
    get_client_for_credential,
)
from autodiscount_core.catalog.shopify import ShopifyCatalogClient
from autodiscount_core.catalog.stub import StubCatalogClient
from autodiscount_core.errors import CatalogError, CatalogTransportError
from autodiscount_core.persistence.models import ShopCredential

SHOP = "alpha.myshopify.com"


def make_client(handler) -> ShopifyCatalogClient:
    return ShopifyCatalogClient(
        shop=SHOP,
        access_token="shpat_test",
        api_version="2024-10",
        transport=httpx.MockTransport(handler),
    )


def update_price(client, price="21.99"):
    async def run():
        try:
            return await client.update_variant_price("gid://shopify/Product/1", "gid://shopify/ProductVariant/1", Decimal(price))
        finally:
            await client.aclose()

    return asyncio.run(run())


class TestShopifyUpdateVariantPrice:
    """Tests for ShopifyCatalogClient.update_variant_price."""

    def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["token"] = request.headers.get("X-Shopify-Access-Token")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "data": {
                    "productVariantsBulkUpdate": {
                        "productVariants": [{"id": "gid://shopify/ProductVariant/1", "price": "21.99"}],
                        "userErrors": [],
                    }
                }
            })

        result = update_price(make_client(handler))

        assert result.accepted is True
        assert result.applied_price == "21.99"
        assert seen["url"] == f"https://{SHOP}/admin/api/2024-10/graphql.json"
        assert seen["token"] == "shpat_test"
        assert seen["body"]["variables"] == {
            "productId": "gid://shopify/Product/1",
            "variants": [{"id": "gid://shopify/ProductVariant/1", "price": "21.99"}],
        }

    def test_price_sent_with_two_decimals(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={
                "data": {"productVariantsBulkUpdate": {"productVariants": [], "userErrors": []}}
            })

        update_price(make_client(handler), price="21")

        assert bodies[0]["variables"]["variants"][0]["price"] == "21.00"

    def test_user_errors_are_returned(self):
        def handler(request):
            return httpx.Response(200, json={
                "data": {
                    "productVariantsBulkUpdate": {
                        "productVariants": None,
                        "userErrors": [{"field": ["variants", "0", "price"], "message": "Price must be positive"}],
                    }
                }
            })

        result = update_price(make_client(handler))

        assert result.accepted is False
        assert result.field_errors[0].field == ["variants", "0", "price"]
        assert result.field_errors[0].message == "Price must be positive"

    @pytest.mark.parametrize("status,retryable", [(401, False), (429, True), (503, True)])
    def test_http_errors_raise(self, status, retryable):
        def handler(request):
            return httpx.Response(status, text="nope")

        with pytest.raises(CatalogTransportError) as exc_info:
            update_price(make_client(handler))

        assert exc_info.value.code == str(status)
        assert exc_info.value.retryable is retryable

    def test_graphql_throttled(self):
        def handler(request):
            return httpx.Response(200, json={
                "errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}]
            })

        with pytest.raises(CatalogTransportError) as exc_info:
            update_price(make_client(handler))

        assert exc_info.value.code == "THROTTLED"
        assert exc_info.value.retryable is True

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CatalogTransportError) as exc_info:
            update_price(make_client(handler))

        assert exc_info.value.code == "HTTP_ERROR"

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(CatalogTransportError) as exc_info:
            update_price(make_client(handler))

        assert exc_info.value.code == "TIMEOUT"

    def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(CatalogTransportError) as exc_info:
            update_price(make_client(handler))

        assert exc_info.value.code == "BAD_RESPONSE"


class TestShopifyListProducts:
    """Tests for ShopifyCatalogClient.list_products."""

    def test_parses_first_variant(self):
        def handler(request):
            assert json.loads(request.content)["variables"] == {"first": 10}
            return httpx.Response(200, json={
                "data": {
                    "products": {
                        "edges": [
                            {"node": {
                                "id": "gid://shopify/Product/1",
                                "title": "Shirt",
                                "handle": "shirt",
                                "featuredImage": {"url": "https://cdn.example.com/shirt.png"},
                                "variants": {"edges": [{"node": {"id": "gid://shopify/ProductVariant/1", "price": "19.99"}}]},
                            }},
                            {"node": {
                                "id": "gid://shopify/Product/2",
                                "title": "Gift card",
                                "handle": "gift-card",
                                "featuredImage": None,
                                "variants": {"edges": []},
                            }},
                        ]
                    }
                }
            })

        client = make_client(handler)

        async def run():
            try:
                return await client.list_products(first=10)
            finally:
                await client.aclose()

        products = asyncio.run(run())

        assert len(products) == 2
        assert products[0].variant_id == "gid://shopify/ProductVariant/1"
        assert products[0].price == Decimal("19.99")
        assert products[0].image_url == "https://cdn.example.com/shirt.png"
        assert products[1].variant_id is None
        assert products[1].image_url is None


class TestStubCatalogClient:
    """Tests for the stub client."""

    def test_records_calls(self):
        client = StubCatalogClient(shop=SHOP)

        result = asyncio.run(client.update_variant_price("p1", "v1", Decimal("9.5")))

        assert result.accepted is True
        assert client.prices == {"v1": "9.50"}
        assert client.calls[0]["price"] == "9.50"

    def test_scripted_transport_error(self):
        client = StubCatalogClient(transport_errors={"v1"})

        with pytest.raises(CatalogTransportError):
            asyncio.run(client.update_variant_price("p1", "v1", Decimal("9.50")))

        assert client.prices == {}


class TestClientFactory:
    """Tests for building clients from stored credentials."""

    def test_token_round_trip_with_key(self):
        key = Fernet.generate_key().decode()
        stored = encrypt_access_token("shpat_secret", key)

        assert stored != "shpat_secret"
        assert decrypt_access_token(stored, key) == "shpat_secret"

    def test_plain_token_without_key(self):
        assert encrypt_access_token("shpat_secret", None) == "shpat_secret"
        assert decrypt_access_token("shpat_secret", None) == "shpat_secret"

    def test_wrong_key_is_catalog_error(self):
        stored = encrypt_access_token("shpat_secret", Fernet.generate_key().decode())

        with pytest.raises(CatalogError) as exc_info:
            decrypt_access_token(stored, Fernet.generate_key().decode())

        assert exc_info.value.code == "CREDENTIAL_INVALID"

    def test_shopify_client_for_credential(self):
        key = Fernet.generate_key().decode()
        credential = ShopCredential(shop=SHOP, access_token_encrypted=encrypt_access_token("shpat_secret", key))

        client = get_client_for_credential(credential, provider="shopify", encryption_key=key)

        assert isinstance(client, ShopifyCatalogClient)
        assert client.access_token == "shpat_secret"
        assert client.shop == SHOP

    def test_stub_client_for_credential(self):
        credential = ShopCredential(shop=SHOP, access_token_encrypted="ignored")

        client = get_client_for_credential(credential, provider="stub")

        assert isinstance(client, StubCatalogClient)
        assert client.shop == SHOP
