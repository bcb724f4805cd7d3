"""
Shopify Catalog Client

Production client for the Shopify Admin GraphQL API.
Prices are written with productVariantsBulkUpdate; userErrors come back as
field errors, everything else that goes wrong is a transport error.
"""

import logging
from decimal import Decimal
from typing import Any

import httpx

from autodiscount_core.catalog.base import (
    CatalogClient,
    CatalogProduct,
    CatalogUpdateResult,
    FieldError,
)
from autodiscount_core.contracts.money import format_price
from autodiscount_core.errors import CatalogTransportError

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-10"

UPDATE_VARIANT_PRICE_MUTATION = """
mutation updatePrice($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants {
      id
      price
    }
    userErrors {
      field
      message
    }
  }
}
"""

LIST_PRODUCTS_QUERY = """
query getProducts($first: Int!) {
  products(first: $first) {
    edges {
      node {
        id
        title
        handle
        featuredImage {
          url
        }
        variants(first: 1) {
          edges {
            node {
              id
              price
            }
          }
        }
      }
    }
  }
}
"""


class ShopifyCatalogClient(CatalogClient):
    """
    Shopify Admin GraphQL client bound to one shop.

    The underlying httpx.AsyncClient is created lazily and kept open for the
    whole shop sweep; call aclose() when done.
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Shopify client.

        Args:
            shop: Shop domain (e.g., "example.myshopify.com")
            access_token: Admin API access token
            api_version: Admin API version
            timeout: HTTP request timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Access-Token": self.access_token,
                },
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL request and return its `data` object."""
        client = await self._get_client()

        try:
            response = await client.post(self.endpoint, json={"query": query, "variables": variables})
        except httpx.TimeoutException as e:
            raise CatalogTransportError(
                message=f"Catalog request timed out: {e}",
                code="TIMEOUT",
                retryable=True,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}", extra={"shop": self.shop})
            raise CatalogTransportError(
                message=f"HTTP request failed: {e}",
                code="HTTP_ERROR",
                retryable=True,
            ) from e

        if response.status_code >= 400:
            raise CatalogTransportError(
                message=f"Catalog returned HTTP {response.status_code}",
                code=str(response.status_code),
                details={"body": response.text[:500]},
                retryable=response.status_code == 429 or response.status_code >= 500,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogTransportError(
                message="Catalog returned a non-JSON body",
                code="BAD_RESPONSE",
                details={"body": response.text[:500]},
            ) from e

        # Top-level GraphQL errors (throttling, bad query, access denied)
        errors = payload.get("errors")
        if errors:
            throttled = any(
                (err.get("extensions") or {}).get("code") == "THROTTLED" for err in errors if isinstance(err, dict)
            )
            raise CatalogTransportError(
                message=f"GraphQL errors: {errors}",
                code="THROTTLED" if throttled else "GRAPHQL_ERROR",
                details={"errors": errors},
                retryable=throttled,
            )

        return payload.get("data") or {}

    async def update_variant_price(
        self,
        product_id: str,
        variant_id: str,
        price: Decimal,
    ) -> CatalogUpdateResult:
        """Set one variant's price via productVariantsBulkUpdate."""
        price_str = format_price(price)
        data = await self._graphql(
            UPDATE_VARIANT_PRICE_MUTATION,
            {
                "productId": product_id,
                "variants": [{"id": variant_id, "price": price_str}],
            },
        )

        result = data.get("productVariantsBulkUpdate")
        if result is None:
            raise CatalogTransportError(
                message="productVariantsBulkUpdate missing from response",
                code="BAD_RESPONSE",
                details={"data": data},
            )

        user_errors = result.get("userErrors") or []
        if user_errors:
            field_errors = [
                FieldError(field=err.get("field"), message=err.get("message", ""))
                for err in user_errors
            ]
            logger.warning(
                f"Catalog rejected price for variant {variant_id}",
                extra={
                    "shop": self.shop,
                    "variant_id": variant_id,
                    "price": price_str,
                    "field_errors": [e.to_dict() for e in field_errors],
                },
            )
            return CatalogUpdateResult(accepted=False, field_errors=field_errors, raw_response=result)

        applied = None
        for variant in result.get("productVariants") or []:
            if variant.get("id") == variant_id:
                applied = variant.get("price")

        return CatalogUpdateResult(accepted=True, applied_price=applied or price_str, raw_response=result)

    async def list_products(self, first: int = 50) -> list[CatalogProduct]:
        """List products with their first variant."""
        data = await self._graphql(LIST_PRODUCTS_QUERY, {"first": first})

        products = []
        for edge in (data.get("products") or {}).get("edges", []):
            node = edge.get("node") or {}
            variant_edges = (node.get("variants") or {}).get("edges") or []
            variant = variant_edges[0]["node"] if variant_edges else {}
            image = node.get("featuredImage") or {}
            products.append(
                CatalogProduct(
                    product_id=node["id"],
                    title=node.get("title", ""),
                    handle=node.get("handle"),
                    image_url=image.get("url"),
                    variant_id=variant.get("id"),
                    price=Decimal(str(variant.get("price") or "0.00")),
                )
            )
        return products
