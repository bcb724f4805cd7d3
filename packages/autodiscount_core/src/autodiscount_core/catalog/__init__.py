"""
Catalog Clients

Adapters for the external storefront catalog.
Supports Shopify Admin GraphQL (production) and Stub (development).
"""

from autodiscount_core.catalog.base import (
    CatalogClient,
    CatalogProduct,
    CatalogUpdateResult,
    FieldError,
)

__all__ = [
    "CatalogClient",
    "CatalogProduct",
    "CatalogUpdateResult",
    "FieldError",
]
