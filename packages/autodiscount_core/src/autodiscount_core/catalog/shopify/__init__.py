"""
Shopify Admin GraphQL catalog client.
"""

from autodiscount_core.catalog.shopify.client import ShopifyCatalogClient

__all__ = ["ShopifyCatalogClient"]
