"""
Catalog Client Base

Abstract interface for the external storefront catalog.
Implementations: Shopify Admin GraphQL, Stub (for development and tests).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass
class FieldError:
    """The catalog refused one value (e.g. a price below the minimum)."""

    field: list[str] | str | None
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message}


@dataclass
class CatalogUpdateResult:
    """
    Outcome of a price update that reached the catalog.

    accepted is False whenever field_errors is non-empty. Field errors are
    a rejection of the value, not a transport problem, and are never retried.
    """

    accepted: bool
    field_errors: list[FieldError] = field(default_factory=list)
    applied_price: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class CatalogProduct:
    """A product as listed by the catalog (first variant only)."""

    product_id: str
    title: str
    variant_id: str | None
    price: Decimal
    handle: str | None = None
    image_url: str | None = None


class CatalogClient(ABC):
    """
    Abstract interface for catalog clients.

    One client is bound to one shop's credential and reused for every item
    of that shop during a sweep.

    Implementations must:
    - Return field errors in CatalogUpdateResult
    - Raise CatalogTransportError for network/auth/rate-limit/protocol failures
    """

    shop: str

    @abstractmethod
    async def update_variant_price(
        self,
        product_id: str,
        variant_id: str,
        price: Decimal,
    ) -> CatalogUpdateResult:
        """
        Set the price of one variant.

        Args:
            product_id: External product ID owning the variant
            variant_id: External variant ID
            price: New price (sent as a two-fraction-digit string)

        Returns:
            CatalogUpdateResult with accepted flag and field errors

        Raises:
            CatalogTransportError: the request failed before the catalog could judge the value
        """
        ...

    @abstractmethod
    async def list_products(self, first: int = 50) -> list[CatalogProduct]:
        """
        List products with their first variant and price.

        Raises:
            CatalogTransportError: on request failure
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None
