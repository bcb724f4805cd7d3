"""
Stub Catalog Client

Development client that logs all operations without making real API calls.
Tests script its behaviour per variant: field errors, transport errors,
or a delay longer than the engine's item timeout.
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from autodiscount_core.catalog.base import (
    CatalogClient,
    CatalogProduct,
    CatalogUpdateResult,
    FieldError,
)
from autodiscount_core.contracts.money import format_price
from autodiscount_core.errors import CatalogTransportError

logger = logging.getLogger(__name__)


class StubCatalogClient(CatalogClient):
    """
    Stub catalog for development and testing.

    - Records every update in `calls`
    - Keeps the last applied price per variant in `prices`
    - Can be configured to reject, fail or stall specific variants
    """

    def __init__(
        self,
        shop: str = "stub.myshopify.com",
        products: list[CatalogProduct] | None = None,
        field_errors: dict[str, list[FieldError]] | None = None,
        transport_errors: set[str] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.shop = shop
        self.products = products or []
        self.field_errors = field_errors or {}
        self.transport_errors = transport_errors or set()
        self.delays = delays or {}
        self.calls: list[dict[str, Any]] = []
        self.prices: dict[str, str] = {}
        self.closed = False

    async def update_variant_price(
        self,
        product_id: str,
        variant_id: str,
        price: Decimal,
    ) -> CatalogUpdateResult:
        """Record the call and answer as configured."""
        price_str = format_price(price)
        self.calls.append({
            "shop": self.shop,
            "product_id": product_id,
            "variant_id": variant_id,
            "price": price_str,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        logger.info(
            f"[STUB] Updating variant price",
            extra={"shop": self.shop, "variant_id": variant_id, "price": price_str},
        )

        delay = self.delays.get(variant_id)
        if delay:
            await asyncio.sleep(delay)

        if variant_id in self.transport_errors:
            raise CatalogTransportError(
                message="Simulated transport failure",
                code="STUB_SIMULATED_FAILURE",
                retryable=True,
            )

        errors = self.field_errors.get(variant_id)
        if errors:
            return CatalogUpdateResult(accepted=False, field_errors=list(errors))

        self.prices[variant_id] = price_str
        return CatalogUpdateResult(
            accepted=True,
            applied_price=price_str,
            raw_response={"stub": True, "variant_id": variant_id, "price": price_str},
        )

    async def list_products(self, first: int = 50) -> list[CatalogProduct]:
        return self.products[:first]

    async def aclose(self) -> None:
        self.closed = True
