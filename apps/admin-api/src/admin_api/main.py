"""
Auto-Discount Admin API

FastAPI app for shop administrators.

Responsibilities:
- Read and change a shop's automation settings
- List catalog products with their enrollment state
- Enroll / un-enroll products (toggle)
- Trigger a sweep manually (same engine and locks as the daily timer)
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from basecore.db import get_db
from basecore.logging import setup_logging
from autodiscount_core.contracts.money import format_price
from autodiscount_core.engines.oscillation import PriceOscillationEngine
from autodiscount_core.errors import CatalogError
from autodiscount_core.persistence.models import EnrolledProduct, ShopSettings
from autodiscount_core.persistence.repo import AutoDiscountRepository
from autodiscount_core.runtime import get_engine

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Auto-Discount Admin",
    description="Settings, enrollment and manual sweeps for price oscillation",
    version="1.0.0",
)


class SettingsUpdate(BaseModel):
    """Body for PUT /shops/{shop}/settings."""

    auto_discount: bool
    admin_discount: Optional[Decimal] = Field(default=None, ge=0)


class ToggleRequest(BaseModel):
    """Body for POST /shops/{shop}/products/toggle."""

    product_id: str = Field(..., min_length=1)
    variant_id: str = Field(..., min_length=1)
    title: str = ""
    price: Decimal = Field(..., ge=0)


def serialize_settings(settings: ShopSettings) -> dict[str, Any]:
    return {
        "shop": settings.shop,
        "auto_discount": settings.auto_discount,
        "admin_discount": format_price(settings.admin_discount or 0),
    }


def serialize_enrollment(enrollment: EnrolledProduct) -> dict[str, Any]:
    return {
        "product_id": enrollment.product_id,
        "variant_id": enrollment.variant_id,
        "title": enrollment.product_title,
        "original_price": format_price(enrollment.original_price),
        "current_price": format_price(enrollment.current_price),
        "phase": enrollment.phase,
        "is_discounted": enrollment.is_discounted,
        "last_updated": enrollment.last_updated.isoformat() if enrollment.last_updated else None,
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "autodiscount-admin"}


@app.get("/shops/{shop}/settings")
def read_settings(shop: str, db: Session = Depends(get_db)):
    """Get a shop's settings (created with defaults on first access)."""
    settings = AutoDiscountRepository(db).get_or_create_settings(shop)
    db.commit()
    return serialize_settings(settings)


@app.put("/shops/{shop}/settings")
def update_settings(shop: str, body: SettingsUpdate, db: Session = Depends(get_db)):
    """Switch automation on or off and set the admin discount."""
    settings = AutoDiscountRepository(db).save_settings(
        shop,
        auto_discount=body.auto_discount,
        admin_discount=body.admin_discount,
    )
    db.commit()

    logger.info(
        f"Settings updated for {shop}",
        extra={"shop": shop, "auto_discount": body.auto_discount},
    )
    return serialize_settings(settings)


@app.get("/shops/{shop}/products")
async def list_products(
    shop: str,
    first: int = 50,
    db: Session = Depends(get_db),
    engine: PriceOscillationEngine = Depends(get_engine),
):
    """
    List catalog products merged with their enrollment state.

    Enrolled products missing from the catalog page are still returned
    so they can be un-enrolled.
    """
    repo = AutoDiscountRepository(db)
    credential = repo.get_credential(shop)
    if credential is None:
        raise HTTPException(status_code=404, detail="Shop is not connected")

    enrollments = {e.product_id: e for e in repo.list_enrollments(shop)}

    try:
        client = engine.client_factory(credential)
    except CatalogError as e:
        logger.error(f"Failed to build catalog client for {shop}: {e}", extra={"shop": shop})
        raise HTTPException(status_code=502, detail=str(e))

    try:
        products = await client.list_products(first=first)
    except CatalogError as e:
        logger.error(
            f"Failed to list products for {shop}: {e}",
            extra={"shop": shop, "code": e.code},
        )
        raise HTTPException(status_code=502, detail=str(e))
    finally:
        await client.aclose()

    items = []
    for product in products:
        enrollment = enrollments.pop(product.product_id, None)
        items.append({
            "product_id": product.product_id,
            "variant_id": product.variant_id,
            "title": product.title,
            "handle": product.handle,
            "image_url": product.image_url,
            "price": format_price(product.price) if product.price is not None else None,
            "enrolled": enrollment is not None,
            "enrollment": serialize_enrollment(enrollment) if enrollment else None,
        })

    for enrollment in enrollments.values():
        items.append({
            "product_id": enrollment.product_id,
            "variant_id": enrollment.variant_id,
            "title": enrollment.product_title,
            "handle": None,
            "image_url": None,
            "price": format_price(enrollment.current_price),
            "enrolled": True,
            "enrollment": serialize_enrollment(enrollment),
        })

    return {"shop": shop, "products": items}


@app.post("/shops/{shop}/products/toggle")
def toggle_product(shop: str, body: ToggleRequest, db: Session = Depends(get_db)):
    """Enroll the product if it is not tracked, un-enroll it if it is."""
    repo = AutoDiscountRepository(db)
    enrolled = repo.toggle_product(
        shop,
        product_id=body.product_id,
        variant_id=body.variant_id,
        title=body.title,
        price=body.price,
    )
    db.commit()

    logger.info(
        f"Product {body.product_id} {'enrolled' if enrolled else 'unenrolled'}",
        extra={"shop": shop, "product_id": body.product_id},
    )

    response: dict[str, Any] = {"shop": shop, "product_id": body.product_id, "enrolled": enrolled}
    if enrolled:
        response["enrollment"] = serialize_enrollment(repo.get_enrollment(shop, body.product_id))
    return response


@app.post("/scheduler/run")
async def run_scheduler(engine: PriceOscillationEngine = Depends(get_engine)):
    """
    Run one sweep now and return its per-shop, per-item outcomes.

    Shops already being swept (for example by the daily timer) are
    reported as skipped_locked.
    """
    logger.info("Manual sweep requested via admin API")
    result = await engine.run_scheduler()
    return result.to_dict()
