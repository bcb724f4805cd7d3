"""
Auto-Discount Database Models

Tables owned by the auto-discount runtime.

Tables:
- autodiscount_settings: Per-shop automation switch and admin discount
- autodiscount_products: Products enrolled in price oscillation
- autodiscount_shop_credentials: Catalog access token per shop (written by the auth handshake)
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base

from autodiscount_core.contracts.phase import Phase

AutoDiscountBase = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AutoDiscountModelMixin:
    """Common fields for all auto-discount models."""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    shop = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class ShopSettings(AutoDiscountBase, AutoDiscountModelMixin):
    """
    Per-shop settings.

    Created with defaults on first access. The engine only reads auto_discount;
    admin_discount belongs to the settings form.
    """

    __tablename__ = "autodiscount_settings"

    auto_discount = Column(Boolean, nullable=False, default=False)
    admin_discount = Column(Numeric(12, 2), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("shop", name="uq_autodiscount_settings_shop"),
        Index("idx_autodiscount_settings_enabled", "auto_discount"),
    )


class EnrolledProduct(AutoDiscountBase, AutoDiscountModelMixin):
    """
    A product enrolled in price oscillation.

    original_price is captured at enrollment and never changes.
    current_price, phase, last_updated and version only change together,
    in one guarded UPDATE (see AutoDiscountRepository.apply_price_state).
    """

    __tablename__ = "autodiscount_products"

    product_id = Column(String(255), nullable=False)  # External product GID
    variant_id = Column(String(255), nullable=False)  # External variant GID
    product_title = Column(String(512), nullable=False, default="")
    original_price = Column(Numeric(12, 2), nullable=False)
    current_price = Column(Numeric(12, 2), nullable=False)
    phase = Column(String(16), nullable=False, default=Phase.BASE.value)
    last_updated = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)  # Optimistic concurrency token

    __table_args__ = (
        UniqueConstraint("shop", "product_id", name="uq_autodiscount_products_shop_product"),
    )

    @property
    def current_phase(self) -> Phase:
        return Phase(self.phase)

    @property
    def is_discounted(self) -> bool:
        """Legacy flag view of the phase (true = elevated)."""
        return self.current_phase.is_elevated


class ShopCredential(AutoDiscountBase, AutoDiscountModelMixin):
    """
    Catalog access token for a shop.

    Owned by the auth handshake; the engine only reads it. The token may be
    Fernet-encrypted (see catalog.factory.decrypt_access_token).
    """

    __tablename__ = "autodiscount_shop_credentials"

    access_token_encrypted = Column(Text, nullable=False)
    scope = Column(String(512), nullable=True)

    __table_args__ = (
        UniqueConstraint("shop", name="uq_autodiscount_credentials_shop"),
    )
