"""
Auto-Discount Repository

Repository pattern for auto-discount database operations.
The repository flushes; committing is the caller's decision (the engine
commits once per item, the admin surfaces once per request).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from autodiscount_core.contracts.phase import Phase
from autodiscount_core.contracts.money import round_price
from autodiscount_core.errors import PersistenceConflictError
from autodiscount_core.persistence.models import (
    EnrolledProduct,
    ShopCredential,
    ShopSettings,
    utcnow,
)


class AutoDiscountRepository:
    """Repository for auto-discount tables."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self, shop: str) -> ShopSettings | None:
        """Get settings for a shop."""
        return self.db.query(ShopSettings).filter(ShopSettings.shop == shop).first()

    def get_or_create_settings(self, shop: str) -> ShopSettings:
        """Get settings for a shop, creating defaults on first access."""
        settings = self.get_settings(shop)
        if settings:
            return settings

        settings = ShopSettings(shop=shop, auto_discount=False, admin_discount=Decimal("0"))
        self.db.add(settings)
        self.db.flush()
        return settings

    def save_settings(
        self,
        shop: str,
        auto_discount: bool,
        admin_discount: Decimal | None = None,
    ) -> ShopSettings:
        """Upsert settings for a shop."""
        settings = self.get_or_create_settings(shop)
        settings.auto_discount = auto_discount
        if admin_discount is not None:
            settings.admin_discount = round_price(admin_discount)
        self.db.flush()
        return settings

    def list_enabled_shops(self) -> list[str]:
        """Shops with automation switched on."""
        rows = self.db.execute(
            select(ShopSettings.shop)
            .where(ShopSettings.auto_discount == True)  # noqa: E712
            .order_by(ShopSettings.shop)
        )
        return [row[0] for row in rows]

    # =========================================================================
    # Credentials
    # =========================================================================

    def get_credential(self, shop: str) -> ShopCredential | None:
        """Get the catalog credential for a shop, if the shop is connected."""
        return self.db.query(ShopCredential).filter(ShopCredential.shop == shop).first()

    def upsert_credential(
        self,
        shop: str,
        access_token_encrypted: str,
        scope: str | None = None,
    ) -> ShopCredential:
        """Create or replace the credential for a shop."""
        credential = self.get_credential(shop)
        if credential:
            credential.access_token_encrypted = access_token_encrypted
            credential.scope = scope
        else:
            credential = ShopCredential(
                shop=shop,
                access_token_encrypted=access_token_encrypted,
                scope=scope,
            )
            self.db.add(credential)
        self.db.flush()
        return credential

    # =========================================================================
    # Enrollments
    # =========================================================================

    def list_enrollments(self, shop: str) -> list[EnrolledProduct]:
        """All enrolled products for a shop."""
        return (
            self.db.query(EnrolledProduct)
            .filter(EnrolledProduct.shop == shop)
            .order_by(EnrolledProduct.created_at, EnrolledProduct.product_id)
            .all()
        )

    def get_enrollment(self, shop: str, product_id: str) -> EnrolledProduct | None:
        """Get an enrollment by shop and external product ID."""
        return (
            self.db.query(EnrolledProduct)
            .filter(
                EnrolledProduct.shop == shop,
                EnrolledProduct.product_id == product_id,
            )
            .first()
        )

    def reload_enrollment(self, enrollment_id: UUID) -> EnrolledProduct | None:
        """
        Re-read an enrollment from the database, bypassing the identity map.

        Returns None if the row was deleted (product un-enrolled).
        """
        return self.db.get(EnrolledProduct, enrollment_id, populate_existing=True)

    def enroll_product(
        self,
        shop: str,
        product_id: str,
        variant_id: str,
        title: str,
        price: Decimal,
    ) -> tuple[EnrolledProduct, bool]:
        """
        Enroll a product, capturing its current price as the original.

        Enrolling a product twice keeps the first record (and its original price).

        Returns:
            Tuple of (enrollment, created) where created is True if new.
        """
        existing = self.get_enrollment(shop, product_id)
        if existing:
            return existing, False

        price = round_price(price)
        enrollment = EnrolledProduct(
            shop=shop,
            product_id=product_id,
            variant_id=variant_id,
            product_title=title or "",
            original_price=price,
            current_price=price,
            phase=Phase.BASE.value,
            version=1,
        )
        self.db.add(enrollment)
        self.db.flush()
        return enrollment, True

    def unenroll_product(self, shop: str, product_id: str) -> int:
        """
        Remove a product from oscillation.

        Returns:
            Number of rows deleted (0 or 1)
        """
        deleted = (
            self.db.query(EnrolledProduct)
            .filter(
                EnrolledProduct.shop == shop,
                EnrolledProduct.product_id == product_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted

    def toggle_product(
        self,
        shop: str,
        product_id: str,
        variant_id: str,
        title: str,
        price: Decimal,
    ) -> bool:
        """
        Enroll the product if it is not tracked, un-enroll it if it is.

        Returns:
            True if the product is enrolled after the call
        """
        if self.get_enrollment(shop, product_id):
            self.unenroll_product(shop, product_id)
            return False
        self.enroll_product(shop, product_id, variant_id, title, price)
        return True

    def apply_price_state(
        self,
        enrollment: EnrolledProduct,
        price: Decimal,
        phase: Phase,
        updated_at: datetime | None = None,
    ) -> int:
        """
        Persist a new price state as one guarded UPDATE.

        Price, phase, timestamp and version move together. The UPDATE only
        matches if the row still carries the version we read, so a concurrent
        writer (or a deletion) makes this a no-op instead of a lost update.

        Returns:
            The new version

        Raises:
            PersistenceConflictError: the row changed or disappeared since it was read
        """
        now = updated_at or utcnow()
        expected_version = enrollment.version

        result = self.db.execute(
            update(EnrolledProduct)
            .where(
                EnrolledProduct.id == enrollment.id,
                EnrolledProduct.version == expected_version,
            )
            .values(
                current_price=round_price(price),
                phase=phase.value,
                last_updated=now,
                updated_at=now,
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            raise PersistenceConflictError(
                f"Enrollment {enrollment.id} ({enrollment.shop}/{enrollment.product_id}) "
                f"changed since version {expected_version}"
            )

        return expected_version + 1
