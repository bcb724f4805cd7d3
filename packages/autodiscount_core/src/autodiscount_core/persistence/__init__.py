"""
Auto-Discount Persistence

SQLAlchemy models and repository for auto-discount tables.
"""

from autodiscount_core.persistence.models import (
    AutoDiscountBase,
    EnrolledProduct,
    ShopCredential,
    ShopSettings,
)
from autodiscount_core.persistence.repo import AutoDiscountRepository

__all__ = [
    "AutoDiscountBase",
    "EnrolledProduct",
    "ShopCredential",
    "ShopSettings",
    "AutoDiscountRepository",
]
