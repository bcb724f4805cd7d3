"""
Sweep results.

A sweep returns one SweepResult holding a ShopOutcome per eligible shop and
an ItemOutcome per enrolled product that was attempted. Callers (timer,
admin API, CLI, tests) assert on these instead of parsing logs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from autodiscount_core.contracts.phase import Phase


class ShopStatus(str, Enum):
    """How a shop ended up in a sweep."""

    PROCESSED = "processed"
    SKIPPED_LOCKED = "skipped_locked"
    SKIPPED_NO_CREDENTIAL = "skipped_no_credential"
    SKIPPED_NO_ENROLLMENTS = "skipped_no_enrollments"
    FAILED = "failed"

    @property
    def is_skip(self) -> bool:
        return self.value.startswith("skipped_")


class ItemStatus(str, Enum):
    """How one enrolled product ended up in a sweep."""

    UPDATED = "updated"
    REJECTED = "rejected"  # catalog returned field errors
    FAILED = "failed"  # transport error, timeout, invalid price, unexpected error
    CONFLICT = "conflict"  # catalog updated, record changed underneath us
    PERSISTENCE_FAILED = "persistence_failed"  # catalog updated, store write failed

    @property
    def is_inconsistent(self) -> bool:
        """Remote price changed but local state did not."""
        return self in (ItemStatus.CONFLICT, ItemStatus.PERSISTENCE_FAILED)


@dataclass
class ItemOutcome:
    """Result for one enrolled product."""

    enrollment_id: UUID
    product_id: str
    variant_id: str
    status: ItemStatus
    previous_phase: Phase
    target_phase: Phase
    previous_price: Decimal
    target_price: Decimal | None = None
    field_errors: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "enrollment_id": str(self.enrollment_id),
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "status": self.status.value,
            "previous_phase": self.previous_phase.value,
            "target_phase": self.target_phase.value,
            "previous_price": f"{self.previous_price:.2f}",
            "target_price": f"{self.target_price:.2f}" if self.target_price is not None else None,
            "field_errors": self.field_errors,
            "error": self.error,
        }


@dataclass
class ShopOutcome:
    """Result for one shop."""

    shop: str
    status: ShopStatus
    items: list[ItemOutcome] = field(default_factory=list)
    error: str | None = None

    def count(self, status: ItemStatus) -> int:
        return sum(1 for item in self.items if item.status == status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "shop": self.shop,
            "status": self.status.value,
            "error": self.error,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class SweepResult:
    """Aggregate result of one sweep across all eligible shops."""

    started_at: datetime
    finished_at: datetime | None = None
    shops: list[ShopOutcome] = field(default_factory=list)
    error: str | None = None  # sweep could not start (e.g. store unreachable)

    def shop(self, shop: str) -> ShopOutcome | None:
        for outcome in self.shops:
            if outcome.shop == shop:
                return outcome
        return None

    @property
    def items(self) -> list[ItemOutcome]:
        return [item for outcome in self.shops for item in outcome.items]

    @property
    def shops_processed(self) -> int:
        return sum(1 for s in self.shops if s.status == ShopStatus.PROCESSED)

    @property
    def shops_skipped(self) -> int:
        return sum(1 for s in self.shops if s.status.is_skip)

    @property
    def shops_failed(self) -> int:
        return sum(1 for s in self.shops if s.status == ShopStatus.FAILED)

    @property
    def items_updated(self) -> int:
        return sum(1 for i in self.items if i.status == ItemStatus.UPDATED)

    @property
    def items_rejected(self) -> int:
        return sum(1 for i in self.items if i.status == ItemStatus.REJECTED)

    @property
    def items_failed(self) -> int:
        return sum(1 for i in self.items if i.status != ItemStatus.UPDATED and i.status != ItemStatus.REJECTED)

    @property
    def ok(self) -> bool:
        """True when nothing failed (skips and no-ops count as ok)."""
        return (
            self.error is None
            and self.shops_failed == 0
            and self.items_failed == 0
            and self.items_rejected == 0
        )

    def summary(self) -> dict[str, int]:
        return {
            "shops_processed": self.shops_processed,
            "shops_skipped": self.shops_skipped,
            "shops_failed": self.shops_failed,
            "items_updated": self.items_updated,
            "items_rejected": self.items_rejected,
            "items_failed": self.items_failed,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "ok": self.ok,
            "error": self.error,
            "summary": self.summary(),
            "shops": [s.to_dict() for s in self.shops],
        }
