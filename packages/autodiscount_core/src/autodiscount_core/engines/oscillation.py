"""
Price Oscillation Engine

Sweeps every shop with automation enabled and moves each enrolled product
one step through the phase toggle:

1. List shops with auto_discount on
2. Per shop: take the shop lock (skip if held), load credential (skip if
   missing) and enrollments (skip if none)
3. Per item: compute the next state from the original price, push it to
   the catalog, then persist price + phase in one guarded UPDATE

The catalog write always completes before the store write, so the stored
phase never claims a price that was not applied. Failures stay with the
item or shop they belong to; run_scheduler() itself does not raise.
"""

import asyncio
import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from autodiscount_core.catalog.base import CatalogClient
from autodiscount_core.catalog.factory import CatalogClientFactory
from autodiscount_core.contracts.results import (
    ItemOutcome,
    ItemStatus,
    ShopOutcome,
    ShopStatus,
    SweepResult,
)
from autodiscount_core.engines.phase_toggle import PhaseToggleRule
from autodiscount_core.errors import CatalogError, InvalidPriceError, PersistenceConflictError
from autodiscount_core.locks import InMemoryShopLocks, ShopLease, ShopLockManager
from autodiscount_core.persistence.models import EnrolledProduct, utcnow
from autodiscount_core.persistence.repo import AutoDiscountRepository

logger = logging.getLogger(__name__)

DEFAULT_ITEM_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_CONCURRENT_SHOPS = 4


class PriceOscillationEngine:
    """
    Price Oscillation Engine.

    Holds no state between sweeps: every run reloads settings, credentials
    and enrollments from the store, so any run can be restarted safely.
    Each shop is swept with its own database session.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        client_factory: CatalogClientFactory,
        lock_manager: ShopLockManager | None = None,
        rule: PhaseToggleRule | None = None,
        item_timeout_seconds: float = DEFAULT_ITEM_TIMEOUT_SECONDS,
        max_concurrent_shops: int = DEFAULT_MAX_CONCURRENT_SHOPS,
    ):
        self.session_factory = session_factory
        self.client_factory = client_factory
        self.lock_manager = lock_manager or InMemoryShopLocks()
        self.rule = rule or PhaseToggleRule()
        self.item_timeout_seconds = item_timeout_seconds
        self.max_concurrent_shops = max(1, max_concurrent_shops)

    async def run_scheduler(self) -> SweepResult:
        """
        Run one full sweep.

        Returns:
            SweepResult with one ShopOutcome per enabled shop
        """
        result = SweepResult(started_at=utcnow())
        logger.info("Running price oscillation sweep")

        try:
            shops = self._list_enabled_shops()
        except Exception as e:
            logger.error(f"Failed to list enabled shops: {e}", exc_info=True)
            result.error = str(e)
            result.finished_at = utcnow()
            return result

        semaphore = asyncio.Semaphore(self.max_concurrent_shops)

        async def bounded(shop: str) -> ShopOutcome:
            async with semaphore:
                return await self.process_shop(shop)

        outcomes = await asyncio.gather(*(bounded(shop) for shop in shops), return_exceptions=True)

        for shop, outcome in zip(shops, outcomes):
            if isinstance(outcome, BaseException):
                # process_shop handles its own errors; this is a last resort
                logger.error(f"Shop sweep crashed for {shop}: {outcome}", extra={"shop": shop})
                outcome = ShopOutcome(shop=shop, status=ShopStatus.FAILED, error=str(outcome))
            result.shops.append(outcome)

        result.finished_at = utcnow()

        logger.info(
            "Price oscillation sweep finished",
            extra=result.summary(),
        )
        return result

    def run_scheduler_sync(self) -> SweepResult:
        """Run a sweep from synchronous code (timer thread, CLI)."""
        return asyncio.run(self.run_scheduler())

    def _list_enabled_shops(self) -> list[str]:
        db = self.session_factory()
        try:
            return AutoDiscountRepository(db).list_enabled_shops()
        finally:
            db.close()

    async def process_shop(self, shop: str) -> ShopOutcome:
        """
        Sweep one shop under its lock.

        Never raises; failures become a FAILED outcome.
        """
        try:
            with self.lock_manager.hold(shop) as lease:
                if lease is None:
                    logger.info(
                        f"Shop {shop} is already being processed, skipping",
                        extra={"shop": shop},
                    )
                    return ShopOutcome(shop=shop, status=ShopStatus.SKIPPED_LOCKED)

                db = self.session_factory()
                try:
                    return await self._sweep_shop(db, shop, lease)
                except Exception:
                    db.rollback()
                    raise
                finally:
                    db.close()

        except Exception as e:
            logger.error(
                f"Failed to process shop {shop}: {e}",
                extra={"shop": shop},
                exc_info=True,
            )
            return ShopOutcome(shop=shop, status=ShopStatus.FAILED, error=str(e))

    async def _sweep_shop(self, db: Session, shop: str, lease: ShopLease) -> ShopOutcome:
        repo = AutoDiscountRepository(db)
        logger.info(f"Processing shop: {shop}", extra={"shop": shop})

        credential = repo.get_credential(shop)
        if credential is None:
            logger.info(f"No credential found for {shop}", extra={"shop": shop})
            return ShopOutcome(shop=shop, status=ShopStatus.SKIPPED_NO_CREDENTIAL)

        enrollments = repo.list_enrollments(shop)
        if not enrollments:
            logger.debug(f"No enrolled products for {shop}", extra={"shop": shop})
            return ShopOutcome(shop=shop, status=ShopStatus.SKIPPED_NO_ENROLLMENTS)

        # Plain ids; a rollback after one item expires every loaded record
        pending = [(e.id, e.product_id) for e in enrollments]

        client = self.client_factory(credential)
        outcome = ShopOutcome(shop=shop, status=ShopStatus.PROCESSED)

        try:
            for enrollment_id, product_id in pending:
                if not self.lock_manager.extend(lease):
                    outcome.status = ShopStatus.FAILED
                    outcome.error = "shop lock lost during sweep"
                    logger.error(
                        f"Lost the lock on {shop}, stopping its sweep",
                        extra={"shop": shop},
                    )
                    break

                # The list was read before earlier items ran; pick up
                # un-enrollments and edits made since
                enrollment = repo.reload_enrollment(enrollment_id)
                if enrollment is None:
                    logger.info(
                        f"Product {product_id} was un-enrolled during the sweep, skipping",
                        extra={"shop": shop, "product_id": product_id},
                    )
                    continue

                outcome.items.append(await self._process_item(db, repo, client, enrollment))
        finally:
            await client.aclose()

        logger.info(
            f"Shop {shop} processed",
            extra={
                "shop": shop,
                "updated": outcome.count(ItemStatus.UPDATED),
                "rejected": outcome.count(ItemStatus.REJECTED),
                "failed": outcome.count(ItemStatus.FAILED),
            },
        )
        return outcome

    async def _process_item(
        self,
        db: Session,
        repo: AutoDiscountRepository,
        client: CatalogClient,
        enrollment: EnrolledProduct,
    ) -> ItemOutcome:
        """
        Move one enrollment to its next phase.

        Catalog first, store second. Nothing is retried within a sweep.
        """
        previous_phase = enrollment.current_phase
        item = ItemOutcome(
            enrollment_id=enrollment.id,
            product_id=enrollment.product_id,
            variant_id=enrollment.variant_id,
            status=ItemStatus.FAILED,
            previous_phase=previous_phase,
            target_phase=previous_phase.next(),
            previous_price=enrollment.current_price,
        )
        log_extra = {
            "shop": enrollment.shop,
            "product_id": enrollment.product_id,
            "variant_id": enrollment.variant_id,
        }

        try:
            state = self.rule.next_state(enrollment.original_price, previous_phase)
        except InvalidPriceError as e:
            logger.error(f"Cannot compute next price: {e}", extra=log_extra)
            item.error = str(e)
            return item

        item.target_price = state.price
        logger.info(
            f"Updating {enrollment.product_title}: {enrollment.current_price} -> {state.price}",
            extra={**log_extra, "target_phase": state.phase.value},
        )

        # 1. Catalog
        try:
            response = await asyncio.wait_for(
                client.update_variant_price(enrollment.product_id, enrollment.variant_id, state.price),
                timeout=self.item_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Catalog update timed out after {self.item_timeout_seconds}s",
                extra=log_extra,
            )
            item.error = f"timeout after {self.item_timeout_seconds}s"
            return item
        except CatalogError as e:
            logger.error(
                f"Failed to update {enrollment.product_title}: {e}",
                extra={**log_extra, "code": e.code, "retryable": e.retryable},
            )
            item.error = str(e)
            return item
        except Exception as e:
            logger.error(
                f"Failed to update {enrollment.product_title}: {e}",
                extra=log_extra,
                exc_info=True,
            )
            item.error = str(e)
            return item

        if not response.accepted:
            item.status = ItemStatus.REJECTED
            item.field_errors = [err.to_dict() for err in response.field_errors]
            logger.warning(
                f"Catalog rejected new price for {enrollment.product_title}",
                extra={**log_extra, "field_errors": item.field_errors},
            )
            return item

        # 2. Store
        try:
            repo.apply_price_state(enrollment, state.price, state.phase)
            db.commit()
        except PersistenceConflictError as e:
            db.rollback()
            item.status = ItemStatus.CONFLICT
            item.error = str(e)
            logger.error(
                f"Catalog price applied but enrollment changed concurrently: {e}",
                extra={**log_extra, "applied_price": str(state.price)},
            )
            return item
        except Exception as e:
            db.rollback()
            item.status = ItemStatus.PERSISTENCE_FAILED
            item.error = str(e)
            logger.critical(
                f"Catalog price applied but local state was not saved: {e}",
                extra={**log_extra, "applied_price": str(state.price), "stored_phase": previous_phase.value},
                exc_info=True,
            )
            return item

        item.status = ItemStatus.UPDATED
        return item
