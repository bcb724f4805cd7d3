"""
Process wiring.

Builds the engine, lock manager and scheduler from Settings. The worker,
the admin API and the CLI all go through here, so manual and timed runs
use the same lock backend and skip shops another run is sweeping.
"""

import functools
import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from basecore.settings import Settings, get_settings
from autodiscount_core.catalog.factory import CatalogClientFactory, make_client_factory
from autodiscount_core.engines.oscillation import PriceOscillationEngine
from autodiscount_core.engines.phase_toggle import PhaseToggleRule
from autodiscount_core.locks import InMemoryShopLocks, RedisShopLocks, ShopLockManager
from autodiscount_core.scheduler import SweepScheduler

logger = logging.getLogger(__name__)


def build_lock_manager(settings: Settings | None = None) -> ShopLockManager:
    """
    Lock manager for the configured backend.

    Redis leases are shared by every process pointed at the same REDIS_URL,
    so the timer, manual API runs and CLI runs skip each other's shops.
    Memory locks only cover the current process.
    """
    settings = settings or get_settings()
    if settings.AUTODISCOUNT_LOCK_BACKEND == "redis":
        from basecore.redis import get_redis_client

        logger.info("Using Redis shop locks")
        return RedisShopLocks(
            client=get_redis_client(),
            ttl_seconds=settings.AUTODISCOUNT_LOCK_TTL_SECONDS,
        )

    logger.warning("Using in-memory shop locks; sweeps in other processes are not serialized")
    return InMemoryShopLocks()


@functools.lru_cache()
def get_lock_manager() -> ShopLockManager:
    """Get the process-wide lock manager (cached)."""
    return build_lock_manager()


def build_engine(
    settings: Settings | None = None,
    session_factory: Callable[[], Session] | None = None,
    client_factory: CatalogClientFactory | None = None,
    lock_manager: ShopLockManager | None = None,
) -> PriceOscillationEngine:
    """
    Build a PriceOscillationEngine.

    Anything not passed in is taken from settings and the shared
    process resources.
    """
    settings = settings or get_settings()

    if session_factory is None:
        from basecore.db import get_sessionmaker

        session_factory = get_sessionmaker()

    if client_factory is None:
        client_factory = make_client_factory(
            provider=settings.CATALOG_PROVIDER,
            api_version=settings.SHOPIFY_API_VERSION,
            timeout=settings.AUTODISCOUNT_ITEM_TIMEOUT_SECONDS,
            encryption_key=settings.CREDENTIAL_ENCRYPTION_KEY,
        )

    return PriceOscillationEngine(
        session_factory=session_factory,
        client_factory=client_factory,
        lock_manager=lock_manager or get_lock_manager(),
        rule=PhaseToggleRule(
            elevation_offset=settings.AUTODISCOUNT_ELEVATION_OFFSET,
            base_offset=settings.AUTODISCOUNT_BASE_OFFSET,
        ),
        item_timeout_seconds=settings.AUTODISCOUNT_ITEM_TIMEOUT_SECONDS,
        max_concurrent_shops=settings.AUTODISCOUNT_MAX_CONCURRENT_SHOPS,
    )


@functools.lru_cache()
def get_engine() -> PriceOscillationEngine:
    """Get the process-wide engine (cached)."""
    return build_engine()


def build_scheduler(
    engine: PriceOscillationEngine | None = None,
    settings: Settings | None = None,
) -> SweepScheduler:
    settings = settings or get_settings()
    return SweepScheduler(
        engine or get_engine(),
        cron=settings.AUTODISCOUNT_CRON,
        timezone=settings.AUTODISCOUNT_TIMEZONE,
    )
