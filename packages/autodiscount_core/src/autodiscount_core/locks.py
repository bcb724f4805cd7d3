"""
Per-shop locks.

A shop is swept by at most one run at a time. A run that finds the shop
already locked skips it; it never waits.

- InMemoryShopLocks: one process (timer thread, API threads, event loop)
- RedisShopLocks: several processes, via an expiring Redis lease
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import uuid4

import redis

from basecore.redis import acquire_lease, extend_lease, release_lease

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = "autodiscount:lock:shop:"
DEFAULT_LEASE_TTL_SECONDS = 900


@dataclass(frozen=True)
class ShopLease:
    """Proof of holding a shop's lock."""

    shop: str
    token: str


class ShopLockManager(ABC):
    """Non-blocking mutual exclusion keyed by shop."""

    @abstractmethod
    def try_acquire(self, shop: str) -> ShopLease | None:
        """Take the shop's lock, or return None if someone else holds it."""
        ...

    @abstractmethod
    def release(self, lease: ShopLease) -> None:
        """Give the lock back."""
        ...

    @abstractmethod
    def extend(self, lease: ShopLease) -> bool:
        """
        Renew the lease before the next step of a long sweep.

        Returns False if the lease was lost; the holder must stop.
        """
        ...

    @contextmanager
    def hold(self, shop: str) -> Iterator[ShopLease | None]:
        """
        Hold the shop's lock for the body of a with-block.

        Yields None when the shop is already locked; the body decides to skip.
        """
        lease = self.try_acquire(shop)
        try:
            yield lease
        finally:
            if lease is not None:
                self.release(lease)


class InMemoryShopLocks(ShopLockManager):
    """Process-local locks."""

    def __init__(self):
        self._mutex = threading.Lock()
        self._held: dict[str, str] = {}

    def try_acquire(self, shop: str) -> ShopLease | None:
        with self._mutex:
            if shop in self._held:
                return None
            token = uuid4().hex
            self._held[shop] = token
            return ShopLease(shop=shop, token=token)

    def release(self, lease: ShopLease) -> None:
        with self._mutex:
            if self._held.get(lease.shop) == lease.token:
                del self._held[lease.shop]

    def extend(self, lease: ShopLease) -> bool:
        with self._mutex:
            return self._held.get(lease.shop) == lease.token

    def is_locked(self, shop: str) -> bool:
        with self._mutex:
            return shop in self._held


class RedisShopLocks(ShopLockManager):
    """
    Cross-process locks backed by Redis leases.

    The lease expires after ttl_seconds so a crashed worker cannot block a
    shop forever. A running sweep renews it before every item, so ttl only
    has to outlast a single item, not the whole shop.
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        ttl_seconds: int = DEFAULT_LEASE_TTL_SECONDS,
        key_prefix: str = LOCK_KEY_PREFIX,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def _key(self, shop: str) -> str:
        return f"{self.key_prefix}{shop}"

    def try_acquire(self, shop: str) -> ShopLease | None:
        token = uuid4().hex
        if acquire_lease(self._key(shop), token, self.ttl_seconds * 1000, client=self.client):
            return ShopLease(shop=shop, token=token)
        return None

    def release(self, lease: ShopLease) -> None:
        try:
            released = release_lease(self._key(lease.shop), lease.token, client=self.client)
        except redis.RedisError as e:
            # The lease still expires on its own
            logger.error(
                f"Failed to release shop lock: {e}",
                extra={"shop": lease.shop},
            )
            return

        if not released:
            logger.warning(
                f"Shop lock for {lease.shop} expired before release",
                extra={"shop": lease.shop, "ttl_seconds": self.ttl_seconds},
            )

    def extend(self, lease: ShopLease) -> bool:
        try:
            extended = extend_lease(
                self._key(lease.shop),
                lease.token,
                self.ttl_seconds * 1000,
                client=self.client,
            )
        except redis.RedisError as e:
            logger.error(
                f"Failed to renew shop lock: {e}",
                extra={"shop": lease.shop},
            )
            return False

        if not extended:
            logger.error(
                f"Shop lock for {lease.shop} expired during the sweep",
                extra={"shop": lease.shop, "ttl_seconds": self.ttl_seconds},
            )
        return extended
