"""
Redis client utilities for basecore.

Provides lazy-initialized Redis client to avoid import-time connections,
plus the lease primitives used for cross-process mutual exclusion.
"""

import functools

import redis

from basecore.settings import get_settings

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

# Reset the expiry only if the key still holds our token
_EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
end
return 0
"""


@functools.lru_cache()
def get_redis_url() -> str:
    """Get Redis URL from settings."""
    return get_settings().REDIS_URL


@functools.lru_cache()
def get_redis_client() -> redis.Redis:
    """
    Get Redis client (cached).

    This function lazily initializes the Redis client to avoid import-time connections.
    """
    url = get_redis_url()
    return redis.from_url(url, decode_responses=True)


def acquire_lease(
    key: str,
    token: str,
    ttl_ms: int,
    client: redis.Redis | None = None,
) -> bool:
    """
    Try to take a lease on a key.

    Uses SET NX PX so the lease expires on its own if the holder dies.

    Args:
        key: Lease key
        token: Unique value identifying the holder
        ttl_ms: Lease lifetime in milliseconds
        client: Redis client (defaults to the shared one)

    Returns:
        True if the lease was taken, False if someone else holds it
    """
    client = client or get_redis_client()
    return bool(client.set(key, token, nx=True, px=ttl_ms))


def release_lease(key: str, token: str, client: redis.Redis | None = None) -> bool:
    """
    Release a lease we hold.

    A lease that already expired and was taken by another holder is left alone.

    Returns:
        True if our lease was deleted
    """
    client = client or get_redis_client()
    return bool(client.eval(_RELEASE_SCRIPT, 1, key, token))


def extend_lease(key: str, token: str, ttl_ms: int, client: redis.Redis | None = None) -> bool:
    """
    Push a held lease's expiry back to ttl_ms from now.

    Returns:
        True if the lease is still ours and was extended, False if it expired
        (and possibly went to another holder)
    """
    client = client or get_redis_client()
    return bool(client.eval(_EXTEND_SCRIPT, 1, key, token, ttl_ms))
