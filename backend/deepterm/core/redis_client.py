"""Redis client and the advisory lock that keeps alert runs from overlapping."""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis

from deepterm.core.config import settings

logger = logging.getLogger(__name__)

# Async Redis client singleton
_redis: Optional[aioredis.Redis] = None

# Compare-and-delete so a run never releases a lock it no longer owns
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


async def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
    return _redis


async def acquire_lock(name: str, ttl: int) -> Optional[str]:
    """Try to take lock `name` for `ttl` seconds. Returns the owner token or None."""
    token = secrets.token_hex(16)
    r = await get_redis()
    acquired = await r.set(f"lock:{name}", token, nx=True, ex=ttl)
    return token if acquired else None


async def release_lock(name: str, token: str) -> None:
    r = await get_redis()
    await r.eval(_RELEASE_SCRIPT, 1, f"lock:{name}", token)


@asynccontextmanager
async def run_lock(name: str, ttl: int) -> AsyncIterator[bool]:
    """
    Advisory lock around a scheduled run.

    Yields True when the caller may proceed. Fails open when Redis is
    unreachable: the run goes ahead without mutual exclusion.
    """
    if not settings.ALERT_RUN_LOCK_ENABLED:
        yield True
        return

    token: Optional[str] = None
    lock_available = True
    try:
        token = await acquire_lock(name, ttl)
    except Exception as e:
        logger.warning("Run lock %s unavailable, proceeding without it: %s", name, e)
        lock_available = False

    if not lock_available:
        yield True
        return

    if token is None:
        logger.info("Run lock %s is held by another run", name)
        yield False
        return

    try:
        yield True
    finally:
        try:
            await release_lock(name, token)
        except Exception as e:
            # The TTL expires the lock anyway
            logger.warning("Failed to release run lock %s: %s", name, e)
