"""
Redis caching service for the public branch listing.

What we cache:
  - GET /api/branches/all, JSON-serialized
  - Key: "branches:list:all"

Invalidation:
  - Once a branch create/update/delete or a restaurant profile update
    is committed, every "branches:list:*" key is deleted
  - TTL (REDIS_CACHE_TTL) as a safety net

Availability and bookings are never cached; they must be read live.
Redis being down only means cache misses, never failed requests.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.core.config import get_settings
from ehgezli.core.metrics import record_cache_operation
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

BRANCH_LIST_PREFIX = "branches:list:"
ALL_BRANCHES_KEY = f"{BRANCH_LIST_PREFIX}all"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create the Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


async def get_cached_branches() -> Optional[list[dict[str, Any]]]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(ALL_BRANCHES_KEY)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=ALL_BRANCHES_KEY, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=ALL_BRANCHES_KEY)
        return json.loads(data)
    logger.debug("cache_miss", key=ALL_BRANCHES_KEY)
    return None


async def set_cached_branches(items: list[dict[str, Any]]) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(ALL_BRANCHES_KEY, settings.REDIS_CACHE_TTL, json.dumps(items, default=str))
        logger.debug("cache_set", key=ALL_BRANCHES_KEY, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=ALL_BRANCHES_KEY, error=str(e))


async def invalidate_branch_cache() -> None:
    """Delete every cached branch listing (SCAN over the key prefix)."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{BRANCH_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def commit_and_invalidate(db: AsyncSession) -> None:
    """
    Commit the request's writes, then drop the cached listings. A listing
    read racing with the write can only refill the cache from committed rows.
    """
    await db.commit()
    await invalidate_branch_cache()


async def get_cache_stats() -> dict:
    """Redis keyspace hit/miss figures for /health."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
