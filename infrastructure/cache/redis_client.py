"""Async Redis connection helpers.

create_redis_client() returns a connected client, or None when Redis is not
configured or unreachable. Redis only backs the shared rate limit and the
session cache, so every caller handles the None case by falling back to
process-local behaviour.
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.logging import get_logger

log = get_logger(__name__)


async def create_redis_client(redis_uri: Optional[str]) -> Optional[aioredis.Redis]:
    """Connect to Redis and return a client, or None on failure."""
    if not redis_uri:
        log.info("redis_not_configured")
        return None
    try:
        client: aioredis.Redis = aioredis.from_url(
            redis_uri, encoding="utf-8", decode_responses=True
        )
        await client.ping()
        log.info("redis_connected", uri=redis_uri.split("@")[-1])  # mask credentials
        return client
    except (RedisError, OSError) as e:
        log.warning(
            "redis_connection_failed", error=str(e), error_type=type(e).__name__
        )
        return None


async def close_redis_client(client: Optional[aioredis.Redis]) -> None:
    if client is None:
        return
    try:
        await client.aclose()
    except RedisError as e:
        log.warning("redis_close_failed", error=str(e), error_type=type(e).__name__)
