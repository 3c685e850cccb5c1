"""
Shared Redis connection.

Redis only stores revoked identity tokens, so a short socket timeout keeps
an unreachable server from stalling authenticated requests.
"""

import logging

import redis.asyncio as redis
from zapshift.app.core.config import settings

logger = logging.getLogger("zapshift.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_timeout=settings.redis_socket_timeout,
    socket_connect_timeout=settings.redis_socket_timeout,
)


async def get_redis():
    """Current client, looked up on every call so it can be replaced at runtime."""
    return redis_client


async def ping_redis() -> bool:
    """True when Redis answers a PING."""
    client = await get_redis()
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    """Release the connection pool on shutdown."""
    client = await get_redis()
    await client.aclose()
