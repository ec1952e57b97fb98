"""Shared Redis client for the request rate limiter.

Balances, escrow and row locks never touch Redis; PostgreSQL is the only
source of truth. Socket timeouts are kept short so the limiter can fail open
instead of stalling requests when Redis is unreachable.
"""

import logging

import redis.asyncio as aioredis

from config.settings import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Return the process-wide client, creating it on first use."""
    global _client  # noqa: PLW0603
    if _client is None:
        timeout = settings.REDIS_SOCKET_TIMEOUT_SECONDS
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        logger.debug("Redis client created for %s", settings.REDIS_URL)
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
