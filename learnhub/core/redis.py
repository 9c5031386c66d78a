# ruff: noqa: PLW0603
"""Redis client used for the unread-count cache and notification pub/sub.

Redis is optional: when it cannot be reached the API runs without cache
and without realtime fan-out.
"""

import redis.asyncio as redis

from learnhub.config import get_settings
from learnhub.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Create the client and verify it with a PING."""
    global _redis_client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        raise

    _redis_client = client
    logger.info("redis_connected", url=settings.redis_url)
    return _redis_client


async def shutdown_redis() -> None:
    """Close the client if one is open."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Return the shared client, or None when Redis is unavailable."""
    return _redis_client


def notification_channel(user_id: str) -> str:
    """Pub/sub channel for one user's notifications."""
    return f"learnhub:notifications:user:{user_id}"


def unread_count_key(user_id: str) -> str:
    """Cache key for a user's unread notification count."""
    return f"learnhub:notifications:unread:{user_id}"
