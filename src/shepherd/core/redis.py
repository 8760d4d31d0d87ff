"""Optional Redis client shared by cross-process helpers.

Only the notification deduplicator uses Redis today. When REDIS_URL is unset or
the server cannot be reached, ``get_redis()`` returns None and callers fall back
to per-process state.
"""

from redis.asyncio import ConnectionPool, Redis

from src.shepherd.core.config import get_settings
from src.shepherd.core.logging import get_logger

logger = get_logger(__name__)

_pool: ConnectionPool | None = None
_redis: Redis | None = None
_connection_attempted: bool = False


async def get_redis() -> Redis | None:
    """Return the shared client, connecting lazily on first use."""
    global _pool, _redis, _connection_attempted

    if _redis is not None:
        return _redis
    if _connection_attempted:
        return None

    _connection_attempted = True
    settings = get_settings()
    if not settings.redis_url:
        logger.info("Redis not configured, notification dedup is per-process")
        return None

    pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.redis_pool_size,
        decode_responses=True,
    )
    client = Redis(connection_pool=pool)
    try:
        await client.ping()  # type: ignore[misc]
    except Exception as e:
        logger.warning("Redis connection failed, falling back to per-process dedup", error=str(e))
        await client.aclose()
        await pool.disconnect()
        return None

    _pool, _redis = pool, client
    logger.info("Redis connected")
    return _redis


async def close_redis() -> None:
    """Close the pool. Called during application shutdown."""
    global _pool, _redis, _connection_attempted

    if _redis is not None:
        await _redis.aclose()
        logger.info("Redis connection closed")
    if _pool is not None:
        await _pool.disconnect()
    reset_redis_state()


def reset_redis_state() -> None:
    """Forget the cached client so the next call reconnects (tests)."""
    global _pool, _redis, _connection_attempted
    _pool = None
    _redis = None
    _connection_attempted = False
