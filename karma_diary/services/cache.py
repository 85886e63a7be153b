"""
Redis Cache Service
===================

Redis caching layer with connection management, best-effort cache
operations, key builders and invalidation helpers.

A Redis outage degrades to cache misses; it never fails a request.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from karma_diary.config import settings

logger = logging.getLogger(__name__)

# Global Redis client instance
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """
    Initialize the Redis connection pool and verify it with a PING.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        await _redis_client.ping()
        logger.info("Redis connection established")

    return _redis_client


async def get_redis() -> Redis:
    """Get Redis client, initializing if necessary."""
    if _redis_client is None:
        return await init_redis()
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")


class CacheManager:
    """
    Redis cache manager with common operations.

    Key naming convention:
        cache:{module}:{resource}:{identifier}

    TTL Guidelines:
        - Principles: 1 day
        - Current plan: 5 minutes, capped at the subscription expiry
        - AI chat answers: 7 days
        - Web login sessions: 5 minutes
    """

    TTL_SHORT = 300  # 5 minutes
    TTL_DAY = 86400  # 24 hours
    TTL_WEEK = 604800  # 7 days

    @staticmethod
    async def get(key: str) -> Optional[Any]:
        """
        Get a JSON value from cache.

        Returns:
            Cached value if it exists, None on miss or Redis failure
        """
        try:
            client = await get_redis()
            value = await client.get(key)
            if value is None:
                return None
            return json.loads(value)
        except Exception as e:
            logger.warning("Cache get error for key %s: %s", key, e)
            return None

    @staticmethod
    async def set(key: str, value: Any, ttl: int = TTL_SHORT) -> bool:
        """
        Set a JSON-serialisable value with TTL.

        Returns:
            True if successful, False otherwise
        """
        try:
            client = await get_redis()
            await client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.warning("Cache set error for key %s: %s", key, e)
            return False

    @staticmethod
    async def delete(key: str) -> bool:
        """Delete a key. Returns True if something was deleted."""
        try:
            client = await get_redis()
            return await client.delete(key) > 0
        except Exception as e:
            logger.warning("Cache delete error for key %s: %s", key, e)
            return False



# =============================================================================
# Cache Key Builders
# =============================================================================

class CacheKeys:
    """Cache key builders for consistent naming."""

    @staticmethod
    def principles() -> str:
        return "cache:principles:all"

    @staticmethod
    def current_plan(user_id: str) -> str:
        return f"cache:subscription:plan:{user_id}"

    @staticmethod
    def ai_response(question_hash: str) -> str:
        return f"cache:ai:response:{question_hash}"

    @staticmethod
    def auth_session(session_id: str) -> str:
        return f"auth:telegram:session:{session_id}"

    @staticmethod
    def payment_processed(order_reference: str) -> str:
        return f"webhook:wayforpay:order:{order_reference}"


# =============================================================================
# Cache Invalidation Helpers
# =============================================================================

class CacheInvalidator:
    """Helpers for invalidating related cache entries."""

    @staticmethod
    async def on_subscription_change(user_id: str) -> None:
        await CacheManager.delete(CacheKeys.current_plan(user_id))
