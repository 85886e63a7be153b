"""
Rate Limiting
=============

Redis-based fixed-window rate limiting for API endpoints.
"""

import logging
from typing import Optional

from fastapi import Request

from karma_diary.core.errors import RateLimitError
from karma_diary.core.security import decode_token
from karma_diary.services.cache import get_redis

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed window rate limiter using Redis.

    Rate limits are applied per user (if authenticated) or per IP.

    Default limits:
        - AI endpoints: 20 requests / 15 minutes
        - Authentication endpoints: 10 requests / minute
        - Read endpoints: 100 requests / minute
    """

    LIMITS = {
        "ai": {"max_requests": 20, "window_seconds": 900},
        "auth": {"max_requests": 10, "window_seconds": 60},
        "read": {"max_requests": 100, "window_seconds": 60},
    }

    @staticmethod
    def _get_key(identifier: str, action: str) -> str:
        return f"ratelimit:{action}:{identifier}"

    @staticmethod
    async def check_rate_limit(
        identifier: str,
        action: str,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ) -> dict:
        """
        Check if request is within rate limit.

        Returns:
            Dict with 'allowed', 'remaining', 'reset_in' keys
        """
        limits = RateLimiter.LIMITS.get(action, RateLimiter.LIMITS["read"])
        max_req = max_requests or limits["max_requests"]
        window = window_seconds or limits["window_seconds"]

        key = RateLimiter._get_key(identifier, action)

        try:
            client = await get_redis()

            count = await client.incr(key)
            if count == 1:
                await client.expire(key, window)
                ttl = window
            else:
                ttl = await client.ttl(key)
                if ttl < 0:
                    await client.expire(key, window)
                    ttl = window

            if count > max_req:
                return {"allowed": False, "remaining": 0, "reset_in": ttl}

            return {
                "allowed": True,
                "remaining": max_req - count,
                "reset_in": ttl,
            }

        except Exception as e:
            # Fail open
            logger.warning("Rate limit check error for %s: %s", key, e)
            return {
                "allowed": True,
                "remaining": max_req,
                "reset_in": window,
            }


def _identify(request: Request) -> str:
    """User id from a valid bearer token, otherwise the client IP."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        payload = decode_token(auth_header[7:])
        if payload and payload.get("sub"):
            return f"user:{payload['sub']}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def create_rate_limit_dependency(action: str = "read"):
    """
    Factory for rate limit dependencies.

    Usage:
        @router.post("/chat", dependencies=[Depends(create_rate_limit_dependency("ai"))])
    """
    async def dependency(request: Request) -> None:
        result = await RateLimiter.check_rate_limit(_identify(request), action)
        if not result["allowed"]:
            raise RateLimitError(
                message=f"Rate limit exceeded. Try again in {result['reset_in']} seconds.",
                reset_in=result["reset_in"],
            )

    return dependency
