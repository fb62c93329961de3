"""
config/redis_client.py
Async Redis client for the session deny-list and request rate limiting.
"""

from typing import Optional

import redis.asyncio as aioredis

from config.settings import settings


# ── Global client (initialized on startup) ───────────────────
redis_client: Optional[aioredis.Redis] = None


async def init_redis() -> None:
    """Initialize the Redis connection pool."""
    global redis_client
    redis_client = aioredis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    # Test connection
    await redis_client.ping()


async def close_redis() -> None:
    """Close Redis connection pool."""
    global redis_client
    if redis_client:
        await redis_client.aclose()


def get_redis() -> aioredis.Redis:
    """FastAPI dependency to get Redis client."""
    if not redis_client:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return redis_client


class RedisCache:
    """Helper class for the Redis patterns the API relies on."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    # ── Session Deny List ─────────────────────────────────────
    async def revoke_session(self, jti: str, ttl_seconds: int) -> None:
        """Add a session token's JTI to the deny list until it expires."""
        if ttl_seconds > 0:
            await self.client.setex(f"session_revoked:{jti}", ttl_seconds, "1")

    async def is_session_revoked(self, jti: str) -> bool:
        return await self.client.exists(f"session_revoked:{jti}") == 1

    # ── Rate Limiting ─────────────────────────────────────────
    async def check_rate_limit(self, key: str, limit: int, window_seconds: int = 60) -> bool:
        """
        Fixed window rate limiter.
        Returns True if request is allowed, False if rate limited.
        """
        count = await self.client.incr(key)
        if count == 1:
            await self.client.expire(key, window_seconds)
        return count <= limit
