"""
Redis fixed-window rate limiting for public endpoints.
Fails open: when Redis is unreachable requests are allowed and a warning is logged.
"""

import logging
import time
from typing import Optional

import redis
from fastapi import Request

from .config import RATE_LIMIT_ENABLED, REDIS_URL
from .errors import AppError

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create Redis client (REDIS_URL, defaults to localhost)"""
    global redis_client

    if redis_client is None:
        url = REDIS_URL or "redis://localhost:6379/0"
        masked_url = f"{url.split(':')[0]}:****@{url.split('@')[1]}" if "@" in url else url
        logger.info(f"📡 Using Redis URL connection: {masked_url}")
        redis_client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    return redis_client


def check_rate_limit(key: str, limit: int, window_seconds: int, client: redis.Redis) -> tuple[bool, int, int]:
    """
    INCR the window counter (EXPIRE on first hit).

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    if ttl is None or ttl < 0:
        client.expire(key, window_seconds)
        ttl = window_seconds
    return count <= limit, count, ttl


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(request: Request, limit: int, window_seconds: int, key_prefix: str):
    if not RATE_LIMIT_ENABLED:
        return

    key = f"{key_prefix}:{client_ip(request)}"
    try:
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())
    except Exception as e:
        logger.warning(f"⚠️ Rate limiting unavailable, allowing request (fail-open): {e}")
        return

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        raise AppError(
            429,
            "Trop de requêtes, veuillez réessayer plus tard.",
            {"retry_after": ttl, "limit": limit, "window_seconds": window_seconds},
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_reset = int(time.time()) + ttl


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        limit_signup = create_rate_limiter(limit=5, window_seconds=900, key_prefix="signup")

        @router.post("/signup")
        async def signup(data: SignupRequest, _: None = Depends(limit_signup)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter
