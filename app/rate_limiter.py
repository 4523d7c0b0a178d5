"""
Redis connection and hybrid in-memory + Redis rate limiting.
Counters live in process memory and are mirrored to Redis periodically so
several API workers converge on the same window.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from .config import RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

REDIS_SYNC_INTERVAL = 10  # seconds between Redis writes per key
CLEANUP_INTERVAL = 60


def _mask_url(url: str) -> str:
    if "@" not in url:
        return "****"
    scheme = url.split(":", 1)[0]
    return f"{scheme}:****@{url.split('@', 1)[1]}"


def get_redis_client() -> redis.Redis:
    """Get or create the shared Redis client (REDIS_URL, or REDIS_HOST/REDIS_PORT)"""
    global redis_client

    if redis_client is not None:
        return redis_client

    common = {
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 10,
        "retry_on_timeout": True,
        "health_check_interval": 30,
    }
    if REDIS_URL:
        logger.info(f"📡 Connecting to Redis: {_mask_url(REDIS_URL)}")
        client = redis.from_url(REDIS_URL, **common)
    else:
        host = os.getenv("REDIS_HOST", "localhost")
        port = int(os.getenv("REDIS_PORT", "6379"))
        logger.info(f"📡 Connecting to Redis at {host}:{port}")
        client = redis.Redis(
            host=host,
            port=port,
            password=os.getenv("REDIS_PASSWORD"),
            db=int(os.getenv("REDIS_DB", "0")),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
            **common,
        )

    try:
        client.ping()
    except Exception as e:
        logger.error(f"❌ Failed to connect to Redis: {e}")
        raise

    logger.info("✅ Redis connected")
    redis_client = client
    return redis_client


class HybridWindowCounter:
    """Fixed-window counters kept in memory and synced to Redis every few seconds"""

    def __init__(self):
        self._entries: dict[str, dict] = {}
        self._lock = Lock()
        self._last_cleanup = 0

    def _cleanup(self, now: int):
        if now - self._last_cleanup < CLEANUP_INTERVAL:
            return
        expired = [k for k, v in self._entries.items() if now >= v["reset_time"]]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"🧹 Cleaned up {len(expired)} expired rate limit entries")
        self._last_cleanup = now

    def _load(self, key: str, window_seconds: int, now: int, client) -> dict:
        count, ttl = 0, -1
        if client is not None:
            try:
                stored = client.get(key)
                ttl = client.ttl(key)
                if stored and ttl > 0:
                    count = int(stored)
            except Exception as e:
                logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
        reset_time = now + ttl if count else now + window_seconds
        return {"count": count, "reset_time": reset_time, "last_sync": now}

    def hit(self, key: str, limit: int, window_seconds: int, client=None) -> tuple[bool, int, int]:
        """Count one request. Returns (allowed, count, seconds_until_reset)"""
        now = int(time.time())
        with self._lock:
            self._cleanup(now)
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = self._load(key, window_seconds, now, client)

            if now >= entry["reset_time"]:
                entry.update(count=0, reset_time=now + window_seconds, last_sync=0)

            allowed = entry["count"] < limit
            if allowed:
                entry["count"] += 1

            if client is not None and now - entry["last_sync"] >= REDIS_SYNC_INTERVAL:
                try:
                    client.set(key, entry["count"], ex=max(1, entry["reset_time"] - now))
                    entry["last_sync"] = now
                except Exception as e:
                    logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

            return allowed, entry["count"], max(0, entry["reset_time"] - now)


counter = HybridWindowCounter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request, limit: int, window_seconds: int, key_prefix: str, use_ip: bool = True
):
    if not RATE_LIMIT_ENABLED:
        return

    try:
        client = get_redis_client()
    except Exception as e:
        logger.error(f"❌ Rate limiting unavailable: {e}")
        # Fail closed - deny request if rate limiting cannot run
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e

    key = f"{key_prefix}:{client_ip(request) if use_ip else 'global'}"
    allowed, count, ttl = counter.hit(key, limit, window_seconds, client)
    if not allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {count}/{limit}")
        raise HTTPException(
            status_code=429,
            detail={
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after": ttl,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - count


def create_rate_limiter(
    limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        recharge_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="wallet_recharge")

        @router.post("/wallet/recharge")
        async def recharge(_: None = Depends(recharge_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_ip)

    return rate_limiter
