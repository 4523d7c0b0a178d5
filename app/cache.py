"""
Redis caching utilities for tenant resolution and other hot lookups
"""
import json
import logging
import time
from typing import Any, Optional

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

RETRY_AFTER_FAILURE = 30  # seconds before trying Redis again


class Cache:
    """Redis cache wrapper with JSON serialization. Every failure degrades to a miss"""

    def __init__(self):
        self.redis_client = None
        self._failed_at = 0.0

    def _get_client(self):
        if self.redis_client is not None:
            return self.redis_client
        if time.time() - self._failed_at < RETRY_AFTER_FAILURE:
            return None
        try:
            self.redis_client = get_redis_client()
        except Exception as e:
            self._failed_at = time.time()
            logger.warning(f"⚠️ Redis cache unavailable: {e}")
            return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None
        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        client = self._get_client()
        if not client or not keys:
            return False
        try:
            client.delete(*keys)
            logger.debug(f"✅ Cache DELETE: {', '.join(keys)}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {keys}: {e}")
            return False


# Global cache instance
cache = Cache()


def tenant_host_key(host: str) -> str:
    return f"tenant_host:{host.lower()}"


def get_tenant_cached(host: str) -> Optional[dict]:
    return cache.get(tenant_host_key(host))


def set_tenant_cached(host: str, tenant: dict, ttl: int) -> bool:
    return cache.set(tenant_host_key(host), tenant, ttl)


def invalidate_tenant_cache(*hosts: Optional[str]) -> bool:
    """Drop cached resolution for every host a business is reachable on"""
    keys = [tenant_host_key(h) for h in hosts if h]
    return cache.delete(*keys)
