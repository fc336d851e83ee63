"""
Redirect cache strategies using Strategy Pattern.

The redirect handler caches what it needs to answer a short code
(destination plus gone/archive info) under "url:{short_code}". Writers
that change that answer (URL deletion, the status checker) delete the key.

A cache is best effort: backend errors are logged and reported as a miss.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def redirect_cache_key(short_code: str) -> str:
    return f"url:{short_code}"


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations involve I/O (network for Redis).
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None on miss"""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """Store value for ttl seconds"""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Drop key; True if something was removed"""


class RedisCache(CacheStrategy):
    """
    Redis-backed cache, shared by every server process.

    Needed once more than one instance serves redirects: the instance
    running the status checker invalidates entries the others read.
    """

    def __init__(self, redis_client):
        """
        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            return value.decode('utf-8') if value else None
        except Exception as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.warning("Redis delete error for %s: %s", key, e)
            return False


class InMemoryCache(CacheStrategy):
    """
    Per-process dict cache with TTL.

    Fine for a single instance; with several instances each one keeps its
    own copy and only the checker's own process sees invalidations.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._cache[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Every lookup goes to the database, so status changes are visible
    on the very next redirect.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return False
