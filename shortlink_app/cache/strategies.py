"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

Only the resolve path reads the cache. Short link records never change,
so entries never need invalidation; the TTL only bounds memory use.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    Methods are async because cache operations may involve network I/O.
    A cache failure must never fail a request: implementations log and
    report a miss instead of raising.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Returns:
            True if successful, False otherwise
        """
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None


class RedisCache(CacheStrategy):
    """
    Redis cache, shared by every worker process pointing at the same server.
    """

    def __init__(self, redis_client):
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            return value.decode("utf-8") if value else None
        except RedisError:
            logger.warning("Redis get failed for %s", key, exc_info=True)
            return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except RedisError:
            logger.warning("Redis set failed for %s", key, exc_info=True)
            return False

    async def close(self) -> None:
        self.redis.close()


class InMemoryCache(CacheStrategy):
    """
    Per-process dict cache with a size bound.

    Good for development and single-process deployments. TTL is ignored;
    when full, the oldest inserted entry is dropped.
    """

    def __init__(self, max_entries: int = 10000):
        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.max_entries = max_entries

    async def get(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        with self._lock:
            if key not in self._cache and len(self._cache) >= self.max_entries:
                # dicts keep insertion order
                self._cache.pop(next(iter(self._cache)))
            self._cache[key] = value
        return True

    def __len__(self):
        return len(self._cache)


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.
    Every lookup is a miss, every write is accepted.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True
