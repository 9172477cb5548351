"""
Factory for creating cache instances.
"""

import logging
from enum import Enum

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Builds a cache from settings.

    Returns a new instance on every call: the application owns it for its
    lifetime and closes it at shutdown.
    """

    @classmethod
    def create(cls, settings) -> CacheStrategy:
        """
        Create the cache described by ``settings.cache_backend``.

        An unreachable Redis falls back to the in-memory cache.

        Raises:
            ValueError: If the backend name is unknown
        """
        backend = CacheBackend(settings.cache_backend)

        if backend == CacheBackend.REDIS:
            import redis

            try:
                redis_client = redis.from_url(
                    settings.redis_url,
                    decode_responses=False,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                # Test connection immediately
                redis_client.ping()
            except redis.RedisError as exc:
                logger.warning("Redis connection failed (%s), falling back to in-memory cache", exc)
                return InMemoryCache()

            logger.info("Redis cache initialized")
            return RedisCache(redis_client)

        if backend == CacheBackend.MEMORY:
            logger.info("In-memory cache initialized")
            return InMemoryCache()

        logger.info("Cache disabled")
        return NullCache()
