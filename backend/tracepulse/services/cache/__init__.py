"""JSON cache backends."""

from tracepulse.services.cache.client import BaseCache, NullCache, RedisCache, create_cache

__all__ = ["BaseCache", "NullCache", "RedisCache", "create_cache"]
