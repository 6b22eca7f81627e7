"""Cache client for the system map and recent-change lookups."""
import json
import structlog
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis

logger = structlog.get_logger()


class BaseCache(ABC):
    """Abstract JSON cache. Implementations never raise on backend errors."""

    @abstractmethod
    def get_json(self, key: str) -> Optional[Any]:
        """Get a cached value, or None on miss or error."""
        pass

    @abstractmethod
    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a value, optionally expiring after `ttl` seconds."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a cached value."""
        pass


class NullCache(BaseCache):
    """Cache that stores nothing, used when no Redis URL is configured."""

    def get_json(self, key: str) -> Optional[Any]:
        return None

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        return None

    def delete(self, key: str) -> None:
        return None


class RedisCache(BaseCache):
    """Redis-backed JSON cache. Connection and decoding errors count as misses."""

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        if client is None:
            client = redis.Redis.from_url(url, decode_responses=True)
        self._client = client

    def get_json(self, key: str) -> Optional[Any]:
        try:
            value = self._client.get(key)
            return json.loads(value) if value else None
        except (redis.RedisError, ValueError) as e:
            logger.error("Cache get failed", key=key, error=str(e))
            return None

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            serialized = json.dumps(value)
            if ttl:
                self._client.setex(key, ttl, serialized)
            else:
                self._client.set(key, serialized)
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.error("Cache set failed", key=key, error=str(e))

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            logger.error("Cache delete failed", key=key, error=str(e))


def create_cache(url: Optional[str]) -> BaseCache:
    """Return a RedisCache for `url`, or a NullCache when caching is disabled."""
    if not url:
        logger.warning("Redis cache disabled", reason="No REDIS_URL provided")
        return NullCache()
    return RedisCache(url=url)
