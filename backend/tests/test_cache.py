"""Tests for the cache clients."""

from unittest.mock import MagicMock

import redis

from tracepulse.services.cache import NullCache, RedisCache, create_cache


class TestRedisCache:
    """Tests for RedisCache with a mocked redis client."""

    def setup_method(self):
        self.client = MagicMock()
        self.cache = RedisCache(client=self.client)

    def test_get_json_decodes(self):
        """Stored JSON is decoded."""
        self.client.get.return_value = '{"services": {}}'
        assert self.cache.get_json("k") == {"services": {}}

    def test_get_json_miss(self):
        """A missing key is a miss."""
        self.client.get.return_value = None
        assert self.cache.get_json("k") is None

    def test_get_json_errors_are_misses(self):
        """Connection errors and corrupt values are treated as misses."""
        self.client.get.side_effect = redis.ConnectionError("down")
        assert self.cache.get_json("k") is None

        self.client.get.side_effect = None
        self.client.get.return_value = "{not json"
        assert self.cache.get_json("k") is None

    def test_set_json_with_ttl(self):
        """Values with a TTL use SETEX."""
        self.cache.set_json("k", {"a": 1}, ttl=300)
        self.client.setex.assert_called_once_with("k", 300, '{"a": 1}')

    def test_set_json_without_ttl(self):
        """Values without a TTL use SET."""
        self.cache.set_json("k", [1, 2])
        self.client.set.assert_called_once_with("k", "[1, 2]")

    def test_set_json_swallows_backend_errors(self):
        """Write failures are logged, not raised."""
        self.client.setex.side_effect = redis.TimeoutError("slow")
        self.cache.set_json("k", {"a": 1}, ttl=5)

    def test_delete(self):
        """Delete removes the key."""
        self.cache.delete("k")
        self.client.delete.assert_called_once_with("k")


class TestCreateCache:
    """Tests for create_cache."""

    def test_no_url_gives_null_cache(self):
        """Caching is disabled without a URL."""
        cache = create_cache("")
        assert isinstance(cache, NullCache)
        cache.set_json("k", 1, ttl=10)
        assert cache.get_json("k") is None

    def test_url_gives_redis_cache(self):
        """A URL builds a lazily connecting RedisCache."""
        assert isinstance(create_cache("redis://localhost:6379/0"), RedisCache)
