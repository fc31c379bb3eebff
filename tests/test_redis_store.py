"""
Tests for the Redis-backed key-value store.
"""

import pytest
import redis

from caregiver_identity.cache import KeyValueStoreError, RedisKeyValueStore
from caregiver_identity.config.settings import IdentitySettings


class StubRedis:
    """Stands in for redis.Redis; either fails every call or returns canned values."""

    def __init__(self, failing: bool = False, ttl_value: int = -2):
        self.failing = failing
        self.ttl_value = ttl_value
        self.calls = []

    def _call(self, name, *args, result=None, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.failing:
            raise redis.ConnectionError("connection refused")
        return result

    def get(self, key):
        return self._call("get", key, result="1")

    def set(self, key, value, ex=None):
        return self._call("set", key, value, ex=ex, result=True)

    def incr(self, key):
        return self._call("incr", key, result=3)

    def expire(self, key, seconds):
        return self._call("expire", key, seconds, result=True)

    def delete(self, *keys):
        return self._call("delete", *keys, result=len(keys))

    def ttl(self, key):
        return self._call("ttl", key, result=self.ttl_value)

    def ping(self):
        return self._call("ping", result=True)


class TestRedisKeyValueStore:
    """Command mapping, TTL sentinels and error translation."""

    def test_commands_pass_through(self):
        client = StubRedis()
        store = RedisKeyValueStore(client)

        store.set("auth:lockout:ana@example.com", "1", ttl_seconds=900)

        assert store.get("auth:lockout:ana@example.com") == "1"
        assert store.incr("auth:failed_attempts:ana@example.com") == 3
        assert store.delete("a", "b") == 2
        assert client.calls[0] == ("set", ("auth:lockout:ana@example.com", "1"), {"ex": 900})

    def test_delete_without_keys_skips_redis(self):
        client = StubRedis()

        assert RedisKeyValueStore(client).delete() == 0
        assert client.calls == []

    @pytest.mark.parametrize("sentinel", [-1, -2])
    def test_ttl_sentinels_map_to_none(self, sentinel):
        store = RedisKeyValueStore(StubRedis(ttl_value=sentinel))

        assert store.ttl("auth:lockout:ana@example.com") is None

    def test_ttl_returns_remaining_seconds(self):
        store = RedisKeyValueStore(StubRedis(ttl_value=42))

        assert store.ttl("auth:lockout:ana@example.com") == 42

    @pytest.mark.parametrize(
        "operation",
        [
            lambda s: s.get("k"),
            lambda s: s.set("k", "v", ttl_seconds=10),
            lambda s: s.incr("k"),
            lambda s: s.expire("k", 10),
            lambda s: s.delete("k"),
            lambda s: s.ttl("k"),
        ],
        ids=["get", "set", "incr", "expire", "delete", "ttl"],
    )
    def test_redis_errors_become_store_errors(self, operation):
        store = RedisKeyValueStore(StubRedis(failing=True))

        with pytest.raises(KeyValueStoreError) as exc_info:
            operation(store)

        assert isinstance(exc_info.value.__cause__, redis.ConnectionError)

    def test_is_available(self):
        assert RedisKeyValueStore(StubRedis()).is_available()
        assert not RedisKeyValueStore(StubRedis(failing=True)).is_available()

    def test_from_settings_uses_url_and_timeouts(self):
        settings = IdentitySettings(
            _env_file=None,
            redis_url="redis://cache.internal:6380/2",
            redis_socket_timeout=0.5,
        )

        store = RedisKeyValueStore.from_settings(settings)

        kwargs = store.client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs["socket_timeout"] == 0.5
        assert kwargs["socket_connect_timeout"] == 0.5
        assert kwargs["decode_responses"] is True
