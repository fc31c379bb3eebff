"""
Redis implementation of the key-value store.
"""

from typing import Optional

import redis
import structlog

from ..config.settings import IdentitySettings
from .base import KeyValueStore, KeyValueStoreError

logger = structlog.get_logger(__name__)


class RedisKeyValueStore(KeyValueStore):
    """Key-value store backed by redis-py. Every Redis error surfaces as KeyValueStoreError."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_settings(cls, settings: IdentitySettings) -> "RedisKeyValueStore":
        """Build a store from the configured Redis URL and socket timeouts."""
        client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,  # returns strings instead of bytes
            socket_connect_timeout=settings.redis_socket_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
        return cls(client)

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            raise KeyValueStoreError(f"GET {key} failed: {e}") from e

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            self.client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as e:
            raise KeyValueStoreError(f"SET {key} failed: {e}") from e

    def incr(self, key: str) -> int:
        try:
            return int(self.client.incr(key))
        except redis.RedisError as e:
            raise KeyValueStoreError(f"INCR {key} failed: {e}") from e

    def expire(self, key: str, ttl_seconds: int) -> None:
        try:
            self.client.expire(key, ttl_seconds)
        except redis.RedisError as e:
            raise KeyValueStoreError(f"EXPIRE {key} failed: {e}") from e

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self.client.delete(*keys))
        except redis.RedisError as e:
            raise KeyValueStoreError(f"DEL {' '.join(keys)} failed: {e}") from e

    def ttl(self, key: str) -> Optional[int]:
        try:
            remaining = int(self.client.ttl(key))
        except redis.RedisError as e:
            raise KeyValueStoreError(f"TTL {key} failed: {e}") from e
        # -2: key missing, -1: key without expiry
        if remaining < 0:
            return None
        return remaining

    def is_available(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning("Redis ping failed", error=str(e))
            return False
