"""
Key-value storage for ephemeral security state.
"""

from .base import KeyValueStore, KeyValueStoreError
from .redis_store import RedisKeyValueStore

__all__ = ["KeyValueStore", "KeyValueStoreError", "RedisKeyValueStore"]
