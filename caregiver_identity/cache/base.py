"""
Key-value store abstract interface - separates lockout logic from the store implementation
"""
from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStoreError(Exception):
    """Raised when the key-value store cannot serve a request."""

    pass


class KeyValueStore(ABC):
    """Key-value store with per-key TTL, used for ephemeral counters and markers."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get a value, or None if the key does not exist"""
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Set a value, optionally expiring after ttl_seconds"""
        pass

    @abstractmethod
    def incr(self, key: str) -> int:
        """Atomically increment a counter and return the new value"""
        pass

    @abstractmethod
    def expire(self, key: str, ttl_seconds: int) -> None:
        """Set a key's time to live"""
        pass

    @abstractmethod
    def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed"""
        pass

    @abstractmethod
    def ttl(self, key: str) -> Optional[int]:
        """Remaining seconds to live, or None if the key is missing or has no expiry"""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the store is reachable"""
        pass
