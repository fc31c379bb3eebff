"""
Account lockout service.

Tracks failed login attempts per normalized identity in the key-value store
and locks the identity once a threshold is reached within the attempt
window. Locks are released by TTL expiry or an explicit unlock.

Every operation fails open: if the store errors, the identity is treated as
unlocked and the attempt is not counted. Each such event is logged on the
``security`` logger with ``degraded=True``.

Dependencies:
- redis (through KeyValueStore): counters and lock markers with TTL
- structlog: Structured logging
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

from ..cache import KeyValueStore, KeyValueStoreError
from ..config.settings import IdentitySettings
from ..utils import normalize_email, utcnow

logger = structlog.get_logger(__name__)
security_logger = structlog.get_logger("security")

FAILED_ATTEMPTS_PREFIX = "auth:failed_attempts:"
LOCKOUT_PREFIX = "auth:lockout:"


@dataclass(frozen=True)
class LockoutStatus:
    """Lock state of an identity."""

    locked: bool
    remaining_seconds: Optional[int] = None


@dataclass(frozen=True)
class FailedAttemptResult:
    """Outcome of recording a failed attempt."""

    is_locked: bool
    attempt_count: int
    remaining_attempts: int
    lock_duration_seconds: Optional[int] = None


class AccountLockoutService:
    """
    Failed-attempt counter and lock marker per identity.

    States: clear, accumulating (1..N-1 attempts), locked.
    """

    def __init__(self, store: KeyValueStore, settings: IdentitySettings):
        """
        Initialize lockout service.

        Args:
            store: Key-value store holding counters and markers
            settings: Lockout threshold, window and duration
        """
        self.store = store
        self.max_failed_attempts = settings.lockout_max_failed_attempts
        self.lockout_duration_seconds = settings.lockout_duration_seconds
        self.attempt_window_seconds = settings.lockout_attempt_window_seconds

    # Public API

    def is_locked(self, identity: str) -> LockoutStatus:
        """
        Check if an identity is currently locked.

        Args:
            identity: Email or other login identity

        Returns:
            LockoutStatus: Lock flag and seconds until the lock expires
        """
        lockout_key = self._lockout_key(identity)
        try:
            if self.store.get(lockout_key) is None:
                return LockoutStatus(locked=False)
            return LockoutStatus(locked=True, remaining_seconds=self.store.ttl(lockout_key))
        except KeyValueStoreError as e:
            self._log_degraded("is_locked", identity, e)
            return LockoutStatus(locked=False)

    def record_failed_attempt(self, identity: str) -> FailedAttemptResult:
        """
        Record a failed login attempt and lock the identity at the threshold.

        Args:
            identity: Email or other login identity

        Returns:
            FailedAttemptResult: Attempt count and whether the identity is now locked
        """
        attempts_key = self._attempts_key(identity)
        try:
            attempt_count = self.store.incr(attempts_key)

            # Start the counting window on the first attempt
            if attempt_count == 1:
                self.store.expire(attempts_key, self.attempt_window_seconds)

            if attempt_count >= self.max_failed_attempts:
                self._lock(identity)
                security_logger.warning(
                    "Account locked after repeated failed logins",
                    identity=normalize_email(identity),
                    attempt_count=attempt_count,
                    lock_duration_seconds=self.lockout_duration_seconds,
                )
                return FailedAttemptResult(
                    is_locked=True,
                    attempt_count=attempt_count,
                    remaining_attempts=0,
                    lock_duration_seconds=self.lockout_duration_seconds,
                )

        except KeyValueStoreError as e:
            self._log_degraded("record_failed_attempt", identity, e)
            return FailedAttemptResult(
                is_locked=False,
                attempt_count=0,
                remaining_attempts=self.max_failed_attempts,
            )

        return FailedAttemptResult(
            is_locked=False,
            attempt_count=attempt_count,
            remaining_attempts=max(0, self.max_failed_attempts - attempt_count),
        )

    def reset_on_success(self, identity: str) -> None:
        """Clear the failed-attempt counter after a successful login."""
        try:
            self.store.delete(self._attempts_key(identity))
        except KeyValueStoreError as e:
            self._log_degraded("reset_on_success", identity, e)

    def manual_unlock(self, identity: str) -> None:
        """Remove both the lock marker and the counter (admin helper)."""
        try:
            self.store.delete(self._lockout_key(identity), self._attempts_key(identity))
        except KeyValueStoreError as e:
            self._log_degraded("manual_unlock", identity, e)
            return

        security_logger.info("Account unlocked", identity=normalize_email(identity))

    def get_failed_attempt_count(self, identity: str) -> int:
        """Get the current failed-attempt count for an identity."""
        try:
            count = self.store.get(self._attempts_key(identity))
        except KeyValueStoreError as e:
            self._log_degraded("get_failed_attempt_count", identity, e)
            return 0
        return int(count) if count else 0

    def get_config(self) -> Dict[str, Any]:
        """Get lockout configuration."""
        return {
            "max_failed_attempts": self.max_failed_attempts,
            "lockout_duration_seconds": self.lockout_duration_seconds,
            "attempt_window_seconds": self.attempt_window_seconds,
        }

    # Private helper methods

    def _lock(self, identity: str) -> None:
        self.store.set(
            self._lockout_key(identity),
            utcnow().isoformat(),
            ttl_seconds=self.lockout_duration_seconds,
        )
        # The counter restarts from zero once the lock expires
        self.store.delete(self._attempts_key(identity))

    def _attempts_key(self, identity: str) -> str:
        return f"{FAILED_ATTEMPTS_PREFIX}{normalize_email(identity)}"

    def _lockout_key(self, identity: str) -> str:
        return f"{LOCKOUT_PREFIX}{normalize_email(identity)}"

    def _log_degraded(self, operation: str, identity: str, error: Exception) -> None:
        security_logger.warning(
            "Lockout store unavailable, lockout not enforced",
            operation=operation,
            identity=normalize_email(identity),
            degraded=True,
            error=str(error),
        )
