"""
Tests for the account lockout state machine.
"""

from caregiver_identity.services.lockout_service import (
    FAILED_ATTEMPTS_PREFIX,
    LOCKOUT_PREFIX,
)


class TestFailedAttempts:
    """Counting failed attempts up to the lock threshold."""

    def test_attempts_below_threshold_do_not_lock(self, lockout):
        """Attempts 1..N-1 accumulate without locking."""
        first = lockout.record_failed_attempt("ana@example.com")
        second = lockout.record_failed_attempt("ana@example.com")

        assert (first.attempt_count, first.remaining_attempts) == (1, 2)
        assert (second.attempt_count, second.remaining_attempts) == (2, 1)
        assert not second.is_locked
        assert not lockout.is_locked("ana@example.com").locked

    def test_threshold_locks_and_clears_counter(self, lockout, store):
        """The Nth attempt sets the lock marker and drops the counter."""
        for _ in range(2):
            lockout.record_failed_attempt("ana@example.com")

        result = lockout.record_failed_attempt("ana@example.com")

        assert result.is_locked
        assert result.remaining_attempts == 0
        assert result.lock_duration_seconds == 900
        assert store.keys() == {f"{LOCKOUT_PREFIX}ana@example.com"}

        status = lockout.is_locked("ana@example.com")
        assert status.locked
        assert status.remaining_seconds == 900

    def test_identity_is_normalized(self, lockout):
        """Case and surrounding whitespace map to the same counter."""
        lockout.record_failed_attempt("Ana@Example.com")
        lockout.record_failed_attempt(" ana@example.com ")

        assert lockout.get_failed_attempt_count("ANA@EXAMPLE.COM") == 2

    def test_counter_window_expires(self, lockout, store):
        """Attempts older than the window are forgotten."""
        lockout.record_failed_attempt("ana@example.com")
        lockout.record_failed_attempt("ana@example.com")

        store.advance(901)

        result = lockout.record_failed_attempt("ana@example.com")
        assert result.attempt_count == 1
        assert not result.is_locked


class TestUnlock:
    """Ways out of the locked state."""

    def _lock(self, lockout):
        for _ in range(3):
            lockout.record_failed_attempt("ana@example.com")

    def test_lock_expires_with_ttl(self, lockout, store):
        """TTL expiry returns the identity to clear."""
        self._lock(lockout)
        store.advance(899)
        assert lockout.is_locked("ana@example.com").remaining_seconds == 1

        store.advance(1)
        assert not lockout.is_locked("ana@example.com").locked
        assert lockout.get_failed_attempt_count("ana@example.com") == 0

    def test_manual_unlock_removes_marker_and_counter(self, lockout, store):
        """Admin unlock clears all lockout state."""
        self._lock(lockout)
        lockout.record_failed_attempt("ana@example.com")

        lockout.manual_unlock("ana@example.com")

        assert not lockout.is_locked("ana@example.com").locked
        assert store.keys() == set()

    def test_reset_on_success_only_clears_counter(self, lockout, store):
        """A successful login resets the counter but never lifts a lock."""
        lockout.record_failed_attempt("ana@example.com")
        lockout.reset_on_success("ana@example.com")

        assert lockout.get_failed_attempt_count("ana@example.com") == 0
        assert f"{FAILED_ATTEMPTS_PREFIX}ana@example.com" not in store.keys()

        self._lock(lockout)
        lockout.reset_on_success("ana@example.com")
        assert lockout.is_locked("ana@example.com").locked


class TestDegradedMode:
    """Store failures fail open."""

    def test_unavailable_store_reports_unlocked(self, lockout, store):
        for _ in range(3):
            lockout.record_failed_attempt("ana@example.com")

        store.available = False

        assert not lockout.is_locked("ana@example.com").locked

    def test_unavailable_store_does_not_count(self, lockout, store):
        store.available = False

        result = lockout.record_failed_attempt("ana@example.com")

        assert not result.is_locked
        assert result.attempt_count == 0
        assert result.remaining_attempts == 3
        assert lockout.get_failed_attempt_count("ana@example.com") == 0

    def test_reset_and_unlock_do_not_raise(self, lockout, store):
        store.available = False

        lockout.reset_on_success("ana@example.com")
        lockout.manual_unlock("ana@example.com")

    def test_get_config(self, lockout):
        assert lockout.get_config() == {
            "max_failed_attempts": 3,
            "lockout_duration_seconds": 900,
            "attempt_window_seconds": 900,
        }
