"""
Tests for registration, login, token refresh and profile management.
"""

from datetime import timezone

import pytest

from caregiver_identity.config.settings import IdentitySettings
from caregiver_identity.database import credential_repository as repo
from caregiver_identity.services import (
    ConflictError,
    CredentialService,
    NotFoundError,
    PasswordPolicyError,
    TooManyAttemptsError,
    UnauthorizedError,
)
from caregiver_identity.utils import to_aware_utc, utcnow

from .conftest import TEST_PASSWORD


class TestRegistration:
    """Account creation."""

    def test_register_normalizes_email_and_hashes_password(self, credential_service, db):
        result = credential_service.register("  Ana@Example.COM ", TEST_PASSWORD, "Ana")

        assert result.caregiver.email == "ana@example.com"
        assert result.caregiver.password_hash != TEST_PASSWORD
        assert result.caregiver.password_hash.startswith("$2b$")
        assert result.tokens.expires_in == 900
        assert repo.get_caregiver_by_email(db, "ana@example.com") is not None

    def test_register_persists_timezone_aware_timestamps(
        self, credential_service, session_factory
    ):
        before = utcnow()
        result = credential_service.register("ana@example.com", TEST_PASSWORD, "Ana")

        assert before.tzinfo == timezone.utc
        with session_factory() as fresh:
            stored = repo.get_caregiver_by_id(fresh, result.caregiver.id)
            assert before <= to_aware_utc(stored.created_at) <= utcnow()

    def test_duplicate_email_differing_in_case_conflicts(self, credential_service):
        credential_service.register("ana@example.com", TEST_PASSWORD, "Ana")

        with pytest.raises(ConflictError):
            credential_service.register("ANA@example.com", TEST_PASSWORD, "Ana again")

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere", "A1" + "a" * 127],
    )
    def test_password_policy(self, credential_service, password):
        with pytest.raises(PasswordPolicyError):
            credential_service.register("ana@example.com", password, "Ana")

    def test_placeholder_signing_keys_are_rejected(self, db, lockout, signer):
        settings = IdentitySettings(
            _env_file=None,
            jwt_secret_key="CHANGE_ME_IN_PRODUCTION",
            jwt_refresh_secret_key="another-key",
        )
        with pytest.raises(ValueError):
            CredentialService(db=db, lockout=lockout, signer=signer, settings=settings)

    def test_identical_signing_keys_are_rejected(self, db, lockout, signer):
        settings = IdentitySettings(
            _env_file=None, jwt_secret_key="same-key", jwt_refresh_secret_key="same-key"
        )
        with pytest.raises(ValueError):
            CredentialService(db=db, lockout=lockout, signer=signer, settings=settings)


class TestLogin:
    """Login with lockout protection."""

    def test_login_succeeds(self, credential_service, make_caregiver):
        caregiver = make_caregiver("ana@example.com")

        result = credential_service.login("ANA@example.com", TEST_PASSWORD)

        assert result.caregiver.id == caregiver.id
        assert result.tokens.access_token != result.tokens.refresh_token

    def test_wrong_password_reports_remaining_attempts(self, credential_service, make_caregiver):
        make_caregiver("ana@example.com")

        with pytest.raises(UnauthorizedError) as exc_info:
            credential_service.login("ana@example.com", "Wr0ngPassword")

        assert "2 attempt(s) remaining" in exc_info.value.message
        assert exc_info.value.details["remaining_attempts"] == 2

    def test_oversized_password_counts_as_failed_attempt(
        self, credential_service, make_caregiver, lockout
    ):
        make_caregiver("ana@example.com")

        with pytest.raises(UnauthorizedError) as exc_info:
            credential_service.login("ana@example.com", "x" * 5000)

        assert exc_info.value.details["remaining_attempts"] == 2
        assert lockout.get_failed_attempt_count("ana@example.com") == 1

    def test_unknown_account_fails_like_wrong_password(self, credential_service, lockout):
        with pytest.raises(UnauthorizedError) as exc_info:
            credential_service.login("nobody@example.com", TEST_PASSWORD)

        assert "2 attempt(s) remaining" in exc_info.value.message
        assert lockout.get_failed_attempt_count("nobody@example.com") == 1

    def test_lockout_after_threshold_blocks_correct_password(
        self, credential_service, make_caregiver, lockout
    ):
        """N-1 failures leave the account open; the Nth locks it."""
        make_caregiver("ana@example.com")

        for _ in range(2):
            with pytest.raises(UnauthorizedError):
                credential_service.login("ana@example.com", "Wr0ngPassword")
        assert not lockout.is_locked("ana@example.com").locked

        with pytest.raises(TooManyAttemptsError) as exc_info:
            credential_service.login("ana@example.com", "Wr0ngPassword")
        assert exc_info.value.remaining_seconds == 900

        with pytest.raises(TooManyAttemptsError) as exc_info:
            credential_service.login("ana@example.com", TEST_PASSWORD)
        assert exc_info.value.remaining_seconds == 900
        assert "15 minute(s)" in exc_info.value.message

    def test_login_works_again_after_lock_expires(
        self, credential_service, make_caregiver, store
    ):
        make_caregiver("ana@example.com")
        for _ in range(2):
            with pytest.raises(UnauthorizedError):
                credential_service.login("ana@example.com", "Wr0ngPassword")
        with pytest.raises(TooManyAttemptsError):
            credential_service.login("ana@example.com", "Wr0ngPassword")

        store.advance(900)

        assert credential_service.login("ana@example.com", TEST_PASSWORD).caregiver

    def test_success_resets_counter(self, credential_service, make_caregiver, lockout):
        """The failure after a successful login counts as attempt #1."""
        make_caregiver("ana@example.com")
        for _ in range(2):
            with pytest.raises(UnauthorizedError):
                credential_service.login("ana@example.com", "Wr0ngPassword")

        credential_service.login("ana@example.com", TEST_PASSWORD)
        assert lockout.get_failed_attempt_count("ana@example.com") == 0

        with pytest.raises(UnauthorizedError) as exc_info:
            credential_service.login("ana@example.com", "Wr0ngPassword")
        assert exc_info.value.details["remaining_attempts"] == 2

    def test_login_fails_open_when_store_is_down(
        self, credential_service, make_caregiver, store
    ):
        make_caregiver("ana@example.com")
        store.available = False

        for _ in range(5):
            with pytest.raises(UnauthorizedError):
                credential_service.login("ana@example.com", "Wr0ngPassword")

        assert credential_service.login("ana@example.com", TEST_PASSWORD).caregiver


class TestTokens:
    """Token refresh and access token authentication."""

    def test_refresh_issues_new_pair(self, credential_service, make_caregiver):
        caregiver = make_caregiver("ana@example.com")
        tokens = credential_service.login("ana@example.com", TEST_PASSWORD).tokens

        refreshed = credential_service.refresh(tokens.refresh_token)

        assert credential_service.authenticate_access_token(refreshed.access_token).id == caregiver.id

    def test_access_token_cannot_refresh(self, credential_service, make_caregiver):
        make_caregiver("ana@example.com")
        tokens = credential_service.login("ana@example.com", TEST_PASSWORD).tokens

        with pytest.raises(UnauthorizedError):
            credential_service.refresh(tokens.access_token)

    def test_refresh_token_cannot_authenticate(self, credential_service, make_caregiver):
        make_caregiver("ana@example.com")
        tokens = credential_service.login("ana@example.com", TEST_PASSWORD).tokens

        with pytest.raises(UnauthorizedError):
            credential_service.authenticate_access_token(tokens.refresh_token)

    def test_expired_access_token(self, credential_service, make_caregiver, signer, settings):
        caregiver = make_caregiver("ana@example.com")
        token = signer.sign({"sub": str(caregiver.id)}, settings.jwt_secret_key, -10)

        with pytest.raises(UnauthorizedError) as exc_info:
            credential_service.authenticate_access_token(token)

        assert exc_info.value.message == "Access token has expired"

    def test_token_for_missing_caregiver(self, credential_service, signer, settings):
        token = signer.sign(
            {"sub": "2c6f5f0e-8f53-4d4b-9a53-4f1a6c1f6b11"},
            settings.jwt_refresh_secret_key,
            60,
        )

        with pytest.raises(UnauthorizedError):
            credential_service.refresh(token)


class TestProfile:
    """Profile read/update and password change."""

    def test_update_profile_name(self, credential_service, make_caregiver):
        caregiver = make_caregiver("ana@example.com", name="Ana")

        updated = credential_service.update_profile(caregiver.id, name="Ana Maria")

        assert updated.name == "Ana Maria"
        assert credential_service.get_profile(caregiver.id).name == "Ana Maria"

    def test_unknown_profile(self, credential_service):
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            credential_service.get_profile(uuid4())

    def test_change_password(self, credential_service, make_caregiver):
        caregiver = make_caregiver("ana@example.com")

        credential_service.change_password(caregiver.id, TEST_PASSWORD, "N3wPassword")

        assert credential_service.login("ana@example.com", "N3wPassword").caregiver
        with pytest.raises(UnauthorizedError):
            credential_service.login("ana@example.com", TEST_PASSWORD)

    def test_change_password_requires_current(self, credential_service, make_caregiver):
        caregiver = make_caregiver("ana@example.com")

        with pytest.raises(UnauthorizedError):
            credential_service.change_password(caregiver.id, "Wr0ngPassword", "N3wPassword")

    def test_oversized_current_password_is_rejected(self, credential_service, make_caregiver):
        caregiver = make_caregiver("ana@example.com")

        with pytest.raises(UnauthorizedError):
            credential_service.change_password(caregiver.id, "x" * 5000, "N3wPassword")

    def test_change_password_enforces_policy(self, credential_service, make_caregiver):
        caregiver = make_caregiver("ana@example.com")

        with pytest.raises(PasswordPolicyError):
            credential_service.change_password(caregiver.id, TEST_PASSWORD, "weak")
