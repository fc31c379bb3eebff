"""
Credential service for the identity core.

This module provides caregiver credential management including:
- Registration with password policy enforcement
- Login guarded by the account lockout service
- Access/refresh token pair issuing and refresh
- Profile read/update and password change

Dependencies:
- passlib[bcrypt]: Secure password hashing
- sqlmodel: Database session management
- structlog: Structured logging
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional
from uuid import UUID

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session
import structlog

from ..config.settings import IdentitySettings
from ..database import Caregiver
from ..database import credential_repository as repo
from ..utils import normalize_email
from .errors import (
    ConflictError,
    NotFoundError,
    PasswordPolicyError,
    TooManyAttemptsError,
    UnauthorizedError,
)
from .lockout_service import AccountLockoutService
from .token_signer import TokenSigner, VerificationError

# Configure structured logging
logger = structlog.get_logger(__name__)
security_logger = structlog.get_logger("security")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


@lru_cache()
def get_password_context(rounds: int = 12) -> CryptContext:
    """Password hashing context using bcrypt with the given cost factor."""
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


@dataclass(frozen=True)
class TokenPair:
    """Access/refresh token pair."""

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass(frozen=True)
class AuthResult:
    """Authenticated caregiver with a freshly issued token pair."""

    caregiver: Caregiver
    tokens: TokenPair


class CredentialService:
    """
    Service class for caregiver credentials.

    Issues token pairs signed with distinct access and refresh keys and
    enforces the login lockout policy.
    """

    def __init__(
        self,
        db: Session,
        lockout: AccountLockoutService,
        signer: TokenSigner,
        settings: IdentitySettings,
    ):
        """
        Initialize credential service.

        Args:
            db: Database session
            lockout: Failed-login tracking
            signer: JWT signer
            settings: Token keys, lifetimes and hashing cost

        Raises:
            ValueError: If the signing keys are placeholders or identical
        """
        settings.ensure_signing_keys()

        self.db = db
        self.lockout = lockout
        self.signer = signer
        self.settings = settings
        self.pwd_context = get_password_context(settings.password_hash_rounds)

    def register(self, email: str, password: str, name: str) -> AuthResult:
        """
        Create a caregiver account and sign them in.

        Args:
            email: Email address (normalized before storage)
            password: Plain text password
            name: Display name

        Returns:
            AuthResult: Created caregiver and token pair

        Raises:
            PasswordPolicyError: If password doesn't meet security requirements
            ConflictError: If the email is already registered
        """
        normalized_email = normalize_email(email)
        self._validate_password_policy(password)

        if repo.get_caregiver_by_email(self.db, normalized_email):
            raise ConflictError("Email already registered")

        password_hash = self.pwd_context.hash(password)

        try:
            caregiver = repo.create_caregiver(
                self.db, email=normalized_email, password_hash=password_hash, name=name
            )
        except IntegrityError as e:
            # Concurrent registration won the unique constraint
            self.db.rollback()
            logger.warning(
                "Registration failed - duplicate email",
                email=normalized_email,
                error=str(e),
            )
            raise ConflictError("Email already registered")

        logger.info("Caregiver registered", caregiver_id=str(caregiver.id), email=normalized_email)

        return AuthResult(caregiver=caregiver, tokens=self._issue_tokens(caregiver))

    def login(self, email: str, password: str) -> AuthResult:
        """
        Authenticate credentials with lockout controls.

        An unknown email is handled exactly like a wrong password: a dummy
        hash verification runs and a failed attempt is recorded.

        Args:
            email: Email address
            password: Plain text password

        Returns:
            AuthResult: Authenticated caregiver and token pair

        Raises:
            TooManyAttemptsError: If the account is locked
            UnauthorizedError: If the credentials are wrong
        """
        normalized_email = normalize_email(email)

        lockout_status = self.lockout.is_locked(normalized_email)
        if lockout_status.locked:
            security_logger.warning(
                "Login attempt on locked account",
                email=normalized_email,
                remaining_seconds=lockout_status.remaining_seconds,
            )
            raise self._locked_error(lockout_status.remaining_seconds)

        caregiver = repo.get_caregiver_by_email(self.db, normalized_email)

        if caregiver is None:
            self.pwd_context.dummy_verify()
            password_valid = False
        else:
            password_valid = self._verify_password(password, caregiver.password_hash)

        if not password_valid:
            attempt = self.lockout.record_failed_attempt(normalized_email)
            security_logger.warning(
                "Login failed",
                email=normalized_email,
                attempt_count=attempt.attempt_count,
                remaining_attempts=attempt.remaining_attempts,
            )

            if attempt.is_locked:
                raise self._locked_error(attempt.lock_duration_seconds)

            if attempt.remaining_attempts > 0:
                raise UnauthorizedError(
                    f"Invalid credentials. {attempt.remaining_attempts} attempt(s) "
                    f"remaining before account lockout.",
                    remaining_attempts=attempt.remaining_attempts,
                )

            raise UnauthorizedError("Invalid credentials")

        self.lockout.reset_on_success(normalized_email)

        logger.info("Caregiver authenticated", caregiver_id=str(caregiver.id))

        return AuthResult(caregiver=caregiver, tokens=self._issue_tokens(caregiver))

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            UnauthorizedError: If the token is invalid, expired, or its caregiver is gone
        """
        claims = self.signer.verify(refresh_token, self.settings.jwt_refresh_secret_key)
        if isinstance(claims, VerificationError):
            raise UnauthorizedError("Invalid or expired refresh token", reason=claims.reason)

        caregiver = self._caregiver_from_claims(claims)
        if caregiver is None:
            raise UnauthorizedError("User not found")

        return self._issue_tokens(caregiver)

    def authenticate_access_token(self, access_token: str) -> Caregiver:
        """
        Resolve the caregiver an access token was issued to.

        Raises:
            UnauthorizedError: If the token is invalid, expired, or its caregiver is gone
        """
        claims = self.signer.verify(access_token, self.settings.jwt_secret_key)
        if isinstance(claims, VerificationError):
            message = "Access token has expired" if claims.expired else "Invalid access token"
            raise UnauthorizedError(message, reason=claims.reason)

        caregiver = self._caregiver_from_claims(claims)
        if caregiver is None:
            raise UnauthorizedError("User not found")

        return caregiver

    def get_profile(self, caregiver_id: UUID) -> Caregiver:
        """
        Get a caregiver's profile.

        Raises:
            NotFoundError: If the caregiver doesn't exist
        """
        caregiver = repo.get_caregiver_by_id(self.db, caregiver_id)
        if caregiver is None:
            raise NotFoundError("User not found")
        return caregiver

    def update_profile(self, caregiver_id: UUID, name: Optional[str] = None) -> Caregiver:
        """
        Update profile fields that were provided.

        Raises:
            NotFoundError: If the caregiver doesn't exist
        """
        caregiver = self.get_profile(caregiver_id)

        fields: Dict[str, Any] = {}
        if name is not None:
            fields["name"] = name

        if not fields:
            return caregiver

        caregiver = repo.update_caregiver(self.db, caregiver, **fields)
        logger.info(
            "Caregiver profile updated",
            caregiver_id=str(caregiver_id),
            fields_updated=list(fields),
        )
        return caregiver

    def change_password(
        self, caregiver_id: UUID, current_password: str, new_password: str
    ) -> None:
        """
        Change a caregiver's password.

        Raises:
            NotFoundError: If the caregiver doesn't exist
            UnauthorizedError: If the current password is wrong
            PasswordPolicyError: If the new password doesn't meet requirements
        """
        caregiver = self.get_profile(caregiver_id)

        if not self._verify_password(current_password, caregiver.password_hash):
            security_logger.warning(
                "Password change rejected - wrong current password",
                caregiver_id=str(caregiver_id),
            )
            raise UnauthorizedError("Invalid current password")

        self._validate_password_policy(new_password)

        repo.update_caregiver(
            self.db, caregiver, password_hash=self.pwd_context.hash(new_password)
        )

        security_logger.info("Password changed", caregiver_id=str(caregiver_id))

    # Private helper methods

    def _verify_password(self, password: str, password_hash: str) -> bool:
        # No stored password can be longer than the policy allows
        if len(password) > PASSWORD_MAX_LENGTH:
            self.pwd_context.dummy_verify()
            return False
        return self.pwd_context.verify(password, password_hash)

    def _issue_tokens(self, caregiver: Caregiver) -> TokenPair:
        payload = {
            "sub": str(caregiver.id),
            "email": caregiver.email,
            "name": caregiver.name,
        }

        return TokenPair(
            access_token=self.signer.sign(
                payload,
                self.settings.jwt_secret_key,
                self.settings.access_token_expire_seconds,
            ),
            refresh_token=self.signer.sign(
                payload,
                self.settings.jwt_refresh_secret_key,
                self.settings.refresh_token_expire_seconds,
            ),
            expires_in=self.settings.access_token_expire_seconds,
        )

    def _caregiver_from_claims(self, claims: Dict[str, Any]) -> Optional[Caregiver]:
        try:
            caregiver_id = UUID(str(claims.get("sub")))
        except ValueError:
            return None
        return repo.get_caregiver_by_id(self.db, caregiver_id)

    def _locked_error(self, remaining_seconds: Optional[int]) -> TooManyAttemptsError:
        seconds = remaining_seconds or self.lockout.lockout_duration_seconds
        remaining_minutes = -(-seconds // 60)
        return TooManyAttemptsError(
            "Account is temporarily locked due to too many failed login attempts. "
            f"Please try again in {remaining_minutes} minute(s).",
            remaining_seconds=seconds,
        )

    def _validate_password_policy(self, password: str) -> None:
        """
        Validate password against security policy.

        Security requirements:
        - 8 to 128 characters
        - Contains uppercase letter
        - Contains lowercase letter
        - Contains digit

        Raises:
            PasswordPolicyError: If password doesn't meet requirements
        """
        if len(password) < PASSWORD_MIN_LENGTH:
            raise PasswordPolicyError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
            )

        if len(password) > PASSWORD_MAX_LENGTH:
            raise PasswordPolicyError(
                f"Password must be at most {PASSWORD_MAX_LENGTH} characters long"
            )

        if not re.search(r"[A-Z]", password):
            raise PasswordPolicyError(
                "Password must contain at least one uppercase letter"
            )

        if not re.search(r"[a-z]", password):
            raise PasswordPolicyError(
                "Password must contain at least one lowercase letter"
            )

        if not re.search(r"\d", password):
            raise PasswordPolicyError("Password must contain at least one digit")
