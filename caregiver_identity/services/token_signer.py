"""
Signed, time-limited token issuing and verification.

Verification never raises for bad tokens: it returns either the decoded
claims or a ``VerificationError`` describing why the token was rejected.

Dependencies:
- python-jose[cryptography]: JWT token operations
- structlog: Structured logging
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Union

from jose import ExpiredSignatureError, JWTError, jwt
import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VerificationError:
    """Why a token failed verification."""

    reason: str  # "expired" or "invalid"
    detail: str = ""

    @property
    def expired(self) -> bool:
        return self.reason == "expired"


class TokenSigner:
    """
    Issue and verify JWTs.

    The signer holds no keys; callers pass the key for the token kind they
    are handling, so access and refresh tokens can never be confused.
    """

    def __init__(self, algorithm: str = "HS256"):
        self.algorithm = algorithm

    def sign(self, payload: Dict[str, Any], key: str, ttl_seconds: int) -> str:
        """
        Sign a payload with issued-at and expiry claims added.

        Args:
            payload: Claims to embed
            key: Signing key
            ttl_seconds: Lifetime of the token

        Returns:
            str: Encoded JWT
        """
        now = datetime.now(timezone.utc)
        claims = dict(payload)
        claims["iat"] = now
        claims["exp"] = now + timedelta(seconds=ttl_seconds)

        return jwt.encode(claims, key, algorithm=self.algorithm)

    def verify(self, token: str, key: str) -> Union[Dict[str, Any], VerificationError]:
        """
        Verify a token's signature and expiry.

        Args:
            token: Encoded JWT
            key: Key the token should have been signed with

        Returns:
            Decoded claims, or VerificationError if the token is rejected
        """
        try:
            return jwt.decode(token, key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            return VerificationError(reason="expired", detail="Token has expired")
        except JWTError as e:
            logger.debug("Token verification failed", error=str(e))
            return VerificationError(reason="invalid", detail=str(e))
