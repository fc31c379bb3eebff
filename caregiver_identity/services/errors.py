"""
Error taxonomy for identity operations.

Services raise these; the HTTP layer maps ``status_code`` onto the response.
"""

from typing import Any, Dict, Optional


class IdentityError(Exception):
    """Base class for failures reported to the caller of an identity operation."""

    status_code: int = 400
    error_code: str = "identity_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a structured error body."""
        return {"error": self.error_code, "message": self.message, **self.details}


class ConflictError(IdentityError):
    """Raised when the request conflicts with existing state."""

    status_code = 409
    error_code = "conflict"


class UnauthorizedError(IdentityError):
    """Raised when credentials are missing, wrong, or no longer valid."""

    status_code = 401
    error_code = "unauthorized"


class ForbiddenError(IdentityError):
    """Raised when the caller is authenticated but not allowed to act."""

    status_code = 403
    error_code = "forbidden"


class NotFoundError(IdentityError):
    """Raised when a referenced record doesn't exist."""

    status_code = 404
    error_code = "not_found"


class TooManyAttemptsError(IdentityError):
    """Raised when an account is locked after repeated failed logins."""

    status_code = 429
    error_code = "too_many_attempts"

    def __init__(self, message: str, remaining_seconds: Optional[int] = None, **details: Any):
        super().__init__(message, remaining_seconds=remaining_seconds, **details)
        self.remaining_seconds = remaining_seconds


class UnavailableError(IdentityError):
    """Raised when a backing store fails in the middle of an operation."""

    status_code = 503
    error_code = "unavailable"


class PasswordPolicyError(IdentityError):
    """Raised when password doesn't meet security policy requirements."""

    status_code = 400
    error_code = "password_policy"
