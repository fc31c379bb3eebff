"""
Identity services for credentials, lockout, API keys and invitations.
"""

from .api_key_service import ApiKeyService, CreatedApiKey
from .background import BackgroundDispatcher
from .credential_service import AuthResult, CredentialService, TokenPair
from .errors import (
    ConflictError,
    ForbiddenError,
    IdentityError,
    NotFoundError,
    PasswordPolicyError,
    TooManyAttemptsError,
    UnauthorizedError,
    UnavailableError,
)
from .invitation_service import (
    AcceptedInvitation,
    InvitationService,
    InvitationSummary,
    InvitationValidation,
)
from .lockout_service import AccountLockoutService, FailedAttemptResult, LockoutStatus
from .token_signer import TokenSigner, VerificationError

__all__ = [
    "AccountLockoutService",
    "AcceptedInvitation",
    "ApiKeyService",
    "AuthResult",
    "BackgroundDispatcher",
    "ConflictError",
    "CreatedApiKey",
    "CredentialService",
    "FailedAttemptResult",
    "ForbiddenError",
    "IdentityError",
    "InvitationService",
    "InvitationSummary",
    "InvitationValidation",
    "LockoutStatus",
    "NotFoundError",
    "PasswordPolicyError",
    "TokenPair",
    "TokenSigner",
    "TooManyAttemptsError",
    "UnauthorizedError",
    "UnavailableError",
    "VerificationError",
]
