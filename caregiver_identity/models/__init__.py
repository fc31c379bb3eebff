"""
API models package initialization.
"""

from .requests import (
    RegisterRequest,
    LoginRequest,
    RefreshTokenRequest,
    UpdateProfileRequest,
    PasswordChangeRequest,
    ApiKeyCreateRequest,
    InvitationCreateRequest,
    InvitationAcceptRequest,
)

from .responses import (
    CaregiverResponse,
    TokenPairResponse,
    AuthResponse,
    ApiKeyResponse,
    ApiKeyCreatedResponse,
    InvitationResponse,
    InvitationListItemResponse,
    PendingInvitationResponse,
    InvitationValidationResponse,
    InvitationAcceptedResponse,
    HealthResponse,
)

__all__ = [
    # Requests
    "RegisterRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "UpdateProfileRequest",
    "PasswordChangeRequest",
    "ApiKeyCreateRequest",
    "InvitationCreateRequest",
    "InvitationAcceptRequest",
    # Responses
    "CaregiverResponse",
    "TokenPairResponse",
    "AuthResponse",
    "ApiKeyResponse",
    "ApiKeyCreatedResponse",
    "InvitationResponse",
    "InvitationListItemResponse",
    "PendingInvitationResponse",
    "InvitationValidationResponse",
    "InvitationAcceptedResponse",
    "HealthResponse",
]
