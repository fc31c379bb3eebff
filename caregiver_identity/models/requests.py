"""
API request models and schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from ..services.credential_service import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH


# Authentication and profile models


class RegisterRequest(BaseModel):
    """Request model for caregiver registration."""

    email: EmailStr = Field(..., description="Valid email address")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="Secure password",
    )
    name: str = Field(..., min_length=1, max_length=100, description="Display name")


class LoginRequest(BaseModel):
    """Caregiver login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., max_length=PASSWORD_MAX_LENGTH, description="Password")


class RefreshTokenRequest(BaseModel):
    """Request to exchange a refresh token for a new token pair."""

    refresh_token: str = Field(..., description="JWT refresh token")


class UpdateProfileRequest(BaseModel):
    """Request model for profile updates."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)


class PasswordChangeRequest(BaseModel):
    """Request to change caregiver password."""

    current_password: str = Field(
        ..., max_length=PASSWORD_MAX_LENGTH, description="Current password for verification"
    )
    new_password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description="New secure password",
    )


# API key models


class ApiKeyCreateRequest(BaseModel):
    """Request to create an API key."""

    name: str = Field(..., min_length=1, max_length=100, description="API key label")
    expires_at: Optional[datetime] = Field(None, description="Optional expiry timestamp")


# Invitation models


class InvitationCreateRequest(BaseModel):
    """Request to invite a caregiver to a baby."""

    baby_id: UUID = Field(..., description="Baby to share")
    invitee_email: EmailStr = Field(..., description="Email address of the invitee")


class InvitationAcceptRequest(BaseModel):
    """Request to accept an invitation."""

    token: str = Field(..., min_length=1, description="Invitation token")
