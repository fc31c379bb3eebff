"""
API response models and schemas.
"""

from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database import ApiKey, Caregiver
from ..services import (
    AcceptedInvitation,
    CreatedApiKey,
    InvitationSummary,
    InvitationValidation,
    TokenPair,
)


# Authentication and profile response models


class CaregiverResponse(BaseModel):
    """Caregiver profile response model (excludes sensitive data)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Caregiver's unique identifier")
    email: str = Field(..., description="Email address")
    name: str = Field(..., description="Display name")
    created_at: datetime = Field(..., description="Account creation timestamp")
    updated_at: datetime = Field(..., description="Last profile update timestamp")

    @classmethod
    def from_caregiver(cls, caregiver: Caregiver) -> "CaregiverResponse":
        return cls.model_validate(caregiver)


class TokenPairResponse(BaseModel):
    """Access/refresh token pair."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiry in seconds")

    @classmethod
    def from_pair(cls, tokens: TokenPair) -> "TokenPairResponse":
        return cls(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
        )


class AuthResponse(BaseModel):
    """Authentication response with tokens and caregiver."""

    tokens: TokenPairResponse = Field(..., description="Issued token pair")
    caregiver: CaregiverResponse = Field(..., description="Authenticated caregiver")


# API key response models


class ApiKeyResponse(BaseModel):
    """API key information response (secret redacted)."""

    id: UUID = Field(..., description="API key identifier")
    name: str = Field(..., description="API key name")
    key_hint: str = Field(..., description="Last four characters of the key")
    created_at: datetime = Field(..., description="Creation timestamp")
    last_used_at: Optional[datetime] = Field(None, description="Last usage timestamp")
    expires_at: Optional[datetime] = Field(None, description="Expiry timestamp")

    @classmethod
    def from_record(cls, api_key: ApiKey) -> "ApiKeyResponse":
        return cls(
            id=api_key.id,
            name=api_key.name,
            key_hint=f"****{api_key.key_hint}",
            created_at=api_key.created_at,
            last_used_at=api_key.last_used_at,
            expires_at=api_key.expires_at,
        )


class ApiKeyCreatedResponse(BaseModel):
    """Response for API key creation. The only response that carries the secret."""

    id: UUID = Field(..., description="API key identifier")
    key: str = Field(..., description="Full API key, shown once")
    name: str = Field(..., description="API key name")
    created_at: datetime = Field(..., description="Creation timestamp")
    expires_at: Optional[datetime] = Field(None, description="Expiry timestamp")

    @classmethod
    def from_created(cls, created: CreatedApiKey) -> "ApiKeyCreatedResponse":
        return cls(
            id=created.record.id,
            key=created.key,
            name=created.record.name,
            created_at=created.record.created_at,
            expires_at=created.record.expires_at,
        )


# Invitation response models


class InvitationResponse(BaseModel):
    """Invitation returned to its creator."""

    id: UUID
    token: str = Field(..., description="Invitation token to share with the invitee")
    baby_id: UUID
    baby_name: str
    invitee_email: str
    status: str
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None

    @classmethod
    def from_summary(cls, summary: InvitationSummary) -> "InvitationResponse":
        invitation = summary.invitation
        return cls(
            id=invitation.id,
            token=invitation.token,
            baby_id=invitation.baby_id,
            baby_name=summary.baby_name,
            invitee_email=invitation.invitee_email,
            status=invitation.status,
            created_at=invitation.created_at,
            expires_at=invitation.expires_at,
            accepted_at=invitation.accepted_at,
        )


class InvitationListItemResponse(BaseModel):
    """Invitation in a baby's invitation list (token redacted)."""

    id: UUID
    baby_id: UUID
    baby_name: str
    inviter_name: str
    invitee_email: str
    status: str
    created_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    token_hint: str = Field(..., description="Last four characters of the token")

    @classmethod
    def from_summary(cls, summary: InvitationSummary) -> "InvitationListItemResponse":
        invitation = summary.invitation
        return cls(
            id=invitation.id,
            baby_id=invitation.baby_id,
            baby_name=summary.baby_name,
            inviter_name=summary.inviter_name,
            invitee_email=invitation.invitee_email,
            status=invitation.status,
            created_at=invitation.created_at,
            expires_at=invitation.expires_at,
            accepted_at=invitation.accepted_at,
            token_hint=invitation.token_hint,
        )


class PendingInvitationResponse(BaseModel):
    """Pending invitation addressed to the current caregiver."""

    token: str
    baby_name: str
    inviter_name: str
    expires_at: datetime

    @classmethod
    def from_summary(cls, summary: InvitationSummary) -> "PendingInvitationResponse":
        return cls(
            token=summary.invitation.token,
            baby_name=summary.baby_name,
            inviter_name=summary.inviter_name,
            expires_at=summary.invitation.expires_at,
        )


class InvitationValidationResponse(BaseModel):
    """Public validity check for an invitation token."""

    valid: bool
    reason: Optional[str] = None
    error: Optional[str] = None
    status: Optional[str] = None
    baby_name: str = ""
    inviter_name: str = ""
    invitee_email: str = ""
    expires_at: Optional[datetime] = None

    @classmethod
    def from_validation(
        cls, validation: InvitationValidation
    ) -> "InvitationValidationResponse":
        return cls(
            valid=validation.valid,
            reason=validation.reason,
            error=validation.error,
            status=validation.status.value if validation.status else None,
            baby_name=validation.baby_name,
            inviter_name=validation.inviter_name,
            invitee_email=validation.invitee_email,
            expires_at=validation.expires_at,
        )


class InvitationAcceptedResponse(BaseModel):
    """Access granted by accepting an invitation."""

    message: str = "Invitation accepted successfully"
    baby_id: UUID
    baby_name: str
    role: str

    @classmethod
    def from_accepted(cls, accepted: AcceptedInvitation) -> "InvitationAcceptedResponse":
        return cls(
            baby_id=accepted.baby_id,
            baby_name=accepted.baby_name,
            role=accepted.role.value,
        )


# System responses


class HealthResponse(BaseModel):
    """System health response."""

    status: str = Field(..., description="Overall system status")
    version: str = Field(..., description="Service version")
    components: Dict[str, str] = Field(..., description="Component health status")
    timestamp: datetime = Field(..., description="Check timestamp")
