"""
Authentication routes.

This module provides the credential endpoints including:
- Caregiver registration and login with lockout protection
- Token refresh
- Profile read/update and password change
- API key management

Routes are plain ``def`` handlers: the services use a blocking database
session, so FastAPI runs them in its worker thread pool.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
import structlog

from ..database import Caregiver
from ..dependencies import get_api_key_service, get_credential_service
from ..middleware.auth import get_current_caregiver
from ..middleware.logging import audit_logger, security_logger
from ..models.requests import (
    ApiKeyCreateRequest,
    LoginRequest,
    PasswordChangeRequest,
    RefreshTokenRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from ..models.responses import (
    ApiKeyCreatedResponse,
    ApiKeyResponse,
    AuthResponse,
    CaregiverResponse,
    TokenPairResponse,
)
from ..services import (
    ApiKeyService,
    CredentialService,
    IdentityError,
    PasswordPolicyError,
    TooManyAttemptsError,
)
from .errors import to_http_exception

# Configure structured logging
logger = structlog.get_logger(__name__)

# Create router
router = APIRouter(prefix="/api/v1/auth", tags=["authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_caregiver(
    request: Request,
    registration: RegisterRequest,
    credential_service: CredentialService = Depends(get_credential_service),
):
    """
    Register new caregiver account.

    Creates the account with a bcrypt password hash and signs the caregiver in.
    """
    try:
        result = credential_service.register(
            email=registration.email,
            password=registration.password,
            name=registration.name,
        )
    except PasswordPolicyError as e:
        security_logger.log_authentication_failure(
            request=request,
            failure_type="password_policy_violation",
            attempted_user=registration.email,
            details={"reason": e.message},
        )
        raise to_http_exception(e)
    except IdentityError as e:
        audit_logger.log_authentication(
            request=request,
            auth_type="registration",
            email=registration.email,
            success=False,
            failure_reason=e.message,
        )
        raise to_http_exception(e)

    audit_logger.log_authentication(
        request=request,
        auth_type="registration",
        caregiver_id=str(result.caregiver.id),
        email=result.caregiver.email,
        success=True,
    )

    return AuthResponse(
        tokens=TokenPairResponse.from_pair(result.tokens),
        caregiver=CaregiverResponse.from_caregiver(result.caregiver),
    )


@router.post("/login", response_model=AuthResponse)
def login_caregiver(
    request: Request,
    login_data: LoginRequest,
    credential_service: CredentialService = Depends(get_credential_service),
):
    """
    Authenticate caregiver and issue a token pair.

    Repeated failures lock the account for a fixed period.
    """
    try:
        result = credential_service.login(login_data.email, login_data.password)
    except TooManyAttemptsError as e:
        security_logger.log_suspicious_activity(
            request=request,
            activity_type="account_locked",
            severity="high",
            details={"email": login_data.email, "remaining_seconds": e.remaining_seconds},
        )
        raise to_http_exception(e)
    except IdentityError as e:
        audit_logger.log_authentication(
            request=request,
            auth_type="password",
            email=login_data.email,
            success=False,
            failure_reason=e.message,
        )
        raise to_http_exception(e)

    audit_logger.log_authentication(
        request=request,
        auth_type="password",
        caregiver_id=str(result.caregiver.id),
        email=result.caregiver.email,
        success=True,
    )

    return AuthResponse(
        tokens=TokenPairResponse.from_pair(result.tokens),
        caregiver=CaregiverResponse.from_caregiver(result.caregiver),
    )


@router.post("/refresh", response_model=TokenPairResponse)
def refresh_tokens(
    refresh_data: RefreshTokenRequest,
    credential_service: CredentialService = Depends(get_credential_service),
):
    """Exchange a refresh token for a new token pair."""
    try:
        tokens = credential_service.refresh(refresh_data.refresh_token)
    except IdentityError as e:
        raise to_http_exception(e)

    return TokenPairResponse.from_pair(tokens)


@router.get("/me", response_model=CaregiverResponse)
def get_profile(current_caregiver: Caregiver = Depends(get_current_caregiver)):
    """Get current caregiver profile."""
    return CaregiverResponse.from_caregiver(current_caregiver)


@router.patch("/me", response_model=CaregiverResponse)
def update_profile(
    request: Request,
    update_data: UpdateProfileRequest,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    credential_service: CredentialService = Depends(get_credential_service),
):
    """Update current caregiver profile."""
    try:
        caregiver = credential_service.update_profile(
            current_caregiver.id, name=update_data.name
        )
    except IdentityError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        request=request,
        action="profile_updated",
        caregiver_id=str(caregiver.id),
    )

    return CaregiverResponse.from_caregiver(caregiver)


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    request: Request,
    password_data: PasswordChangeRequest,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    credential_service: CredentialService = Depends(get_credential_service),
):
    """Change current caregiver password."""
    try:
        credential_service.change_password(
            current_caregiver.id,
            current_password=password_data.current_password,
            new_password=password_data.new_password,
        )
    except IdentityError as e:
        security_logger.log_authentication_failure(
            request=request,
            failure_type="password_change_rejected",
            attempted_user=current_caregiver.email,
            details={"reason": e.message},
        )
        raise to_http_exception(e)

    audit_logger.log_user_action(
        request=request,
        action="password_changed",
        caregiver_id=str(current_caregiver.id),
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# API key management


@router.post(
    "/api-keys", response_model=ApiKeyCreatedResponse, status_code=status.HTTP_201_CREATED
)
def create_api_key(
    request: Request,
    key_data: ApiKeyCreateRequest,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """
    Create an API key.

    The full key is only returned here; store it now.
    """
    try:
        created = api_key_service.create(
            current_caregiver.id, name=key_data.name, expires_at=key_data.expires_at
        )
    except IdentityError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        request=request,
        action="api_key_created",
        caregiver_id=str(current_caregiver.id),
        details={"api_key_id": str(created.record.id)},
    )

    return ApiKeyCreatedResponse.from_created(created)


@router.get("/api-keys", response_model=List[ApiKeyResponse])
def list_api_keys(
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """List current caregiver's API keys (redacted)."""
    return [
        ApiKeyResponse.from_record(api_key)
        for api_key in api_key_service.list(current_caregiver.id)
    ]


@router.delete("/api-keys/{api_key_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_api_key(
    request: Request,
    api_key_id: UUID,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """Revoke one of the current caregiver's API keys."""
    try:
        api_key_service.revoke(current_caregiver.id, api_key_id)
    except IdentityError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        request=request,
        action="api_key_revoked",
        caregiver_id=str(current_caregiver.id),
        details={"api_key_id": str(api_key_id)},
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)
