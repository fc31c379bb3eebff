"""
Caregiver invitation routes.

Every route except token validation requires authentication.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
import structlog

from ..database import Caregiver
from ..dependencies import get_invitation_service
from ..middleware.auth import get_current_caregiver
from ..middleware.logging import audit_logger
from ..models.requests import InvitationAcceptRequest, InvitationCreateRequest
from ..models.responses import (
    InvitationAcceptedResponse,
    InvitationListItemResponse,
    InvitationResponse,
    InvitationValidationResponse,
    PendingInvitationResponse,
)
from ..services import IdentityError, InvitationService
from .errors import to_http_exception

# Configure structured logging
logger = structlog.get_logger(__name__)

# Create router
router = APIRouter(prefix="/api/v1/auth/invite", tags=["invitations"])


@router.post("", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
def create_invitation(
    request: Request,
    invitation_data: InvitationCreateRequest,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    """Invite someone by email to help care for a baby."""
    try:
        summary = invitation_service.create(
            current_caregiver.id,
            invitation_data.baby_id,
            invitation_data.invitee_email,
        )
    except IdentityError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        request=request,
        action="invitation_created",
        caregiver_id=str(current_caregiver.id),
        details={
            "invitation_id": str(summary.invitation.id),
            "baby_id": str(invitation_data.baby_id),
        },
    )

    return InvitationResponse.from_summary(summary)


@router.get("/validate/{token}", response_model=InvitationValidationResponse)
def validate_invitation(
    token: str,
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    """Check an invitation token without signing in."""
    return InvitationValidationResponse.from_validation(invitation_service.validate(token))


@router.get("/pending", response_model=List[PendingInvitationResponse])
def list_pending_invitations(
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    """List pending invitations addressed to the current caregiver."""
    return [
        PendingInvitationResponse.from_summary(summary)
        for summary in invitation_service.list_pending_for_email(current_caregiver.email)
    ]


@router.post("/accept", response_model=InvitationAcceptedResponse)
def accept_invitation(
    request: Request,
    accept_data: InvitationAcceptRequest,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    """Accept an invitation and gain secondary access to the baby."""
    try:
        accepted = invitation_service.accept(current_caregiver.id, accept_data.token)
    except IdentityError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        request=request,
        action="invitation_accepted",
        caregiver_id=str(current_caregiver.id),
        details={"baby_id": str(accepted.baby_id)},
    )

    return InvitationAcceptedResponse.from_accepted(accepted)


@router.get("/{baby_id}", response_model=List[InvitationListItemResponse])
def list_invitations(
    baby_id: UUID,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    """List every invitation for a baby the current caregiver can access."""
    try:
        summaries = invitation_service.list_for_subject(current_caregiver.id, baby_id)
    except IdentityError as e:
        raise to_http_exception(e)

    return [InvitationListItemResponse.from_summary(summary) for summary in summaries]


@router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_invitation(
    request: Request,
    invitation_id: UUID,
    current_caregiver: Caregiver = Depends(get_current_caregiver),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    """Revoke a pending invitation."""
    try:
        invitation_service.revoke(current_caregiver.id, invitation_id)
    except IdentityError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        request=request,
        action="invitation_revoked",
        caregiver_id=str(current_caregiver.id),
        details={"invitation_id": str(invitation_id)},
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)
