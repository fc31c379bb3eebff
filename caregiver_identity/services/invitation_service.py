"""
Caregiver invitation service.

Invitations move one way, from ``pending`` to ``accepted``, ``expired`` or
``revoked``. Expiry is applied lazily: any operation that reads a pending
invitation past its ``expires_at`` writes the ``expired`` status first.

Acceptance flips the invitation and grants the secondary relation in one
transaction. The status write is a conditional update on ``pending``, so of
two concurrent accepts exactly one commits and the other gets a Conflict.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session
import structlog

from ..config.settings import IdentitySettings
from ..database import CaregiverRole, Invitation, InvitationStatus
from ..database import credential_repository as repo
from ..utils import normalize_email, to_aware_utc, utcnow
from .errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnavailableError,
)
from .secret_generator import new_invitation_token

logger = structlog.get_logger(__name__)
security_logger = structlog.get_logger("security")

VALIDATION_ERRORS = {
    "not_found": "Invitation not found",
    "expired": "This invitation has expired",
    "already_accepted": "This invitation has already been accepted",
    "revoked": "This invitation has been revoked",
}


@dataclass(frozen=True)
class InvitationSummary:
    """Invitation with the display names its responses carry."""

    invitation: Invitation
    baby_name: str
    inviter_name: str


@dataclass(frozen=True)
class InvitationValidation:
    """Public view of a token's validity."""

    valid: bool
    reason: Optional[str] = None
    error: Optional[str] = None
    status: Optional[InvitationStatus] = None
    baby_name: str = ""
    inviter_name: str = ""
    invitee_email: str = ""
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class AcceptedInvitation:
    """Access granted by an accepted invitation."""

    baby_id: UUID
    baby_name: str
    role: CaregiverRole


class InvitationService:
    """Create, validate, accept, revoke and list caregiver invitations."""

    def __init__(self, db: Session, settings: IdentitySettings):
        """
        Initialize invitation service.

        Args:
            db: Database session
            settings: Invitation lifetime
        """
        self.db = db
        self.expiry = timedelta(days=settings.invitation_expiry_days)

    def create(
        self, inviter_id: UUID, baby_id: UUID, invitee_email: str
    ) -> InvitationSummary:
        """
        Invite someone by email to become a secondary caregiver.

        Args:
            inviter_id: Caregiver sending the invitation
            baby_id: Baby to share
            invitee_email: Address the invitation is bound to

        Returns:
            InvitationSummary: The pending invitation, including its token

        Raises:
            NotFoundError: If the baby doesn't exist
            ForbiddenError: If the inviter is not an accepted primary caregiver
            ConflictError: If the invitee already has access or a live invitation exists
        """
        normalized_email = normalize_email(invitee_email)

        baby = repo.get_baby(self.db, baby_id)
        if baby is None:
            raise NotFoundError("Baby not found")

        self._require_primary(baby_id, inviter_id, "Only primary caregivers can invite others")

        invitee = repo.get_caregiver_by_email(self.db, normalized_email)
        if invitee is not None:
            relation = repo.get_relation(self.db, baby_id, invitee.id)
            if relation is not None and relation.is_accepted:
                raise ConflictError("This person is already a caregiver for this baby")

        now = utcnow()
        pending = repo.find_pending_invitations(self.db, baby_id, normalized_email)
        if any(not invitation.is_expired(now) for invitation in pending):
            raise ConflictError("A pending invitation already exists for this email")
        repo.expire_invitations(self.db, [invitation.id for invitation in pending])

        invitation = repo.create_invitation(
            self.db,
            token=new_invitation_token(),
            baby_id=baby_id,
            inviter_id=inviter_id,
            invitee_email=normalized_email,
            expires_at=now + self.expiry,
        )

        inviter = repo.get_caregiver_by_id(self.db, inviter_id)

        logger.info(
            "Invitation created",
            invitation_id=str(invitation.id),
            baby_id=str(baby_id),
            inviter_id=str(inviter_id),
            invitee_email=normalized_email,
        )

        return InvitationSummary(
            invitation=invitation,
            baby_name=baby.name,
            inviter_name=inviter.name if inviter else "",
        )

    def validate(self, token: str) -> InvitationValidation:
        """
        Report whether a token can still be accepted. Never raises for bad tokens.

        A pending invitation past its expiry is marked ``expired`` here.
        """
        invitation = repo.get_invitation_by_token(self.db, token)
        if invitation is None:
            return InvitationValidation(
                valid=False, reason="not_found", error=VALIDATION_ERRORS["not_found"]
            )

        status = self._expire_if_stale(invitation)

        baby = repo.get_baby(self.db, invitation.baby_id)
        inviter = repo.get_caregiver_by_id(self.db, invitation.inviter_id)

        reason = None
        if status == InvitationStatus.EXPIRED:
            reason = "expired"
        elif status == InvitationStatus.ACCEPTED:
            reason = "already_accepted"
        elif status == InvitationStatus.REVOKED:
            reason = "revoked"

        return InvitationValidation(
            valid=reason is None,
            reason=reason,
            error=VALIDATION_ERRORS.get(reason) if reason else None,
            status=status,
            baby_name=baby.name if baby else "",
            inviter_name=inviter.name if inviter else "",
            invitee_email=invitation.invitee_email,
            expires_at=to_aware_utc(invitation.expires_at),
        )

    def accept(self, caller_id: UUID, token: str) -> AcceptedInvitation:
        """
        Accept an invitation and grant secondary access.

        Args:
            caller_id: Caregiver accepting the invitation
            token: Invitation token

        Returns:
            AcceptedInvitation: Baby and role granted

        Raises:
            NotFoundError: If the token or caller doesn't exist
            ConflictError: If the invitation is no longer pending or the caller already has access
            ForbiddenError: If the invitation was sent to a different email address
            UnavailableError: If the database fails during the grant
        """
        invitation = repo.get_invitation_by_token(self.db, token)
        if invitation is None:
            raise NotFoundError("Invitation not found")

        if not invitation.is_pending:
            raise ConflictError(f"Invitation has already been {invitation.status}")

        if self._expire_if_stale(invitation) == InvitationStatus.EXPIRED:
            raise ConflictError("Invitation has expired")

        caregiver = repo.get_caregiver_by_id(self.db, caller_id)
        if caregiver is None:
            raise NotFoundError("Caregiver not found")

        if normalize_email(caregiver.email) != normalize_email(invitation.invitee_email):
            security_logger.warning(
                "Invitation accept with mismatched email",
                invitation_id=str(invitation.id),
                caregiver_id=str(caller_id),
            )
            raise ForbiddenError(
                "This invitation was sent to a different email address",
                invitee_email=invitation.invitee_email,
                caller_email=caregiver.email,
            )

        existing_relation = repo.get_relation(self.db, invitation.baby_id, caller_id)
        if existing_relation is not None and existing_relation.is_accepted:
            raise ConflictError("You are already a caregiver for this baby")

        invitation_id = invitation.id
        baby_id = invitation.baby_id
        invited_at = to_aware_utc(invitation.created_at)
        now = utcnow()

        try:
            transitioned = repo.transition_pending_invitation(
                self.db,
                invitation_id,
                InvitationStatus.ACCEPTED,
                accepted_at=now,
                accepted_by_id=caller_id,
            )
            if not transitioned:
                self.db.rollback()
                current = repo.get_invitation(self.db, invitation_id)
                raise ConflictError(f"Invitation has already been {current.status}")

            if existing_relation is not None:
                # Placeholder from an earlier invite path; invitations only grant secondary
                existing_relation.role = CaregiverRole.SECONDARY.value
                existing_relation.accepted_at = now
                self.db.add(existing_relation)
                self.db.flush()
            else:
                repo.add_relation(
                    self.db,
                    baby_id=baby_id,
                    caregiver_id=caller_id,
                    role=CaregiverRole.SECONDARY,
                    invited_at=invited_at,
                    accepted_at=now,
                )

            self.db.commit()

        except IntegrityError as e:
            self.db.rollback()
            logger.warning(
                "Invitation accept lost relation race",
                invitation_id=str(invitation_id),
                caregiver_id=str(caller_id),
                error=str(e),
            )
            raise ConflictError("You are already a caregiver for this baby")

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Invitation accept failed",
                invitation_id=str(invitation_id),
                caregiver_id=str(caller_id),
                error=str(e),
            )
            raise UnavailableError("Could not accept invitation, please retry")

        baby = repo.get_baby(self.db, baby_id)

        security_logger.info(
            "Invitation accepted",
            invitation_id=str(invitation_id),
            baby_id=str(baby_id),
            caregiver_id=str(caller_id),
        )

        return AcceptedInvitation(
            baby_id=baby_id,
            baby_name=baby.name if baby else "",
            role=CaregiverRole.SECONDARY,
        )

    def revoke(self, caller_id: UUID, invitation_id: UUID) -> None:
        """
        Revoke a pending invitation.

        Raises:
            NotFoundError: If the invitation doesn't exist
            ForbiddenError: If the caller is not an accepted primary caregiver
            ConflictError: If the invitation is no longer pending
        """
        invitation = repo.get_invitation(self.db, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")

        self._require_primary(
            invitation.baby_id, caller_id, "Only primary caregivers can revoke invitations"
        )

        status = self._expire_if_stale(invitation)
        if status != InvitationStatus.PENDING:
            raise ConflictError(f"Cannot revoke an invitation that has been {status.value}")

        if not repo.transition_pending_invitation(
            self.db, invitation_id, InvitationStatus.REVOKED
        ):
            self.db.rollback()
            current = repo.get_invitation(self.db, invitation_id)
            raise ConflictError(f"Cannot revoke an invitation that has been {current.status}")

        self.db.commit()

        security_logger.info(
            "Invitation revoked",
            invitation_id=str(invitation_id),
            caregiver_id=str(caller_id),
        )

    def list_for_subject(self, caller_id: UUID, baby_id: UUID) -> List[InvitationSummary]:
        """
        List every invitation for a baby, newest first.

        Raises:
            NotFoundError: If the caller has no accepted relation on the baby
        """
        relation = repo.get_relation(self.db, baby_id, caller_id)
        if relation is None or not relation.is_accepted:
            raise NotFoundError("Baby not found or you do not have access")

        invitations = repo.list_invitations_for_baby(self.db, baby_id)

        now = utcnow()
        stale_ids = [i.id for i in invitations if i.is_pending and i.is_expired(now)]
        repo.expire_invitations(self.db, stale_ids)

        baby = repo.get_baby(self.db, baby_id)
        inviter_names: Dict[UUID, str] = {}
        summaries = []
        for invitation in invitations:
            if invitation.inviter_id not in inviter_names:
                inviter = repo.get_caregiver_by_id(self.db, invitation.inviter_id)
                inviter_names[invitation.inviter_id] = inviter.name if inviter else ""
            summaries.append(
                InvitationSummary(
                    invitation=invitation,
                    baby_name=baby.name if baby else "",
                    inviter_name=inviter_names[invitation.inviter_id],
                )
            )

        return summaries

    def list_pending_for_email(self, email: str) -> List[InvitationSummary]:
        """List pending, unexpired invitations addressed to an email."""
        rows = repo.list_pending_invitations_for_email(
            self.db, normalize_email(email), utcnow()
        )
        return [
            InvitationSummary(invitation=invitation, baby_name=baby_name, inviter_name=inviter_name)
            for invitation, baby_name, inviter_name in rows
        ]

    # Private helper methods

    def _require_primary(self, baby_id: UUID, caregiver_id: UUID, message: str) -> None:
        relation = repo.get_relation(self.db, baby_id, caregiver_id)
        if relation is None or not relation.is_accepted:
            raise ForbiddenError("You do not have access to this baby")
        if not relation.is_accepted_primary:
            raise ForbiddenError(message)

    def _expire_if_stale(self, invitation: Invitation) -> InvitationStatus:
        """Apply lazy expiry and return the invitation's effective status."""
        if invitation.is_pending and invitation.is_expired(utcnow()):
            repo.expire_invitations(self.db, [invitation.id])
            logger.info("Invitation expired", invitation_id=str(invitation.id))
            return InvitationStatus.EXPIRED
        return InvitationStatus(invitation.status)
