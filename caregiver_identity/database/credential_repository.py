"""
Repository for caregiver, baby, relation, API key and invitation records.

Functions that represent a complete unit of work commit on their own.
Functions marked "caller commits" only stage changes so that a service can
group several of them into one transaction.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, select
import structlog

from ..utils import utcnow
from .models import (
    ApiKey,
    Baby,
    BabyCaregiver,
    Caregiver,
    CaregiverRole,
    Invitation,
    InvitationStatus,
)

logger = structlog.get_logger(__name__)


# ============================================================================
# Caregiver CRUD
# ============================================================================


def get_caregiver_by_id(db: Session, caregiver_id: UUID) -> Optional[Caregiver]:
    """Get caregiver by ID."""
    return db.get(Caregiver, caregiver_id)


def get_caregiver_by_email(db: Session, email: str) -> Optional[Caregiver]:
    """Get caregiver by normalized email."""
    return db.exec(select(Caregiver).where(Caregiver.email == email)).first()


def create_caregiver(
    db: Session, email: str, password_hash: str, name: str
) -> Caregiver:
    """Create caregiver. Raises IntegrityError if the email is taken."""
    caregiver = Caregiver(email=email, password_hash=password_hash, name=name)

    db.add(caregiver)
    db.commit()
    db.refresh(caregiver)

    return caregiver


def update_caregiver(db: Session, caregiver: Caregiver, **fields) -> Caregiver:
    """Update caregiver fields and bump ``updated_at``."""
    for field_name, value in fields.items():
        setattr(caregiver, field_name, value)
    caregiver.updated_at = utcnow()

    db.add(caregiver)
    db.commit()
    db.refresh(caregiver)

    return caregiver


# ============================================================================
# Baby and caregiver relations
# ============================================================================


def create_baby_with_primary(
    db: Session,
    owner_id: UUID,
    name: str,
    date_of_birth: Optional[datetime] = None,
) -> Baby:
    """Create a baby and make its owner the accepted primary caregiver."""
    now = utcnow()
    baby = Baby(name=name, date_of_birth=date_of_birth)

    db.add(baby)
    db.flush()  # Ensure baby exists before adding the relation

    db.add(
        BabyCaregiver(
            baby_id=baby.id,
            caregiver_id=owner_id,
            role=CaregiverRole.PRIMARY.value,
            invited_at=now,
            accepted_at=now,
        )
    )

    db.commit()
    db.refresh(baby)

    logger.info("Created baby with primary caregiver", baby_id=str(baby.id), owner_id=str(owner_id))

    return baby


def get_baby(db: Session, baby_id: UUID) -> Optional[Baby]:
    """Get baby by ID."""
    return db.get(Baby, baby_id)


def get_relation(
    db: Session, baby_id: UUID, caregiver_id: UUID
) -> Optional[BabyCaregiver]:
    """Get the relation for a (baby, caregiver) pair."""
    return db.get(BabyCaregiver, (baby_id, caregiver_id))


def add_relation(
    db: Session,
    baby_id: UUID,
    caregiver_id: UUID,
    role: CaregiverRole,
    invited_at: datetime,
    accepted_at: Optional[datetime] = None,
) -> BabyCaregiver:
    """Stage a new relation. Caller commits."""
    relation = BabyCaregiver(
        baby_id=baby_id,
        caregiver_id=caregiver_id,
        role=role.value,
        invited_at=invited_at,
        accepted_at=accepted_at,
    )
    db.add(relation)
    db.flush()
    return relation


# ============================================================================
# API key CRUD
# ============================================================================


def create_api_key(
    db: Session,
    caregiver_id: UUID,
    key_digest: str,
    key_hint: str,
    name: str,
    expires_at: Optional[datetime] = None,
) -> ApiKey:
    """Create API key record."""
    api_key = ApiKey(
        caregiver_id=caregiver_id,
        key_digest=key_digest,
        key_hint=key_hint,
        name=name,
        expires_at=expires_at,
    )

    db.add(api_key)
    db.commit()
    db.refresh(api_key)

    return api_key


def get_api_key(db: Session, api_key_id: UUID) -> Optional[ApiKey]:
    """Get API key by ID."""
    return db.get(ApiKey, api_key_id)


def get_api_key_by_digest(db: Session, key_digest: str) -> Optional[ApiKey]:
    """Get API key by secret digest."""
    return db.exec(select(ApiKey).where(ApiKey.key_digest == key_digest)).first()


def list_api_keys(db: Session, caregiver_id: UUID) -> List[ApiKey]:
    """List API keys for a caregiver, newest first."""
    query = (
        select(ApiKey)
        .where(ApiKey.caregiver_id == caregiver_id)
        .order_by(ApiKey.created_at.desc())
    )
    return list(db.exec(query).all())


def delete_api_key(db: Session, api_key: ApiKey) -> None:
    """Delete API key."""
    db.delete(api_key)
    db.commit()


def touch_api_key(db: Session, api_key_id: UUID, used_at: datetime) -> int:
    """Set ``last_used_at`` on an API key. Returns rows updated."""
    result = db.exec(
        update(ApiKey)
        .where(ApiKey.id == api_key_id)
        .values(last_used_at=used_at)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount


# ============================================================================
# Invitation CRUD
# ============================================================================


def create_invitation(
    db: Session,
    token: str,
    baby_id: UUID,
    inviter_id: UUID,
    invitee_email: str,
    expires_at: datetime,
) -> Invitation:
    """Create a pending invitation."""
    invitation = Invitation(
        token=token,
        baby_id=baby_id,
        inviter_id=inviter_id,
        invitee_email=invitee_email,
        status=InvitationStatus.PENDING.value,
        expires_at=expires_at,
    )

    db.add(invitation)
    db.commit()
    db.refresh(invitation)

    return invitation


def get_invitation(db: Session, invitation_id: UUID) -> Optional[Invitation]:
    """Get invitation by ID."""
    return db.get(Invitation, invitation_id)


def get_invitation_by_token(db: Session, token: str) -> Optional[Invitation]:
    """Get invitation by token."""
    return db.exec(select(Invitation).where(Invitation.token == token)).first()


def find_pending_invitations(
    db: Session, baby_id: UUID, invitee_email: str
) -> List[Invitation]:
    """Find pending invitations for a (baby, email) pair, expired or not."""
    query = select(Invitation).where(
        Invitation.baby_id == baby_id,
        Invitation.invitee_email == invitee_email,
        Invitation.status == InvitationStatus.PENDING.value,
    )
    return list(db.exec(query).all())


def list_invitations_for_baby(db: Session, baby_id: UUID) -> List[Invitation]:
    """List all invitations for a baby, newest first."""
    query = (
        select(Invitation)
        .where(Invitation.baby_id == baby_id)
        .order_by(Invitation.created_at.desc())
    )
    return list(db.exec(query).all())


def list_pending_invitations_for_email(
    db: Session, invitee_email: str, now: datetime
) -> List[Tuple[Invitation, str, str]]:
    """
    List unexpired pending invitations addressed to an email.

    Returns:
        List of (invitation, baby name, inviter name) tuples, newest first
    """
    query = (
        select(Invitation, Baby.name, Caregiver.name)
        .join(Baby, Baby.id == Invitation.baby_id)
        .join(Caregiver, Caregiver.id == Invitation.inviter_id)
        .where(
            Invitation.invitee_email == invitee_email,
            Invitation.status == InvitationStatus.PENDING.value,
            Invitation.expires_at > now,
        )
        .order_by(Invitation.created_at.desc())
    )
    return [tuple(row) for row in db.exec(query).all()]


def transition_pending_invitation(
    db: Session, invitation_id: UUID, to_status: InvitationStatus, **values
) -> bool:
    """
    Move an invitation out of ``pending``. Caller commits.

    The update is conditional on the row still being pending, so of two
    concurrent transitions only one can match.

    Returns:
        bool: True if this call performed the transition
    """
    result = db.exec(
        update(Invitation)
        .where(
            Invitation.id == invitation_id,
            Invitation.status == InvitationStatus.PENDING.value,
        )
        .values(status=to_status.value, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def expire_invitations(db: Session, invitation_ids: Sequence[UUID]) -> int:
    """Mark still-pending invitations as expired and commit. Returns rows updated."""
    if not invitation_ids:
        return 0

    result = db.exec(
        update(Invitation)
        .where(
            Invitation.id.in_(list(invitation_ids)),
            Invitation.status == InvitationStatus.PENDING.value,
        )
        .values(status=InvitationStatus.EXPIRED.value)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount:
        logger.info("Expired stale invitations", count=result.rowcount)

    return result.rowcount
