"""
SQLModel database models for the identity and access-control core.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from ..utils import to_aware_utc, utcnow


class CaregiverRole(str, Enum):
    """Role a caregiver holds on a baby."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class InvitationStatus(str, Enum):
    """Invitation lifecycle states. Everything but PENDING is terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class Caregiver(SQLModel, table=True):
    """Caregiver account used for authentication."""

    __tablename__ = "caregivers"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)

    # Normalized lowercase email, globally unique
    email: str = Field(max_length=255, unique=True, index=True)
    password_hash: str = Field(max_length=255)
    name: str = Field(max_length=100)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    def __repr__(self):
        return f"<Caregiver(id={self.id}, email={self.email})>"


class Baby(SQLModel, table=True):
    """Tracked subject that caregivers are granted access to."""

    __tablename__ = "babies"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=100)
    date_of_birth: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    def __repr__(self):
        return f"<Baby(id={self.id}, name={self.name})>"


class BabyCaregiver(SQLModel, table=True):
    """
    Baby-caregiver relation.

    The composite primary key allows at most one relation per pair.
    ``accepted_at`` is None while the caregiver has been invited but has
    not accepted yet.
    """

    __tablename__ = "baby_caregivers"

    baby_id: uuid.UUID = Field(foreign_key="babies.id", primary_key=True)
    caregiver_id: uuid.UUID = Field(foreign_key="caregivers.id", primary_key=True)
    role: str = Field(default=CaregiverRole.SECONDARY.value, max_length=20)
    invited_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    accepted_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    def __repr__(self):
        return (
            f"<BabyCaregiver(baby_id={self.baby_id}, caregiver_id={self.caregiver_id}, "
            f"role={self.role})>"
        )

    @property
    def is_accepted(self) -> bool:
        """Check if the relation grants access."""
        return self.accepted_at is not None

    @property
    def is_accepted_primary(self) -> bool:
        """Check if the relation is an accepted primary caregiver role."""
        return self.is_accepted and self.role == CaregiverRole.PRIMARY.value


class ApiKey(SQLModel, table=True):
    """API key for programmatic access. Only a digest of the secret is stored."""

    __tablename__ = "api_keys"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    caregiver_id: uuid.UUID = Field(foreign_key="caregivers.id", index=True)

    key_digest: str = Field(max_length=64, unique=True, index=True)
    key_hint: str = Field(max_length=4)
    name: str = Field(max_length=100)

    last_used_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    def __repr__(self):
        return f"<ApiKey(id={self.id}, caregiver_id={self.caregiver_id}, name={self.name})>"

    def is_expired(self, now: datetime) -> bool:
        """Check if the key is past its expiry."""
        return self.expires_at is not None and to_aware_utc(self.expires_at) < now


class Invitation(SQLModel, table=True):
    """Invitation granting a caregiver access to a baby."""

    __tablename__ = "invitations"

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    token: str = Field(max_length=64, unique=True, index=True)
    baby_id: uuid.UUID = Field(foreign_key="babies.id", index=True)
    inviter_id: uuid.UUID = Field(foreign_key="caregivers.id")
    invitee_email: str = Field(max_length=255, index=True)
    status: str = Field(default=InvitationStatus.PENDING.value, max_length=20, index=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    expires_at: datetime = Field(sa_type=DateTime(timezone=True))
    accepted_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    accepted_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="caregivers.id")

    def __repr__(self):
        return (
            f"<Invitation(id={self.id}, baby_id={self.baby_id}, "
            f"invitee_email={self.invitee_email}, status={self.status})>"
        )

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING.value

    def is_expired(self, now: datetime) -> bool:
        """Check if the invitation's expiry time has passed."""
        return now > to_aware_utc(self.expires_at)

    @property
    def token_hint(self) -> str:
        return f"****{self.token[-4:]}"
