"""
API key service.

Keys are ``bnk_`` prefixed secrets. Only a SHA-256 digest and the last four
characters are stored, so the full secret is available exactly once, in the
response to ``create``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlmodel import Session
import structlog

from ..database import ApiKey, Caregiver
from ..database import credential_repository as repo
from ..utils import to_aware_utc, utcnow
from .background import BackgroundDispatcher
from .errors import ForbiddenError, NotFoundError
from .secret_generator import hash_secret, new_api_key

logger = structlog.get_logger(__name__)
security_logger = structlog.get_logger("security")


@dataclass(frozen=True)
class CreatedApiKey:
    """A newly created key. ``key`` is the only copy of the secret."""

    record: ApiKey
    key: str


class ApiKeyService:
    """Create, list, validate and revoke API keys."""

    def __init__(
        self,
        db: Session,
        dispatcher: BackgroundDispatcher,
        session_factory: Callable[[], Session],
    ):
        """
        Initialize API key service.

        Args:
            db: Request database session
            dispatcher: Runs the best-effort ``last_used_at`` write
            session_factory: Opens the separate session used by that write
        """
        self.db = db
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    def create(
        self, owner_id: UUID, name: str, expires_at: Optional[datetime] = None
    ) -> CreatedApiKey:
        """
        Create an API key for a caregiver.

        Args:
            owner_id: Owning caregiver
            name: Human label
            expires_at: Optional expiry

        Returns:
            CreatedApiKey: Stored record plus the full secret

        Raises:
            NotFoundError: If the caregiver doesn't exist
        """
        if repo.get_caregiver_by_id(self.db, owner_id) is None:
            raise NotFoundError("Caregiver not found")

        secret = new_api_key()
        record = repo.create_api_key(
            self.db,
            caregiver_id=owner_id,
            key_digest=hash_secret(secret),
            key_hint=secret[-4:],
            name=name,
            expires_at=to_aware_utc(expires_at),
        )

        security_logger.info(
            "API key created", caregiver_id=str(owner_id), api_key_id=str(record.id)
        )

        return CreatedApiKey(record=record, key=secret)

    def list(self, owner_id: UUID) -> List[ApiKey]:
        """List a caregiver's keys, newest first. Records carry only the hint."""
        return repo.list_api_keys(self.db, owner_id)

    def revoke(self, owner_id: UUID, key_id: UUID) -> None:
        """
        Delete an API key.

        Raises:
            NotFoundError: If the key doesn't exist
            ForbiddenError: If the key belongs to someone else
        """
        api_key = repo.get_api_key(self.db, key_id)
        if api_key is None:
            raise NotFoundError("API key not found")

        if api_key.caregiver_id != owner_id:
            raise ForbiddenError("You do not have permission to revoke this API key")

        repo.delete_api_key(self.db, api_key)

        security_logger.info(
            "API key revoked", caregiver_id=str(owner_id), api_key_id=str(key_id)
        )

    def validate(self, secret: str) -> Optional[Caregiver]:
        """
        Resolve the caregiver owning a key.

        Returns:
            Caregiver, or None if the key is unknown or expired
        """
        api_key = repo.get_api_key_by_digest(self.db, hash_secret(secret))
        if api_key is None:
            return None

        now = utcnow()
        if api_key.is_expired(now):
            logger.info("Expired API key presented", api_key_id=str(api_key.id))
            return None

        caregiver = repo.get_caregiver_by_id(self.db, api_key.caregiver_id)
        if caregiver is None:
            return None

        self.dispatcher.submit("api_key_last_used", self._touch_last_used, api_key.id, now)

        return caregiver

    def _touch_last_used(self, api_key_id: UUID, used_at: datetime) -> None:
        with self.session_factory() as db:
            repo.touch_api_key(db, api_key_id, used_at)
