"""FastAPI dependencies for the identity service.

Provides dependency injection for:
- Settings
- Key-value store, background dispatcher and token signer (process-wide)
- Services (lockout, credentials, API keys, invitations), one per request
"""

from functools import lru_cache
from typing import Callable

from fastapi import Depends
from sqlmodel import Session

from .cache import KeyValueStore, RedisKeyValueStore
from .config.settings import IdentitySettings, get_identity_settings
from .database import SessionLocal, get_db
from .services import (
    AccountLockoutService,
    ApiKeyService,
    BackgroundDispatcher,
    CredentialService,
    InvitationService,
    TokenSigner,
)


def get_settings() -> IdentitySettings:
    """Get identity settings."""
    return get_identity_settings()


@lru_cache()
def get_key_value_store() -> KeyValueStore:
    """Get cached Redis-backed store.

    Uses lru_cache to share one connection pool across requests.
    """
    return RedisKeyValueStore.from_settings(get_identity_settings())


@lru_cache()
def get_dispatcher() -> BackgroundDispatcher:
    """Get cached background dispatcher."""
    return BackgroundDispatcher(max_workers=get_identity_settings().background_workers)


@lru_cache()
def get_token_signer() -> TokenSigner:
    """Get cached token signer."""
    return TokenSigner(algorithm=get_identity_settings().jwt_algorithm)


def get_session_factory() -> Callable[[], Session]:
    """Get the factory used for sessions outside the request scope."""
    return SessionLocal


def get_lockout_service(
    store: KeyValueStore = Depends(get_key_value_store),
    settings: IdentitySettings = Depends(get_settings),
) -> AccountLockoutService:
    """Get AccountLockoutService with injected dependencies."""
    return AccountLockoutService(store=store, settings=settings)


def get_credential_service(
    db: Session = Depends(get_db),
    lockout: AccountLockoutService = Depends(get_lockout_service),
    signer: TokenSigner = Depends(get_token_signer),
    settings: IdentitySettings = Depends(get_settings),
) -> CredentialService:
    """Get CredentialService with injected dependencies."""
    return CredentialService(db=db, lockout=lockout, signer=signer, settings=settings)


def get_api_key_service(
    db: Session = Depends(get_db),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> ApiKeyService:
    """Get ApiKeyService with injected dependencies."""
    return ApiKeyService(db=db, dispatcher=dispatcher, session_factory=session_factory)


def get_invitation_service(
    db: Session = Depends(get_db),
    settings: IdentitySettings = Depends(get_settings),
) -> InvitationService:
    """Get InvitationService with injected dependencies."""
    return InvitationService(db=db, settings=settings)
