"""
Pytest configuration and fixtures for the identity service tests.
"""

from functools import partial
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func
from sqlmodel import Session, select

from caregiver_identity.config.settings import IdentitySettings
from caregiver_identity.database import (
    Baby,
    BabyCaregiver,
    Caregiver,
    DatabaseSettings,
    build_engine,
    init_database,
)
from caregiver_identity.database import credential_repository as repo
from caregiver_identity.services import (
    AccountLockoutService,
    ApiKeyService,
    CredentialService,
    InvitationService,
    TokenSigner,
)

from .fakes import FakeKeyValueStore, InlineDispatcher

TEST_PASSWORD = "Str0ngPassword"


def count_relations(db: Session, baby_id, caregiver_id) -> int:
    """Count relation rows for a (baby, caregiver) pair."""
    return db.exec(
        select(func.count())
        .select_from(BabyCaregiver)
        .where(
            BabyCaregiver.baby_id == baby_id,
            BabyCaregiver.caregiver_id == caregiver_id,
        )
    ).one()


@pytest.fixture
def settings() -> IdentitySettings:
    """Settings with test signing keys and a cheap bcrypt cost."""
    return IdentitySettings(
        _env_file=None,
        environment="testing",
        jwt_secret_key="test-access-signing-key",
        jwt_refresh_secret_key="test-refresh-signing-key",
        password_hash_rounds=4,
        lockout_max_failed_attempts=3,
        lockout_duration_seconds=900,
        lockout_attempt_window_seconds=900,
        invitation_expiry_days=7,
    )


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite database so several sessions can share it."""
    database_settings = DatabaseSettings(
        _env_file=None, database_url=f"sqlite:///{tmp_path / 'identity.db'}"
    )
    engine = build_engine(database_settings)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> Callable[[], Session]:
    return partial(Session, engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture
def store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture
def signer(settings) -> TokenSigner:
    return TokenSigner(settings.jwt_algorithm)


@pytest.fixture
def lockout(store, settings) -> AccountLockoutService:
    return AccountLockoutService(store=store, settings=settings)


@pytest.fixture
def credential_service(db, lockout, signer, settings) -> CredentialService:
    return CredentialService(db=db, lockout=lockout, signer=signer, settings=settings)


@pytest.fixture
def api_key_service(db, session_factory) -> ApiKeyService:
    return ApiKeyService(
        db=db, dispatcher=InlineDispatcher(), session_factory=session_factory
    )


@pytest.fixture
def invitation_service(db, settings) -> InvitationService:
    return InvitationService(db=db, settings=settings)


@pytest.fixture
def make_caregiver(credential_service) -> Callable[..., Caregiver]:
    """Register a caregiver with the test password."""

    def _make(email: str, name: str = "Caregiver") -> Caregiver:
        return credential_service.register(email, TEST_PASSWORD, name).caregiver

    return _make


@pytest.fixture
def make_baby(db) -> Callable[..., Baby]:
    """Create a baby owned by an accepted primary caregiver."""

    def _make(owner: Caregiver, name: str = "Mia") -> Baby:
        return repo.create_baby_with_primary(db, owner_id=owner.id, name=name)

    return _make


@pytest.fixture
def client(settings, session_factory, store, signer) -> Generator[TestClient, None, None]:
    """
    API client wired to the test database and fake store.

    Used without a context manager, so the application lifespan
    (database and Redis probes) does not run.
    """
    from caregiver_identity import dependencies
    from caregiver_identity.database import get_db
    from caregiver_identity.main import app

    def override_get_db():
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_key_value_store] = lambda: store
    app.dependency_overrides[dependencies.get_token_signer] = lambda: signer
    app.dependency_overrides[dependencies.get_dispatcher] = InlineDispatcher
    app.dependency_overrides[dependencies.get_session_factory] = lambda: session_factory

    yield TestClient(app)

    app.dependency_overrides.clear()
