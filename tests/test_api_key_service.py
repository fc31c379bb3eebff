"""
Tests for API key issuance, validation and revocation.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from caregiver_identity.database import credential_repository as repo
from caregiver_identity.services import (
    ApiKeyService,
    ForbiddenError,
    NotFoundError,
)
from caregiver_identity.utils import to_aware_utc, utcnow

from .fakes import InlineDispatcher


class TestCreateAndList:
    """The secret is shown once; listings carry only the hint."""

    def test_create_returns_full_secret_once(self, api_key_service, make_caregiver, db):
        owner = make_caregiver("ana@example.com")

        created = api_key_service.create(owner.id, "home assistant")

        assert created.key.startswith("bnk_")
        assert len(created.key) == 52
        assert created.record.key_hint == created.key[-4:]

        stored = repo.get_api_key(db, created.record.id)
        assert created.key not in (stored.key_digest, stored.key_hint)

    def test_list_is_newest_first_with_hints(self, api_key_service, make_caregiver, db):
        owner = make_caregiver("ana@example.com")
        older = api_key_service.create(owner.id, "older")
        newer = api_key_service.create(owner.id, "newer")

        # Created within the same clock tick on fast machines
        older.record.created_at = utcnow() - timedelta(minutes=1)
        db.add(older.record)
        db.commit()

        keys = api_key_service.list(owner.id)

        assert [k.name for k in keys] == ["newer", "older"]
        assert keys[0].key_hint == newer.key[-4:]

    def test_create_for_unknown_owner(self, api_key_service):
        with pytest.raises(NotFoundError):
            api_key_service.create(uuid4(), "ghost")

    def test_offset_expiry_is_stored_as_utc(self, api_key_service, make_caregiver, session_factory):
        owner = make_caregiver("ana@example.com")
        expires = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        created = api_key_service.create(owner.id, "expiring", expires_at=expires)

        with session_factory() as fresh:
            stored = repo.get_api_key(fresh, created.record.id)
            assert to_aware_utc(stored.expires_at) == datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_expiry_is_read_as_utc(self, api_key_service, make_caregiver):
        owner = make_caregiver("ana@example.com")
        naive_past = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)

        created = api_key_service.create(owner.id, "old", expires_at=naive_past)

        assert api_key_service.validate(created.key) is None


class TestValidate:
    """Resolving a caregiver from a presented key."""

    def test_valid_key_resolves_owner_and_touches_last_used(
        self, api_key_service, make_caregiver, session_factory
    ):
        owner = make_caregiver("ana@example.com")
        created = api_key_service.create(owner.id, "cli")

        caregiver = api_key_service.validate(created.key)

        assert caregiver.id == owner.id
        with session_factory() as fresh:
            assert repo.get_api_key(fresh, created.record.id).last_used_at is not None

    def test_unknown_key(self, api_key_service):
        assert api_key_service.validate("bnk_" + "0" * 48) is None

    def test_expired_key(self, api_key_service, make_caregiver):
        owner = make_caregiver("ana@example.com")
        created = api_key_service.create(
            owner.id, "old", expires_at=utcnow() - timedelta(minutes=1)
        )

        assert api_key_service.validate(created.key) is None

    def test_bookkeeping_failure_is_contained(self, db, make_caregiver, api_key_service):
        owner = make_caregiver("ana@example.com")
        created = api_key_service.create(owner.id, "cli")

        def broken_session_factory():
            raise RuntimeError("database gone")

        service = ApiKeyService(
            db=db, dispatcher=InlineDispatcher(), session_factory=broken_session_factory
        )

        assert service.validate(created.key).id == owner.id


class TestRevoke:
    """Deleting keys."""

    def test_owner_can_revoke(self, api_key_service, make_caregiver):
        owner = make_caregiver("ana@example.com")
        created = api_key_service.create(owner.id, "cli")

        api_key_service.revoke(owner.id, created.record.id)

        assert api_key_service.list(owner.id) == []
        assert api_key_service.validate(created.key) is None

    def test_other_caregiver_cannot_revoke(self, api_key_service, make_caregiver):
        owner = make_caregiver("ana@example.com")
        other = make_caregiver("ben@example.com")
        created = api_key_service.create(owner.id, "cli")

        with pytest.raises(ForbiddenError):
            api_key_service.revoke(other.id, created.record.id)

    def test_unknown_key(self, api_key_service, make_caregiver):
        owner = make_caregiver("ana@example.com")

        with pytest.raises(NotFoundError):
            api_key_service.revoke(owner.id, uuid4())
