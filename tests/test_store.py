"""Tests for the credential store"""
from datetime import datetime, timedelta

import pytest

from sessionguard.core.store import CredentialStore, DuplicateUserError
from sessionguard.models import RefreshToken, User

NOW = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture
def user(store: CredentialStore):
    return store.create_user("grace@example.com", "hash", "Grace Hopper")


def test_create_and_find_user(store: CredentialStore, user):
    found = store.find_user_by_email("grace@example.com")
    assert found.id == user.id
    assert found.is_active is True

    summary = store.find_user_by_id(user.id)
    assert summary.email == "grace@example.com"
    assert summary.name == "Grace Hopper"
    assert not hasattr(summary, "password_hash")


def test_duplicate_email_raises(store: CredentialStore, user):
    with pytest.raises(DuplicateUserError):
        store.create_user("grace@example.com", "other", "Impostor")

    # Session is still usable after the rollback
    assert store.count_users() == 1


def test_unknown_user_lookups(store: CredentialStore):
    assert store.find_user_by_email("nobody@example.com") is None
    assert store.find_user_by_id(999) is None
    assert store.set_user_active(999, False) is False


def test_set_user_active(store: CredentialStore, user):
    assert store.set_user_active(user.id, False) is True
    assert store.find_user_by_id(user.id).is_active is False
    assert store.count_users() == 1
    assert store.count_users(active_only=True) == 0


def test_set_user_active_stamps_naive_utc(store: CredentialStore, db, user):
    before = datetime.utcnow() - timedelta(seconds=1)
    store.set_user_active(user.id, False)
    after = datetime.utcnow() + timedelta(seconds=1)

    db.expire_all()
    updated_at = db.query(User).filter(User.id == user.id).one().updated_at
    assert updated_at.tzinfo is None
    assert before <= updated_at <= after


def test_find_active_prefers_newest(store: CredentialStore, user):
    store.insert_refresh_token(user.id, "older", NOW + timedelta(days=7))
    newer = store.insert_refresh_token(user.id, "newer", NOW + timedelta(days=7))

    assert store.find_active_refresh_token(user.id, NOW).token == newer.token
    assert store.count_active_for_user(user.id, NOW) == 2


def test_list_active_for_user(store: CredentialStore, db, user):
    other = store.create_user("alan@example.com", "hash", "Alan Turing")
    created = NOW - timedelta(hours=1)
    db.add_all([
        RefreshToken(user_id=user.id, token="old", expires_at=NOW + timedelta(days=1), created_at=created - timedelta(hours=1)),
        RefreshToken(user_id=user.id, token="new", expires_at=NOW + timedelta(days=1), created_at=created),
        RefreshToken(user_id=user.id, token="gone", expires_at=NOW - timedelta(seconds=1), created_at=created),
        RefreshToken(user_id=other.id, token="theirs", expires_at=NOW + timedelta(days=1), created_at=created),
    ])
    db.commit()
    store.insert_refresh_token(user.id, "revoked", NOW + timedelta(days=1))
    store.revoke_refresh_token("revoked")

    assert [row.token for row in store.list_active_for_user(user.id, NOW)] == ["new", "old"]
    assert store.list_active_for_user(999, NOW) == []


def test_find_active_breaks_ties_by_id(store: CredentialStore, db, user):
    created = NOW - timedelta(hours=1)
    db.add_all([
        RefreshToken(user_id=user.id, token="tie-a", expires_at=NOW + timedelta(days=1), created_at=created),
        RefreshToken(user_id=user.id, token="tie-b", expires_at=NOW + timedelta(days=1), created_at=created),
    ])
    db.commit()

    assert store.find_active_refresh_token(user.id, NOW).token == "tie-b"


def test_find_active_skips_revoked_and_expired(store: CredentialStore, user):
    store.insert_refresh_token(user.id, "expired", NOW - timedelta(seconds=1))
    store.insert_refresh_token(user.id, "revoked", NOW + timedelta(days=1))
    store.revoke_refresh_token("revoked")

    assert store.find_active_refresh_token(user.id, NOW) is None
    assert store.count_active(NOW) == 0


def test_revoked_tokens_are_invisible_by_value(store: CredentialStore, user):
    store.insert_refresh_token(user.id, "tok", NOW + timedelta(days=1))
    assert store.find_refresh_token_by_value("tok") is not None

    assert store.revoke_refresh_token("tok") == 1
    assert store.find_refresh_token_by_value("tok") is None

    # Revoking again is a no-op
    assert store.revoke_refresh_token("tok") == 0
    assert store.revoke_refresh_token("never-issued") == 0


def test_revoke_all_for_user(store: CredentialStore, user):
    other = store.create_user("alan@example.com", "hash", "Alan Turing")
    store.insert_refresh_token(user.id, "a", NOW + timedelta(days=1))
    store.insert_refresh_token(user.id, "b", NOW + timedelta(days=2))
    store.insert_refresh_token(other.id, "c", NOW + timedelta(days=1))

    assert store.revoke_all_for_user(user.id) == 2
    assert store.count_active_for_user(user.id, NOW) == 0
    assert store.count_active_for_user(other.id, NOW) == 1


def test_delete_expired_for_user(store: CredentialStore, db, user):
    other = store.create_user("alan@example.com", "hash", "Alan Turing")
    store.insert_refresh_token(user.id, "old", NOW - timedelta(days=1))
    store.insert_refresh_token(user.id, "live", NOW + timedelta(days=1))
    store.insert_refresh_token(other.id, "other-old", NOW - timedelta(days=1))

    assert store.delete_expired_for_user(user.id, NOW) == 1

    remaining = {row.token for row in db.query(RefreshToken).all()}
    assert remaining == {"live", "other-old"}


def test_delete_all_expired_ignores_revocation(store: CredentialStore, db, user):
    store.insert_refresh_token(user.id, "expired-revoked", NOW - timedelta(days=1))
    store.insert_refresh_token(user.id, "expired", NOW - timedelta(hours=1))
    store.insert_refresh_token(user.id, "revoked-live", NOW + timedelta(days=1))
    store.insert_refresh_token(user.id, "live", NOW + timedelta(days=1))
    store.revoke_refresh_token("expired-revoked")
    store.revoke_refresh_token("revoked-live")

    assert store.delete_all_expired(NOW) == 2

    remaining = {row.token for row in db.query(RefreshToken).all()}
    assert remaining == {"revoked-live", "live"}


def test_deleting_user_cascades_to_tokens(store: CredentialStore, db, user):
    store.insert_refresh_token(user.id, "tok", NOW + timedelta(days=1))

    db.delete(user)
    db.commit()

    assert db.query(RefreshToken).count() == 0
