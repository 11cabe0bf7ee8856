"""Tests for the refresh-token lifecycle state machine"""
from datetime import timedelta

import pytest

from sessionguard.core.errors import ErrorKind, TokenRejected
from sessionguard.core.lifecycle import TokenLifecycleManager, TokenState
from sessionguard.core.store import CredentialStore, UserSummary
from sessionguard.models import RefreshToken


@pytest.fixture
def user(store: CredentialStore) -> UserSummary:
    return UserSummary.from_user(store.create_user("ada@example.com", "hash", "Ada"))


def _row(db, token: str) -> RefreshToken:
    return db.query(RefreshToken).filter(RefreshToken.token == token).one()


def test_issue_session_mints_and_stores(lifecycle: TokenLifecycleManager, store, user, clock):
    pair = lifecycle.issue_session(user)

    assert pair.reused is False
    assert pair.refresh.expires_at == clock() + timedelta(days=7)
    assert pair.refresh.lifetime_seconds == 7 * 24 * 60 * 60
    assert lifecycle.codec.verify_access(pair.access.token).email == "ada@example.com"
    assert store.find_active_refresh_token(user.id, clock()).token == pair.refresh.token


def test_issue_session_reuses_active_token(lifecycle: TokenLifecycleManager, store, user, clock):
    first = lifecycle.issue_session(user)
    clock.advance(hours=1)
    second = lifecycle.issue_session(user)

    assert second.reused is True
    assert second.refresh.token == first.refresh.token
    assert second.refresh.expires_at == first.refresh.expires_at
    assert second.refresh.lifetime_seconds == 7 * 24 * 60 * 60 - 3600
    assert store.count_active_for_user(user.id, clock()) == 1


def test_issue_session_purges_expired_rows(lifecycle: TokenLifecycleManager, db, user, clock):
    first = lifecycle.issue_session(user)
    clock.advance(days=8)

    second = lifecycle.issue_session(user)

    assert second.reused is False
    tokens = [row.token for row in db.query(RefreshToken).all()]
    assert tokens == [second.refresh.token]
    assert first.refresh.token not in tokens


def test_refresh_without_rotation(lifecycle: TokenLifecycleManager, user, clock):
    pair = lifecycle.issue_session(user)
    clock.advance(days=1)

    result = lifecycle.refresh(pair.refresh.token)

    assert result.rotated is False
    assert result.tokens.refresh.token == pair.refresh.token
    assert result.user.id == user.id
    assert result.tokens.access.expires_at == clock() + timedelta(minutes=15)
    assert lifecycle.codec.verify_access(result.tokens.access.token).user_id == user.id


def test_refresh_rotates_inside_threshold(lifecycle: TokenLifecycleManager, store, db, user, clock):
    pair = lifecycle.issue_session(user)
    clock.advance(days=6, hours=1)  # 23h left

    result = lifecycle.refresh(pair.refresh.token)

    assert result.rotated is True
    new_token = result.tokens.refresh.token
    assert new_token != pair.refresh.token
    assert result.tokens.refresh.expires_at == clock() + timedelta(days=7)

    assert _row(db, pair.refresh.token).is_revoked is True
    assert store.find_active_refresh_token(user.id, clock()).token == new_token

    # The old value is dead; the new one works
    with pytest.raises(TokenRejected) as exc_info:
        lifecycle.refresh(pair.refresh.token)
    assert exc_info.value.kind is ErrorKind.INVALID_TOKEN
    assert lifecycle.refresh(new_token).rotated is False


def test_refresh_exactly_at_threshold_does_not_rotate(lifecycle: TokenLifecycleManager, user, clock):
    pair = lifecycle.issue_session(user)
    clock.advance(days=6)  # exactly 24h left

    assert lifecycle.refresh(pair.refresh.token).rotated is False


def test_refresh_expired_token_is_revoked(lifecycle: TokenLifecycleManager, db, user, clock):
    pair = lifecycle.issue_session(user)
    clock.advance(days=7, seconds=1)

    with pytest.raises(TokenRejected) as exc_info:
        lifecycle.refresh(pair.refresh.token)

    assert exc_info.value.kind is ErrorKind.EXPIRED
    assert _row(db, pair.refresh.token).is_revoked is True


def test_refresh_inactive_user_is_forbidden(lifecycle: TokenLifecycleManager, store, db, user):
    pair = lifecycle.issue_session(user)
    store.set_user_active(user.id, False)

    with pytest.raises(TokenRejected) as exc_info:
        lifecycle.refresh(pair.refresh.token)

    assert exc_info.value.kind is ErrorKind.FORBIDDEN
    assert _row(db, pair.refresh.token).is_revoked is True


def test_refresh_rejects_access_token(lifecycle: TokenLifecycleManager, user):
    pair = lifecycle.issue_session(user)

    with pytest.raises(TokenRejected) as exc_info:
        lifecycle.refresh(pair.access.token)
    assert exc_info.value.kind is ErrorKind.INVALID_TOKEN


def test_refresh_rejects_unstored_token(lifecycle: TokenLifecycleManager, user):
    """A validly signed token with no stored record is not honoured"""
    unstored = lifecycle.codec.issue_refresh(user.id)

    with pytest.raises(TokenRejected) as exc_info:
        lifecycle.refresh(unstored.token)
    assert exc_info.value.kind is ErrorKind.INVALID_TOKEN


def test_refresh_rejects_garbage(lifecycle: TokenLifecycleManager):
    with pytest.raises(TokenRejected) as exc_info:
        lifecycle.refresh("definitely-not-a-token")
    assert exc_info.value.kind is ErrorKind.INVALID_TOKEN


def test_revoke_and_revoke_all(lifecycle: TokenLifecycleManager, store, user, clock):
    pair = lifecycle.issue_session(user)
    assert lifecycle.revoke(pair.refresh.token) is True
    assert lifecycle.revoke(pair.refresh.token) is False
    assert lifecycle.revoke("unknown") is False

    store.insert_refresh_token(user.id, "device-a", clock() + timedelta(days=1))
    store.insert_refresh_token(user.id, "device-b", clock() + timedelta(days=2))
    assert lifecycle.revoke_all(user.id) == 2
    assert store.find_active_refresh_token(user.id, clock()) is None


def test_login_after_logout_mints_new_token(lifecycle: TokenLifecycleManager, user):
    first = lifecycle.issue_session(user)
    lifecycle.revoke(first.refresh.token)

    second = lifecycle.issue_session(user)
    assert second.reused is False
    assert second.refresh.token != first.refresh.token


def test_classify(lifecycle: TokenLifecycleManager, store, user, clock):
    live = store.insert_refresh_token(user.id, "live", clock() + timedelta(hours=1))
    gone = store.insert_refresh_token(user.id, "gone", clock() - timedelta(hours=1))
    store.insert_refresh_token(user.id, "dead", clock() - timedelta(hours=1))
    store.revoke_refresh_token("dead")

    assert lifecycle.classify(live) is TokenState.ACTIVE
    assert lifecycle.classify(gone) is TokenState.EXPIRED
    dead = store.db.query(RefreshToken).filter(RefreshToken.token == "dead").one()
    assert lifecycle.classify(dead) is TokenState.REVOKED


def test_reap_keeps_unexpired_revoked_rows(lifecycle: TokenLifecycleManager, store, db, user, clock):
    store.insert_refresh_token(user.id, "expired", clock() - timedelta(minutes=1))
    store.insert_refresh_token(user.id, "revoked", clock() + timedelta(days=1))
    store.revoke_refresh_token("revoked")

    assert lifecycle.reap() == 1
    assert [row.token for row in db.query(RefreshToken).all()] == ["revoked"]
    assert lifecycle.reap() == 0
