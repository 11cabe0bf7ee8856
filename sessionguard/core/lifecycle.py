"""Refresh-token lifecycle: the state machine behind login, refresh and logout.

States of a stored refresh token::

    ACTIVE ──(logout / rotation / detected expiry)──> REVOKED
       │                                                 │
       └──────────────(expires_at passes)──> EXPIRED     │
                                                │        │
                             (reaper / login cleanup) ───┴──> DELETED

``EXPIRED`` is never stored; it is derived from ``expires_at`` at read time.
The manager keeps no in-process state, so concurrent requests are only as
consistent as the store's per-row atomicity. Two simultaneous logins with no
active token may both insert one; the newest wins on the next lookup and the
other ages out through the reaper.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from sessionguard.core.errors import ErrorKind, TokenRejected
from sessionguard.core.store import CredentialStore, UserSummary
from sessionguard.middleware.monitoring import record_token_event
from sessionguard.models import RefreshToken
from sessionguard.utils.jwt_utils import (
    IssuedToken,
    TokenCodec,
    TokenError,
    TokenFailure,
    remaining_lifetime,
    utcnow,
)
from sessionguard.utils.logger import logger

DEFAULT_ROTATION_THRESHOLD_HOURS = 24.0


class TokenState(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True)
class StoredRefresh:
    """A refresh token as handed back to callers: value + stored expiry."""
    token: str
    expires_at: datetime
    lifetime_seconds: int


@dataclass(frozen=True)
class TokenPair:
    access: IssuedToken
    refresh: StoredRefresh
    reused: bool = False


@dataclass(frozen=True)
class RefreshResult:
    tokens: TokenPair
    rotated: bool
    user: UserSummary


class TokenLifecycleManager:
    def __init__(
        self,
        store: CredentialStore,
        codec: TokenCodec,
        rotation_threshold_hours: float = DEFAULT_ROTATION_THRESHOLD_HOURS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.codec = codec
        self.rotation_threshold_hours = rotation_threshold_hours
        self.clock = clock

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, record: RefreshToken, now: Optional[datetime] = None) -> TokenState:
        """Read-time state of a stored token. Revocation wins over expiry."""
        if record.is_revoked:
            return TokenState.REVOKED
        if record.expires_at <= (now or self.clock()):
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def _mint_refresh(self, user_id: int) -> StoredRefresh:
        issued = self.codec.issue_refresh(user_id)
        self.store.insert_refresh_token(user_id, issued.token, issued.expires_at)
        return StoredRefresh(
            token=issued.token,
            expires_at=issued.expires_at,
            lifetime_seconds=issued.lifetime_seconds,
        )

    def _stored(self, record: RefreshToken, now: datetime) -> StoredRefresh:
        remaining = int((record.expires_at - now).total_seconds())
        return StoredRefresh(token=record.token, expires_at=record.expires_at, lifetime_seconds=max(remaining, 0))

    def issue_session(self, user: UserSummary) -> TokenPair:
        """Issue tokens on register/login, reusing the user's active refresh token if any."""
        now = self.clock()
        access = self.codec.issue_access(user.id, user.email)

        existing = self.store.find_active_refresh_token(user.id, now)
        if existing is not None:
            record_token_event("reused")
            logger.info("Reusing active refresh token", extra={"user_id": user.id, "action": "reuse_refresh"})
            return TokenPair(access=access, refresh=self._stored(existing, now), reused=True)

        purged = self.store.delete_expired_for_user(user.id, now)
        refresh = self._mint_refresh(user.id)
        record_token_event("issued")
        logger.info(
            "Issued refresh token",
            extra={"user_id": user.id, "action": "issue_refresh", "count": purged},
        )
        return TokenPair(access=access, refresh=refresh)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _revoke(self, token: str, user_id: Optional[int], reason: str) -> None:
        self.store.revoke_refresh_token(token)
        record_token_event("revoked")
        logger.info("Revoked refresh token", extra={"user_id": user_id, "action": "revoke_refresh", "reason": reason})

    def refresh(self, presented: str) -> RefreshResult:
        """Exchange a refresh token for a new access token, rotating it when near expiry.

        Raises:
            TokenRejected: ``INVALID_TOKEN``, ``EXPIRED`` or ``FORBIDDEN``.
        """
        now = self.clock()

        codec_expired = False
        try:
            claims = self.codec.verify_refresh(presented)
        except TokenError as exc:
            if exc.reason is not TokenFailure.EXPIRED:
                raise TokenRejected(ErrorKind.INVALID_TOKEN, "Invalid refresh token")
            codec_expired = True
            claims = exc.claims

        record = self.store.find_refresh_token_by_value(presented)
        if record is None or record.user_id != claims.user_id:
            raise TokenRejected(ErrorKind.INVALID_TOKEN, "Refresh token not found")

        if codec_expired or self.classify(record, now) is TokenState.EXPIRED:
            self._revoke(presented, record.user_id, "expired")
            raise TokenRejected(ErrorKind.EXPIRED, "Refresh token has expired")

        user = self.store.find_user_by_id(record.user_id)
        if user is None or not user.is_active:
            self._revoke(presented, record.user_id, "inactive_user")
            raise TokenRejected(ErrorKind.FORBIDDEN, "Your account is currently banned")

        access = self.codec.issue_access(user.id, user.email)

        expiry = remaining_lifetime(record.expires_at, now, self.rotation_threshold_hours)
        if not expiry.is_expiring_soon:
            return RefreshResult(
                tokens=TokenPair(access=access, refresh=self._stored(record, now), reused=True),
                rotated=False,
                user=user,
            )

        self._revoke(presented, user.id, "rotation")
        refresh = self._mint_refresh(user.id)
        record_token_event("rotated")
        logger.info(
            "Rotated refresh token",
            extra={"user_id": user.id, "action": "rotate_refresh", "jti": claims.jti},
        )
        return RefreshResult(tokens=TokenPair(access=access, refresh=refresh), rotated=True, user=user)

    # ------------------------------------------------------------------
    # Revocation and cleanup
    # ------------------------------------------------------------------

    def revoke(self, token: str) -> bool:
        """Revoke ``token`` if it is stored and live. Absence is not an error."""
        revoked = self.store.revoke_refresh_token(token) > 0
        if revoked:
            record_token_event("revoked")
        return revoked

    def revoke_all(self, user_id: int) -> int:
        count = self.store.revoke_all_for_user(user_id)
        if count:
            record_token_event("revoked", count)
        logger.info("Revoked all refresh tokens", extra={"user_id": user_id, "action": "revoke_all", "count": count})
        return count

    def reap(self, now: Optional[datetime] = None) -> int:
        """Delete every stored token past its expiry, revoked or not."""
        deleted = self.store.delete_all_expired(now or self.clock())
        if deleted:
            record_token_event("reaped", deleted)
        return deleted
