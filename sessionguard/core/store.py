"""Credential store: users and refresh-token records over a SQLAlchemy session.

Every mutating call commits on its own, so each one is atomic at the row
level. On any ``SQLAlchemyError`` the session is rolled back and the error
re-raised for the caller to translate.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sessionguard.models import RefreshToken, User


class DuplicateUserError(Exception):
    """Email already registered (unique constraint on users.email)."""


@dataclass(frozen=True)
class UserSummary:
    """User projection without the password hash."""
    id: int
    email: str
    name: str
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            is_active=bool(user.is_active),
            created_at=user.created_at,
        )


class CredentialStore:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, email: str, password_hash: str, name: str) -> User:
        user = User(email=email, password_hash=password_hash, name=name, is_active=True)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateUserError(email) from exc
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def find_user_by_id(self, user_id: int) -> Optional[UserSummary]:
        row = (
            self.db.query(User.id, User.email, User.name, User.is_active, User.created_at)
            .filter(User.id == user_id)
            .first()
        )
        if row is None:
            return None
        return UserSummary(
            id=row.id,
            email=row.email,
            name=row.name,
            is_active=bool(row.is_active),
            created_at=row.created_at,
        )

    def set_user_active(self, user_id: int, active: bool) -> bool:
        """Administrative (de)activation. Returns False if the user does not exist."""
        updated = (
            self.db.query(User)
            .filter(User.id == user_id)
            .update({User.is_active: active, User.updated_at: datetime.utcnow()}, synchronize_session=False)
        )
        self._commit()
        return updated > 0

    def count_users(self, active_only: bool = False) -> int:
        query = self.db.query(User)
        if active_only:
            query = query.filter(User.is_active == True)
        return query.count()

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def insert_refresh_token(self, user_id: int, token: str, expires_at: datetime) -> RefreshToken:
        record = RefreshToken(user_id=user_id, token=token, expires_at=expires_at, is_revoked=False)
        self.db.add(record)
        self._commit()
        self.db.refresh(record)
        return record

    def _active_query(self, user_id: int, now: datetime):
        return self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.is_revoked == False,
            RefreshToken.expires_at > now,
        )

    def find_active_refresh_token(self, user_id: int, now: datetime) -> Optional[RefreshToken]:
        """Most recent non-revoked, unexpired token; newest ``created_at`` then highest ``id``."""
        return (
            self._active_query(user_id, now)
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
            .first()
        )

    def list_active_for_user(self, user_id: int, now: datetime) -> List[RefreshToken]:
        """Every active token of ``user_id``, newest first."""
        return (
            self._active_query(user_id, now)
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
            .all()
        )

    def count_active_for_user(self, user_id: int, now: datetime) -> int:
        return self._active_query(user_id, now).count()

    def count_active(self, now: datetime) -> int:
        return self.db.query(RefreshToken).filter(
            RefreshToken.is_revoked == False,
            RefreshToken.expires_at > now,
        ).count()

    def find_refresh_token_by_value(self, token: str) -> Optional[RefreshToken]:
        """Non-revoked record for ``token``; revoked rows are invisible here."""
        return self.db.query(RefreshToken).filter(
            RefreshToken.token == token,
            RefreshToken.is_revoked == False,
        ).first()

    def revoke_refresh_token(self, token: str) -> int:
        updated = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.token == token, RefreshToken.is_revoked == False)
            .update({RefreshToken.is_revoked: True}, synchronize_session=False)
        )
        self._commit()
        return updated

    def revoke_all_for_user(self, user_id: int) -> int:
        updated = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.is_revoked == False)
            .update({RefreshToken.is_revoked: True}, synchronize_session=False)
        )
        self._commit()
        return updated

    def delete_expired_for_user(self, user_id: int, now: datetime) -> int:
        deleted = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.expires_at < now)
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted

    def delete_all_expired(self, now: datetime) -> int:
        deleted = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.expires_at < now)
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted
