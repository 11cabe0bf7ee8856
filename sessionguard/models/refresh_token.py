"""RefreshToken model: server-side record of every outstanding refresh token"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from sessionguard.database import Base


class RefreshToken(Base):
    """One issued refresh token.

    ``is_revoked`` only ever flips False -> True. ``expires_at`` mirrors the
    token's exp claim and is never extended; rotation inserts a new row.
    Rows past ``expires_at`` are deleted by the reaper whether revoked or not.
    ``id`` breaks ties when two rows share a ``created_at``.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(512), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    is_revoked = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")
