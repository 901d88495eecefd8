"""
RefreshSession model: one row per issued refresh token.
Fields:
- token_hash: sha-256 of the raw token (the raw token is never stored)
- family_id: groups one unbroken rotation chain
- consumed_at / replaced_by_session_id: set when the row is rotated away
- revoked_at / revoke_reason: set when the family (or this row) is invalidated
"""
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from models.base_model import BaseModel, Base
from utils.security import as_utc


class RefreshSession(BaseModel, Base):
    __tablename__ = "auth_refresh_sessions"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    family_id = Column(String(36), nullable=False, index=True)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoke_reason = Column(String(255), nullable=True)
    replaced_by_session_id = Column(Integer, ForeignKey("auth_refresh_sessions.id"), nullable=True)

    def is_active(self, now: datetime) -> bool:
        return (
            self.revoked_at is None
            and self.consumed_at is None
            and self.replaced_by_session_id is None
            and as_utc(self.expires_at) > now
        )

    def __repr__(self):
        return f"<RefreshSession id={self.id} family={self.family_id}>"
